"""Unit tests for ScribeConfig."""

import os

import pytest

from scribe.config import DEFAULT_CONFIG, ScribeConfig
from scribe.exceptions import ConfigurationError
from scribe.models.audio import DEFAULT_ENCODING, FALLBACK_ENCODINGS, Encoding


@pytest.mark.unit
class TestScribeConfig:
    """Test cases for ScribeConfig."""

    def test_defaults_without_file(self):
        config = ScribeConfig()

        assert config.config_file is None
        assert config.get('transcription.platform') == 'openai'
        assert config.get('recording.transition_timeout_seconds') == 1.0
        assert config.get('recording.start_timeout_seconds') == 5.0
        assert config.get('transcription.max_chunk_size_bytes') == 25 * 1024 * 1024
        assert config.get_preferred_encoding() == DEFAULT_ENCODING
        assert config.get_fallback_encodings() == list(FALLBACK_ENCODINGS)

    def test_defaults_are_not_shared(self):
        ScribeConfig().set('transcription.platform', 'google')

        assert DEFAULT_CONFIG['transcription']['platform'] == 'openai'

    def test_yaml_overrides_merge_with_defaults(self, config_file):
        path = config_file(
            "transcription:\n"
            "  platform: assemblyai\n"
            "  assemblyai:\n"
            "    api_key: secret\n"
            "audio:\n"
            "  sample_rate: 48000\n"
        )

        config = ScribeConfig(path)

        assert config.get('transcription.platform') == 'assemblyai'
        assert config.get('transcription.assemblyai.api_key') == 'secret'
        assert config.get('transcription.assemblyai.poll_interval_seconds') == 3.0
        assert config.get('transcription.openai.model') == 'whisper-1'
        assert config.get_stream_constraints() == {
            "sample_rate": 48000,
            "channels": 1,
            "frames_per_buffer": 1024,
        }

    def test_get_missing_key_returns_default(self):
        config = ScribeConfig()

        assert config.get('transcription.nope') is None
        assert config.get('audio.sample_rate.deeper', 'x') == 'x'

    def test_set_creates_intermediate_sections(self):
        config = ScribeConfig()

        config.set('plugins.cleanup.enabled', True)

        assert config.get('plugins.cleanup.enabled') is True

    def test_relative_paths_resolve_against_config_dir(self, config_file, tmp_path):
        path = config_file(
            "storage:\n"
            "  recording_directory: audio\n"
            "logging:\n"
            "  file_path: logs/app.log\n"
            "transcription:\n"
            "  google:\n"
            "    credentials_path: creds.json\n"
        )

        config = ScribeConfig(path)

        assert config.get('storage.recording_directory') == str(tmp_path / "audio")
        assert config.get('logging.file_path') == str(tmp_path / "logs" / "app.log")
        assert config.get('transcription.google.credentials_path') == str(tmp_path / "creds.json")

    def test_absolute_paths_are_kept(self, config_file, tmp_path):
        target = str(tmp_path / "elsewhere")
        config = ScribeConfig(config_file(f"storage:\n  recording_directory: {target}\n"))

        assert config.get_recording_directory() == target

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            ScribeConfig(str(tmp_path / "missing.yaml"))

    @pytest.mark.parametrize("text", ["", "transcription: [unclosed\n", "- just\n- a list\n"])
    def test_invalid_files(self, config_file, text):
        with pytest.raises(ConfigurationError):
            ScribeConfig(config_file(text))

    def test_custom_encodings(self, config_file):
        config = ScribeConfig(config_file(
            "recording:\n"
            "  preferred_encoding: 'audio/ogg; codecs=opus'\n"
            "  fallback_encodings: ['audio/wav']\n"
        ))

        assert config.get_preferred_encoding() == Encoding("ogg", "opus")
        assert config.get_fallback_encodings() == [Encoding("wav")]

    def test_invalid_encoding(self, config_file):
        config = ScribeConfig(config_file("recording:\n  preferred_encoding: 'video/mp4'\n"))

        with pytest.raises(ConfigurationError):
            config.get_preferred_encoding()

    def test_google_credentials_required(self):
        with pytest.raises(ConfigurationError):
            ScribeConfig().get_google_credentials_path()

    def test_google_credentials_file_must_exist(self, config_file, tmp_path):
        config = ScribeConfig(config_file("transcription:\n  google:\n    credentials_path: creds.json\n"))

        with pytest.raises(FileNotFoundError):
            config.get_google_credentials_path()

        (tmp_path / "creds.json").write_text("{}")
        assert os.path.isabs(config.get_google_credentials_path())
