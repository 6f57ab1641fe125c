"""Unit tests for the Google Speech-to-Text backend."""

import io
from types import SimpleNamespace
from unittest.mock import Mock

import pytest
import soundfile as sf
from google.cloud import speech

from scribe.audio.encoder import SoundFileEncoder
from scribe.exceptions import UnsupportedEncodingError
from scribe.models.audio import Encoding
from scribe.transcription.chunking import AudioUpload
from scribe.transcription.google_backend import GoogleSpeechBackend

AudioEncoding = speech.RecognitionConfig.AudioEncoding


def recording(pcm: bytes, encoding: Encoding, sample_rate: int = 16000) -> AudioUpload:
    return AudioUpload.from_bytes(SoundFileEncoder().encode(pcm, sample_rate, 1, encoding), encoding)


@pytest.mark.unit
class TestPrepareAudio:
    """Request encoding selection and conversion."""

    def test_ogg_opus_is_sent_as_is(self):
        upload = AudioUpload.from_bytes(b"OggS...", Encoding("ogg", "opus"))

        config, content = GoogleSpeechBackend(sample_rate=16000).prepare_audio(upload)

        assert config.encoding == AudioEncoding.OGG_OPUS
        assert config.sample_rate_hertz == 16000
        assert config.language_code == "en-US"
        assert content == b"OggS..."

    def test_webm_opus_is_sent_as_is(self):
        upload = AudioUpload.from_bytes(b"webm", Encoding("webm", "opus"))

        config, _ = GoogleSpeechBackend().prepare_audio(upload)

        assert config.encoding == AudioEncoding.WEBM_OPUS

    def test_wav_rate_comes_from_header(self, sample_audio_chunk):
        upload = recording(sample_audio_chunk, Encoding("wav"), sample_rate=44100)

        config, content = GoogleSpeechBackend(sample_rate=16000).prepare_audio(upload)

        assert config.encoding == AudioEncoding.LINEAR16
        assert config.sample_rate_hertz == 0
        assert content == upload.data

    def test_default_recording_encoding_is_converted(self, sample_audio_chunk):
        # Ogg without a codec is what the recorder produces by default: Vorbis
        upload = recording(sample_audio_chunk * 16, Encoding("ogg"))

        config, content = GoogleSpeechBackend(sample_rate=16000).prepare_audio(upload)

        assert config.encoding in (AudioEncoding.OGG_OPUS, AudioEncoding.FLAC)
        assert config.encoding != AudioEncoding.ENCODING_UNSPECIFIED
        if config.encoding == AudioEncoding.OGG_OPUS:
            assert config.sample_rate_hertz == 16000
        info = sf.info(io.BytesIO(content))
        assert info.samplerate == 16000
        assert info.duration == pytest.approx(16 * 1024 / 16000, abs=0.05)

    def test_rates_opus_cannot_carry_convert_to_flac(self, sample_audio_chunk):
        upload = recording(sample_audio_chunk * 16, Encoding("ogg"), sample_rate=44100)

        config, content = GoogleSpeechBackend().prepare_audio(upload)

        assert config.encoding == AudioEncoding.FLAC
        assert config.sample_rate_hertz == 0
        assert content[:4] == b"fLaC"

    def test_undecodable_audio(self):
        upload = AudioUpload.from_bytes(b"\x1aE\xdf\xa3 not really audio", Encoding("mp4"))

        with pytest.raises(UnsupportedEncodingError):
            GoogleSpeechBackend().prepare_audio(upload)

    def test_language_hint(self):
        config = GoogleSpeechBackend(language="de-DE").recognition_config(AudioEncoding.FLAC)

        assert config.language_code == "de-DE"


@pytest.mark.unit
class TestTranscribeChunk:
    """Recognition through a mocked Speech client."""

    @pytest.mark.asyncio
    async def test_long_running_recognition(self, sample_audio_chunk):
        backend = GoogleSpeechBackend(request_timeout=30.0, operation_timeout=600.0)
        backend.client = Mock()
        operation = backend.client.long_running_recognize.return_value
        operation.result.return_value = SimpleNamespace(results=[
            SimpleNamespace(alternatives=[SimpleNamespace(transcript=" hello ")]),
            SimpleNamespace(alternatives=[]),
            SimpleNamespace(alternatives=[SimpleNamespace(transcript="world")]),
        ])
        upload = recording(sample_audio_chunk, Encoding("flac"))

        result = await backend.transcribe_chunk("full", upload)

        assert result.text == "hello world"
        assert result.chunk_id == "full"
        kwargs = backend.client.long_running_recognize.call_args.kwargs
        assert kwargs["config"].encoding == AudioEncoding.FLAC
        assert kwargs["audio"].content == upload.data
        assert kwargs["timeout"] == 30.0
        operation.result.assert_called_once_with(timeout=600.0)
        backend.client.recognize.assert_not_called()
