"""Unit tests for SoundFileEncoder."""

import io

import numpy as np
import pytest
import soundfile as sf

from scribe.audio.encoder import BLOCK_FRAMES, SoundFileEncoder, compression_level_for
from scribe.models.audio import Encoding


@pytest.mark.unit
class TestSoundFileEncoder:
    """Test cases for the libsndfile-backed encoder."""

    def test_container_formats_libsndfile_lacks(self):
        encoder = SoundFileEncoder()

        assert encoder.is_supported(Encoding("webm", "opus")) is False
        assert encoder.is_supported(Encoding("mp4")) is False
        assert encoder.is_supported(Encoding("m4a")) is False

    def test_lossless_formats_supported(self):
        encoder = SoundFileEncoder()

        assert encoder.is_supported(Encoding("wav")) is True
        assert encoder.is_supported(Encoding("flac")) is True

    def test_encode_wav_roundtrips_samples(self, sample_audio_chunk):
        encoder = SoundFileEncoder()

        encoded = encoder.encode(sample_audio_chunk, 16000, 1, Encoding("wav"))

        assert encoded[:4] == b"RIFF"
        samples, rate = sf.read(io.BytesIO(encoded), dtype="int16")
        assert rate == 16000
        assert np.array_equal(samples, np.frombuffer(sample_audio_chunk, dtype=np.int16))

    def test_encode_flac(self, sample_audio_chunk):
        encoded = SoundFileEncoder().encode(sample_audio_chunk, 16000, 1, Encoding("flac"))
        assert encoded[:4] == b"fLaC"

    def test_encode_unsupported_raises(self, sample_audio_chunk):
        with pytest.raises(ValueError):
            SoundFileEncoder().encode(sample_audio_chunk, 16000, 1, Encoding("webm", "opus"))

    def test_compression_level_tracks_bit_rate(self):
        assert compression_level_for(320000) == 0.0
        assert compression_level_for(8000) == 1.0
        assert compression_level_for(1) == 1.0
        assert 0.0 < compression_level_for(32000) < 1.0
        assert compression_level_for(64000) < compression_level_for(32000)

    def test_encode_eleven_minutes_of_ogg(self, sample_audio_chunk):
        encoder = SoundFileEncoder()
        # 16000 Hz * 660 s / 1024-sample chunks
        pcm = sample_audio_chunk * (16000 * 660 // 1024)

        encoded = encoder.encode(pcm, 16000, 1, Encoding("ogg"))

        info = sf.info(io.BytesIO(encoded))
        assert info.format == "OGG"
        assert info.duration == pytest.approx(660.0, rel=0.01)


@pytest.mark.unit
class TestEncodingSink:
    """Test cases for incremental encoding."""

    def test_sink_without_audio_is_empty(self):
        sink = SoundFileEncoder().open_sink(16000, 1, Encoding("ogg"))

        assert sink.close() == b""
        assert sink.frames == 0

    def test_sink_accumulates_writes(self, sample_audio_chunk):
        sink = SoundFileEncoder().open_sink(16000, 1, Encoding("flac"))

        for _ in range(10):
            sink.write(sample_audio_chunk)
        encoded = sink.close()

        samples, rate = sf.read(io.BytesIO(encoded), dtype="int16")
        assert rate == 16000
        assert sink.frames == len(samples) == 10 * 1024
        assert np.array_equal(samples[:1024], np.frombuffer(sample_audio_chunk, dtype=np.int16))

    def test_write_larger_than_a_block(self):
        sink = SoundFileEncoder().open_sink(16000, 2, Encoding("wav"))
        stereo = np.zeros((BLOCK_FRAMES * 3 + 7, 2), dtype=np.int16)

        sink.write(stereo.tobytes())
        samples, _ = sf.read(io.BytesIO(sink.close()), dtype="int16")

        assert samples.shape == stereo.shape

    def test_closed_sink_rejects_writes(self, sample_audio_chunk):
        sink = SoundFileEncoder().open_sink(16000, 1, Encoding("wav"))
        sink.close()

        with pytest.raises(ValueError):
            sink.write(sample_audio_chunk)

    def test_open_sink_for_unsupported_encoding(self):
        with pytest.raises(ValueError):
            SoundFileEncoder().open_sink(16000, 1, Encoding("webm", "opus"))
