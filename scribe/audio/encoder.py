"""Encodes captured PCM into compressed audio containers with libsndfile."""

import io
import logging
from typing import Dict, Optional, Tuple

import numpy as np
import soundfile as sf

from ..models.audio import Encoding

logger = logging.getLogger(__name__)

# (container, codec) -> (libsndfile major format, subtype)
_SOUNDFILE_FORMATS: Dict[Tuple[str, Optional[str]], Tuple[str, str]] = {
    ("ogg", None): ("OGG", "VORBIS"),
    ("ogg", "vorbis"): ("OGG", "VORBIS"),
    ("ogg", "opus"): ("OGG", "OPUS"),
    ("mp3", None): ("MP3", "MPEG_LAYER_III"),
    ("wav", None): ("WAV", "PCM_16"),
    ("flac", None): ("FLAC", "PCM_16"),
}

_LOSSY_SUBTYPES = {"VORBIS", "OPUS", "MPEG_LAYER_III"}

# Bit rates mapped onto libsndfile's 0.0 (best) .. 1.0 (smallest) compression scale
MIN_BIT_RATE = 8000
MAX_BIT_RATE = 320000

# libsndfile's Vorbis encoder crashes on very large single writes
BLOCK_FRAMES = 16384


def compression_level_for(bit_rate: int) -> float:
    clamped = min(max(bit_rate, MIN_BIT_RATE), MAX_BIT_RATE)
    return round(1.0 - (clamped - MIN_BIT_RATE) / (MAX_BIT_RATE - MIN_BIT_RATE), 3)


class EncodingSink:
    """An in-memory audio file that PCM is appended to while recording.

    The file is opened on the first write, so a sink that never receives
    audio produces no bytes. Containers such as WAV patch their header when
    closed, so the encoded bytes are only available from ``close()``.
    """

    def __init__(self, sample_rate: int, channels: int, major: str, subtype: str,
                 compression_level: Optional[float] = None):
        self.sample_rate = sample_rate
        self.channels = channels
        self.major = major
        self.subtype = subtype
        self.compression_level = compression_level
        self.frames = 0

        self._buffer = io.BytesIO()
        self._file: Optional[sf.SoundFile] = None
        self._closed = False

    def _open(self) -> sf.SoundFile:
        options = {}
        if self.compression_level is not None:
            options["compression_level"] = self.compression_level
        return sf.SoundFile(self._buffer, mode="w", samplerate=self.sample_rate,
                            channels=self.channels, format=self.major, subtype=self.subtype,
                            **options)

    def write(self, pcm: bytes) -> None:
        """Append raw little-endian int16 interleaved samples."""
        if self._closed:
            raise ValueError("Cannot write to a closed encoding sink")
        samples = np.frombuffer(pcm, dtype=np.int16).reshape(-1, self.channels)
        if not len(samples):
            return
        if self._file is None:
            self._file = self._open()
        for start in range(0, len(samples), BLOCK_FRAMES):
            self._file.write(samples[start:start + BLOCK_FRAMES])
        self.frames += len(samples)

    def close(self) -> bytes:
        """Finish the file and return its bytes, empty when nothing was written."""
        if self._closed:
            return b""
        self._closed = True
        if self._file is None:
            return b""
        self._file.close()
        return self._buffer.getvalue()


class SoundFileEncoder:
    """Host encoder backed by the libsndfile build that soundfile ships with."""

    def soundfile_format(self, encoding: Encoding) -> Optional[Tuple[str, str]]:
        return _SOUNDFILE_FORMATS.get((encoding.container, encoding.codec))

    def is_supported(self, encoding: Encoding) -> bool:
        fmt = self.soundfile_format(encoding)
        if fmt is None:
            return False
        return sf.check_format(fmt[0], fmt[1])

    def open_sink(self, sample_rate: int, channels: int, encoding: Encoding,
                  bit_rate: int = 32000) -> EncodingSink:
        """Start an incremental encode into the given container.

        Args:
            sample_rate: Sample rate in Hz
            channels: Number of interleaved channels
            encoding: Target encoding, must be supported
            bit_rate: Target bit rate in bits/s (lossy formats only)
        """
        fmt = self.soundfile_format(encoding)
        if fmt is None:
            raise ValueError(f"Encoding {encoding} is not supported by libsndfile")
        major, subtype = fmt
        level = compression_level_for(bit_rate) if subtype in _LOSSY_SUBTYPES else None
        return EncodingSink(sample_rate, channels, major, subtype, level)

    def encode(self, pcm: bytes, sample_rate: int, channels: int,
               encoding: Encoding, bit_rate: int = 32000) -> bytes:
        """Encode 16-bit interleaved PCM into a complete file in one call."""
        sink = self.open_sink(sample_rate, channels, encoding, bit_rate)
        sink.write(pcm)
        encoded = sink.close()
        logger.debug(f"Encoded {len(pcm)} PCM bytes into {len(encoded)} bytes of {encoding}")
        return encoded
