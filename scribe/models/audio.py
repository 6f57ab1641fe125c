"""Audio-related data models."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class RecorderState(Enum):
    """Lifecycle state reported by the audio recorder."""
    INACTIVE = "inactive"
    RECORDING = "recording"
    PAUSED = "paused"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Encoding:
    """A container + codec pair used to produce compressed audio bytes."""
    container: str
    codec: Optional[str] = None

    @property
    def extension(self) -> str:
        return self.container

    @property
    def mime_type(self) -> str:
        if self.codec:
            return f"audio/{self.container}; codecs={self.codec}"
        return f"audio/{self.container}"

    @classmethod
    def from_mime_type(cls, mime_type: str) -> "Encoding":
        """Parse a MIME string such as ``audio/webm; codecs=opus``."""
        media_type, _, params = mime_type.partition(";")
        kind, _, container = media_type.strip().partition("/")
        if kind != "audio" or not container:
            raise ValueError(f"Not an audio MIME type: {mime_type!r}")

        codec = None
        for param in params.split(";"):
            key, _, value = param.strip().partition("=")
            if key == "codecs" and value:
                codec = value.strip('"')
        return cls(container=container, codec=codec)

    def __str__(self) -> str:
        return self.mime_type


# Preference order used when nothing is configured
DEFAULT_ENCODING = Encoding("webm", "opus")
FALLBACK_ENCODINGS = (
    Encoding("webm"),
    Encoding("ogg"),
    Encoding("mp4"),
    Encoding("mp3"),
    Encoding("m4a"),
    Encoding("wav"),
    Encoding("flac"),
)


@dataclass(frozen=True)
class RecordedAudio:
    """The finished, immutable output of one recording session."""
    data: bytes
    encoding: Encoding
    duration_ms: float

    @property
    def extension(self) -> str:
        return self.encoding.extension

    @property
    def size_bytes(self) -> int:
        return len(self.data)

    def filename(self, stem: str) -> str:
        return f"{stem}.{self.extension}"


@dataclass
class SessionSnapshot:
    """Query-only view of a recording session."""
    state: RecorderState
    elapsed_ms: float
    encoding: Optional[Encoding]
    chunk_count: int

    @property
    def is_active(self) -> bool:
        return self.state is not RecorderState.INACTIVE
