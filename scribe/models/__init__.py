"""Data models for the Scribe application."""

from .audio import (
    DEFAULT_ENCODING,
    FALLBACK_ENCODINGS,
    Encoding,
    RecordedAudio,
    RecorderState,
    SessionSnapshot,
)
from .events import DeviceEvent, DeviceEventKind
from .transcription import ChunkRange, TranscriptionJob, TranscriptionResult, join_transcript

__all__ = [
    "DEFAULT_ENCODING",
    "FALLBACK_ENCODINGS",
    "Encoding",
    "RecordedAudio",
    "RecorderState",
    "SessionSnapshot",
    "DeviceEvent",
    "DeviceEventKind",
    "ChunkRange",
    "TranscriptionJob",
    "TranscriptionResult",
    "join_transcript",
]
