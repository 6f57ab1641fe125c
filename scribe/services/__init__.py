"""Services layer for Scribe application logic."""

from .recording_service import RecordingService
from .transcription_service import TranscriptionService

__all__ = [
    "RecordingService",
    "TranscriptionService",
]
