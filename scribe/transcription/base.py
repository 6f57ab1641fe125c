"""Abstract base classes for transcription backends."""

from abc import ABC, abstractmethod
from typing import Optional
import logging

from ..models.transcription import TranscriptionResult
from .chunking import AudioUpload

logger = logging.getLogger(__name__)

AUTO_LANGUAGE = "auto"


def normalize_language(language: Optional[str]) -> Optional[str]:
    """Map an empty or ``auto`` language setting to no hint."""
    if not language or language.strip().lower() == AUTO_LANGUAGE:
        return None
    return language.strip()


class AbstractTranscriptionBackend(ABC):
    """Abstract base class for transcription backends."""

    service_name = "transcription"
    # Backends that accept arbitrary byte slices are fed through the chunked pipeline
    supports_chunking = True

    def __init__(self, language: Optional[str] = None):
        """Initialize backend with an optional spoken-language hint."""
        self.language = normalize_language(language)

    @abstractmethod
    async def transcribe_chunk(self, chunk_id: str, upload: AudioUpload) -> TranscriptionResult:
        """Transcribe one upload and return the result.

        Args:
            chunk_id: Identifier of the upload, for logging
            upload: Audio bytes with filename and MIME type

        Returns:
            TranscriptionResult with the transcript text
        """
        pass

    @abstractmethod
    def initialize(self) -> bool:
        """Verify configuration and prepare resources.

        Returns:
            True if the backend is ready to transcribe
        """
        pass

    def cleanup(self) -> None:
        """Clean up backend resources."""
        pass
