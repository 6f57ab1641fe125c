"""Transcription-related data models."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional


@dataclass
class TranscriptionResult:
    """Result of transcribing one upload."""
    text: str
    processing_time: float
    timestamp: datetime
    service: str
    language: Optional[str] = None
    chunk_id: Optional[str] = None


@dataclass(frozen=True)
class ChunkRange:
    """A half-open byte range ``[start, end)`` of a recording."""
    index: int
    start: int
    end: int

    @property
    def size(self) -> int:
        return self.end - self.start


def join_transcript(parts: List[str]) -> str:
    """Trim every part and join the non-empty ones with a single space."""
    trimmed = (part.strip() for part in parts)
    return " ".join(part for part in trimmed if part)


@dataclass
class TranscriptionJob:
    """One finished recording on its way through the chunked pipeline."""
    source_buffer: bytes
    chunk_boundaries: List[ChunkRange]
    partial_results: List[str] = field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        return len(self.partial_results) == len(self.chunk_boundaries)

    def transcript(self) -> str:
        if not self.is_complete:
            raise RuntimeError(
                f"Transcription job incomplete: {len(self.partial_results)}/{len(self.chunk_boundaries)} chunks"
            )
        return join_transcript(self.partial_results)
