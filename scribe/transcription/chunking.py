"""Splits a finished recording into upload-sized pieces."""

import io
from dataclasses import dataclass
from typing import List

from ..models.audio import Encoding
from ..models.transcription import ChunkRange

# Upload ceiling of the OpenAI transcription endpoint
MAX_CHUNK_SIZE = 25 * 1024 * 1024

_UPLOAD_MIME_TYPES = {
    "mp3": "audio/mpeg",
    "m4a": "audio/mp4",
}


def plan_chunks(total_size: int, max_chunk_size: int = MAX_CHUNK_SIZE) -> List[ChunkRange]:
    """Cover ``[0, total_size)`` with contiguous ranges of at most ``max_chunk_size`` bytes."""
    if max_chunk_size < 1:
        raise ValueError(f"max_chunk_size must be at least 1, got {max_chunk_size}")
    if total_size < 0:
        raise ValueError(f"total_size must not be negative, got {total_size}")

    return [
        ChunkRange(index=index, start=start, end=min(start + max_chunk_size, total_size))
        for index, start in enumerate(range(0, total_size, max_chunk_size))
    ]


@dataclass(frozen=True)
class AudioUpload:
    """One named unit of audio bytes, ready to be sent to a speech-to-text service."""
    filename: str
    data: bytes
    mime_type: str
    encoding: Encoding

    @classmethod
    def from_bytes(cls, data: bytes, encoding: Encoding, stem: str = "audio") -> "AudioUpload":
        extension = encoding.extension
        return cls(
            filename=f"{stem}.{extension}",
            data=data,
            mime_type=_UPLOAD_MIME_TYPES.get(extension, f"audio/{extension}"),
            encoding=encoding,
        )

    @classmethod
    def from_range(cls, buffer: bytes, chunk: ChunkRange, encoding: Encoding) -> "AudioUpload":
        return cls.from_bytes(buffer[chunk.start:chunk.end], encoding, stem=f"chunk_{chunk.index}")

    @property
    def extension(self) -> str:
        return self.filename.rsplit(".", 1)[-1]

    def open(self) -> io.BytesIO:
        """File-like view of the upload, named like the upload."""
        handle = io.BytesIO(self.data)
        handle.name = self.filename
        return handle
