"""Transcription pipelines: chunked upload and single-shot submission."""

import logging
from typing import Callable, Optional

from ..models.audio import Encoding
from ..models.transcription import TranscriptionJob
from .base import AbstractTranscriptionBackend
from .chunking import MAX_CHUNK_SIZE, AudioUpload, plan_chunks

logger = logging.getLogger(__name__)


class ChunkedTranscriptionPipeline:
    """Splits a recording into size-bounded uploads and transcribes them in order.

    Chunks are submitted one at a time. The first failure aborts the job and
    is raised to the caller unchanged; no partial transcript is returned.
    """

    def __init__(self, backend: AbstractTranscriptionBackend, max_chunk_size: int = MAX_CHUNK_SIZE):
        if max_chunk_size < 1:
            raise ValueError(f"max_chunk_size must be at least 1, got {max_chunk_size}")
        self.backend = backend
        self.max_chunk_size = max_chunk_size

    def plan(self, audio: bytes) -> TranscriptionJob:
        return TranscriptionJob(
            source_buffer=bytes(audio),
            chunk_boundaries=plan_chunks(len(audio), self.max_chunk_size),
        )

    async def transcribe(self, audio: bytes, encoding: Encoding,
                         on_chunk_start: Optional[Callable[[int, int], None]] = None) -> str:
        """Transcribe a whole recording.

        Args:
            audio: The complete recording bytes
            encoding: Container and codec of the recording
            on_chunk_start: Called with (chunk index, chunk count) before each upload

        Returns:
            The ordered transcript
        """
        job = self.plan(audio)
        total = len(job.chunk_boundaries)
        logger.info(f"Split {len(audio)} bytes into {total} chunk(s) "
                    f"of at most {self.max_chunk_size} bytes for {self.backend.service_name}")

        for chunk in job.chunk_boundaries:
            if on_chunk_start:
                on_chunk_start(chunk.index, total)

            upload = AudioUpload.from_range(job.source_buffer, chunk, encoding)
            result = await self.backend.transcribe_chunk(f"chunk_{chunk.index}", upload)
            job.partial_results.append(result.text or "")
            logger.debug(f"Chunk {chunk.index + 1}/{total} transcribed in {result.processing_time:.2f}s")

        return job.transcript()


class SingleShotTranscriptionPipeline:
    """Submits the whole recording once, for backends that handle any size."""

    def __init__(self, backend: AbstractTranscriptionBackend):
        self.backend = backend

    async def transcribe(self, audio: bytes, encoding: Encoding,
                         on_chunk_start: Optional[Callable[[int, int], None]] = None) -> str:
        if on_chunk_start:
            on_chunk_start(0, 1)
        upload = AudioUpload.from_bytes(bytes(audio), encoding)
        logger.info(f"Submitting {len(audio)} bytes to {self.backend.service_name} in one request")
        result = await self.backend.transcribe_chunk("full", upload)
        return result.text or ""
