"""Transcription service that picks a backend and pipeline from configuration."""

import logging
from typing import Callable, Optional, Union

from ..config import ScribeConfig
from ..exceptions import ConfigurationError
from ..models.audio import Encoding, RecordedAudio
from ..transcription import (
    AbstractTranscriptionBackend,
    AssemblyAIBackend,
    ChunkedTranscriptionPipeline,
    GoogleSpeechBackend,
    OpenAIWhisperBackend,
    SingleShotTranscriptionPipeline,
)

logger = logging.getLogger(__name__)

PLATFORMS = ("openai", "assemblyai", "google")

Pipeline = Union[ChunkedTranscriptionPipeline, SingleShotTranscriptionPipeline]


class TranscriptionService:
    """Turns finished recordings into transcript text."""

    def __init__(self, config: ScribeConfig):
        """Initialize transcription service.

        Args:
            config: Application configuration
        """
        self.config = config

    @property
    def platform(self) -> str:
        return str(self.config.get('transcription.platform', 'openai')).lower()

    @property
    def enabled(self) -> bool:
        return bool(self.config.get('transcription.enabled', True))

    def create_backend(self) -> AbstractTranscriptionBackend:
        """Build and initialize the backend for the configured platform."""
        language = self.config.get('transcription.language', 'auto')
        platform = self.platform

        if platform == "openai":
            backend = OpenAIWhisperBackend(
                api_key=self.config.get('transcription.openai.api_key', ''),
                language=language,
                base_url=self.config.get('transcription.openai.base_url'),
                model=self.config.get('transcription.openai.model'),
            )
        elif platform == "assemblyai":
            backend = AssemblyAIBackend(
                api_key=self.config.get('transcription.assemblyai.api_key', ''),
                language=language,
                speaker_labels=bool(self.config.get('transcription.multi_speaker', False)),
                poll_interval=self.config.get('transcription.assemblyai.poll_interval_seconds', 3.0),
                poll_timeout=self.config.get('transcription.assemblyai.poll_timeout_seconds'),
            )
        elif platform == "google":
            backend = GoogleSpeechBackend(
                credentials_path=self.config.get_google_credentials_path(),
                sample_rate=self.config.get('audio.sample_rate', 16000),
                language=language,
                operation_timeout=self.config.get('transcription.google.operation_timeout_seconds', 900.0),
            )
        else:
            raise ConfigurationError(
                f"Unknown transcription platform {platform!r}, expected one of {', '.join(PLATFORMS)}")

        backend.initialize()
        logger.info(f"✅ {backend.service_name} backend initialized")
        return backend

    def create_pipeline(self, backend: Optional[AbstractTranscriptionBackend] = None) -> Pipeline:
        backend = backend or self.create_backend()
        if backend.supports_chunking:
            return ChunkedTranscriptionPipeline(
                backend,
                max_chunk_size=self.config.get('transcription.max_chunk_size_bytes', 25 * 1024 * 1024),
            )
        return SingleShotTranscriptionPipeline(backend)

    async def transcribe(self, audio: RecordedAudio,
                         on_chunk_start: Optional[Callable[[int, int], None]] = None) -> str:
        """Transcribe a finished recording.

        Returns:
            The transcript, or an empty string when transcription is disabled
        """
        return await self.transcribe_bytes(audio.data, audio.encoding, on_chunk_start)

    async def transcribe_bytes(self, data: bytes, encoding: Encoding,
                               on_chunk_start: Optional[Callable[[int, int], None]] = None) -> str:
        if not self.enabled:
            logger.info("Transcription is disabled in configuration")
            return ""

        pipeline = self.create_pipeline()
        logger.info(f"Beginning transcription with {self.platform}")
        try:
            transcript = await pipeline.transcribe(data, encoding, on_chunk_start)
        finally:
            pipeline.backend.cleanup()
        logger.info(f"Completed transcription with {self.platform}: {len(transcript)} characters")
        return transcript
