"""OpenAI Whisper transcription backend."""

import logging
import time
from datetime import datetime
from typing import Optional

import aiohttp

from ..exceptions import ConfigurationError, TranscriptionServiceError
from ..models.transcription import TranscriptionResult
from .base import AbstractTranscriptionBackend
from .chunking import AudioUpload

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.openai.com/v1"
DEFAULT_MODEL = "whisper-1"


class OpenAIWhisperBackend(AbstractTranscriptionBackend):
    """Sends uploads to an OpenAI-compatible ``/audio/transcriptions`` endpoint."""

    service_name = "OpenAI Whisper"
    supports_chunking = True

    def __init__(self, api_key: str, language: Optional[str] = None,
                 base_url: Optional[str] = None, model: Optional[str] = None):
        """Initialize the Whisper backend.

        Args:
            api_key: OpenAI API key
            language: ISO-639-1 language hint, or None/"auto" for detection
            base_url: Override for OpenAI-compatible servers
            model: Override for the transcription model
        """
        super().__init__(language)
        self.api_key = api_key
        self.base_url = (base_url or DEFAULT_BASE_URL).rstrip("/")
        self.model = model or DEFAULT_MODEL

        logger.info(f"OpenAIWhisperBackend initialized with model: {self.model}")

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/audio/transcriptions"

    def initialize(self) -> bool:
        if not self.api_key:
            raise ConfigurationError("OpenAI API key is required for Whisper transcription")
        return True

    def build_form(self, upload: AudioUpload) -> aiohttp.FormData:
        form = aiohttp.FormData()
        form.add_field("model", self.model)
        form.add_field("file", upload.data, filename=upload.filename, content_type=upload.mime_type)
        if self.language:
            form.add_field("language", self.language)
        return form

    async def transcribe_chunk(self, chunk_id: str, upload: AudioUpload) -> TranscriptionResult:
        start_time = time.time()
        logger.debug(f"Chunk ID: {chunk_id}; upload size: {len(upload.data)} bytes; language: {self.language}")

        headers = {"Authorization": f"Bearer {self.api_key}"}
        async with aiohttp.ClientSession() as session:
            async with session.post(self.endpoint, headers=headers, data=self.build_form(upload)) as response:
                if response.status != 200:
                    error_text = await response.text()
                    logger.error(f"Whisper request failed for {chunk_id}: {response.status}")
                    raise TranscriptionServiceError(self.service_name, error_text, status=response.status)
                result = await response.json()

        return TranscriptionResult(
            text=result.get("text", ""),
            processing_time=time.time() - start_time,
            timestamp=datetime.now(),
            service=self.service_name,
            language=self.language,
            chunk_id=chunk_id,
        )
