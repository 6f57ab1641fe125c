"""AssemblyAI transcription backend (whole file, optional speaker labels)."""

import asyncio
import logging
import time
from datetime import datetime
from typing import Any, Dict, Optional

import aiohttp

from ..exceptions import ConfigurationError, TranscriptionServiceError
from ..models.transcription import TranscriptionResult
from .base import AbstractTranscriptionBackend
from .chunking import AudioUpload

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.assemblyai.com/v2"


class AssemblyAIBackend(AbstractTranscriptionBackend):
    """Uploads a recording to AssemblyAI and polls until the transcript is ready."""

    service_name = "AssemblyAI"
    supports_chunking = False

    def __init__(self, api_key: str, language: Optional[str] = None,
                 speaker_labels: bool = False, poll_interval: float = 3.0,
                 poll_timeout: Optional[float] = None, base_url: str = DEFAULT_BASE_URL):
        super().__init__(language)
        self.api_key = api_key
        self.speaker_labels = speaker_labels
        self.poll_interval = poll_interval
        self.poll_timeout = poll_timeout
        self.base_url = base_url.rstrip("/")

    def initialize(self) -> bool:
        if not self.api_key:
            raise ConfigurationError("AssemblyAI API key is required for AssemblyAI transcription")
        return True

    def build_request(self, audio_url: str) -> Dict[str, Any]:
        request: Dict[str, Any] = {
            "audio_url": audio_url,
            "format_text": True,
            "speaker_labels": self.speaker_labels,
        }
        if self.language:
            request["language_code"] = self.language
        return request

    async def _request(self, session: aiohttp.ClientSession, method: str, path: str, **kwargs) -> Dict[str, Any]:
        async with session.request(method, f"{self.base_url}{path}", **kwargs) as response:
            if response.status != 200:
                error_text = await response.text()
                raise TranscriptionServiceError(self.service_name, error_text, status=response.status)
            return await response.json()

    async def transcribe_chunk(self, chunk_id: str, upload: AudioUpload) -> TranscriptionResult:
        start_time = time.time()
        headers = {"authorization": self.api_key}

        async with aiohttp.ClientSession(headers=headers) as session:
            uploaded = await self._request(session, "POST", "/upload", data=upload.data)
            created = await self._request(session, "POST", "/transcript",
                                          json=self.build_request(uploaded["upload_url"]))
            transcript_id = created["id"]
            logger.info(f"AssemblyAI transcript {transcript_id} queued ({len(upload.data)} bytes, "
                        f"speaker_labels={self.speaker_labels})")

            transcript = created
            while transcript.get("status") not in ("completed", "error"):
                if self.poll_timeout is not None and time.time() - start_time > self.poll_timeout:
                    raise TranscriptionServiceError(
                        self.service_name, f"transcript {transcript_id} not ready after {self.poll_timeout}s")
                await asyncio.sleep(self.poll_interval)
                transcript = await self._request(session, "GET", f"/transcript/{transcript_id}")

        if transcript["status"] == "error":
            logger.error(f"AssemblyAI failed to transcribe {transcript_id}: {transcript.get('error')}")
            raise TranscriptionServiceError(self.service_name, transcript.get("error") or "unknown error")

        return TranscriptionResult(
            text=transcript.get("text") or "",
            processing_time=time.time() - start_time,
            timestamp=datetime.now(),
            service=self.service_name,
            language=transcript.get("language_code", self.language),
            chunk_id=chunk_id,
        )
