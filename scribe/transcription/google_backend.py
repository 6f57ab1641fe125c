"""Google Speech-to-Text transcription backend."""

import asyncio
import functools
import logging
import time
from datetime import datetime
from typing import Optional, Tuple

import soundfile as sf
from google.api_core import exceptions as gax_exceptions
from google.cloud import speech
from google.oauth2 import service_account

from ..audio.encoder import SoundFileEncoder
from ..exceptions import ConfigurationError, UnsupportedEncodingError
from ..models.audio import Encoding
from ..models.transcription import TranscriptionResult
from .base import AbstractTranscriptionBackend
from .chunking import AudioUpload

logger = logging.getLogger(__name__)

AudioEncoding = speech.RecognitionConfig.AudioEncoding

# Encodings the API decodes itself, keyed by (container, codec)
_NATIVE_ENCODINGS = {
    ("ogg", "opus"): AudioEncoding.OGG_OPUS,
    ("webm", "opus"): AudioEncoding.WEBM_OPUS,
    ("flac", None): AudioEncoding.FLAC,
    ("wav", None): AudioEncoding.LINEAR16,
}

# The API reads the sample rate from these headers
_SELF_DESCRIBING = {AudioEncoding.FLAC, AudioEncoding.LINEAR16}

_OPUS_SAMPLE_RATES = {8000, 12000, 16000, 24000, 48000}


class GoogleSpeechBackend(AbstractTranscriptionBackend):
    """Google Speech-to-Text API backend, one long-running request per recording.

    Recordings in an encoding the API cannot read (Ogg Vorbis, MP3) are
    decoded with libsndfile and re-encoded as Ogg Opus, or FLAC when the
    sample rate does not suit Opus.
    """

    service_name = "Google Speech-to-Text"
    supports_chunking = False

    def __init__(self,
                 credentials_path: Optional[str] = None,
                 sample_rate: int = 16000,
                 language: Optional[str] = None,
                 enable_automatic_punctuation: bool = True,
                 request_timeout: float = 120.0,
                 operation_timeout: float = 900.0,
                 encoder: Optional[SoundFileEncoder] = None):
        """Initialize Google Speech backend.

        Args:
            credentials_path: Path to Google Cloud service account JSON file
            sample_rate: Sample rate of the recorded audio in Hz
            language: Language code (e.g., 'en-US'); Google requires one, so None means en-US
            enable_automatic_punctuation: Enable automatic punctuation
            request_timeout: Deadline in seconds for submitting the request
            operation_timeout: Seconds to wait for the long-running recognition to finish
            encoder: Encoder used to convert unsupported encodings
        """
        super().__init__(language)
        self.credentials_path = credentials_path
        self.sample_rate = sample_rate
        self.enable_automatic_punctuation = enable_automatic_punctuation
        self.request_timeout = request_timeout
        self.operation_timeout = operation_timeout
        self.encoder = encoder or SoundFileEncoder()
        self.client: Optional[speech.SpeechClient] = None
        self.project_id = None

    def initialize(self) -> bool:
        """Initialize Google Speech client and verify credentials."""
        if not self.credentials_path:
            raise ConfigurationError("Google credentials path is required for Google transcription")

        logger.info(f"Loading Google credentials from: {self.credentials_path}")
        credentials = service_account.Credentials.from_service_account_file(self.credentials_path)
        self.client = speech.SpeechClient(credentials=credentials)
        self.project_id = credentials.project_id
        logger.info(f"Using Google Cloud project: {self.project_id}")
        return True

    def native_encoding(self, encoding: Encoding) -> Optional[AudioEncoding]:
        return _NATIVE_ENCODINGS.get((encoding.container, encoding.codec))

    def recognition_config(self, audio_encoding: AudioEncoding, sample_rate: Optional[int] = None,
                           channels: int = 1) -> speech.RecognitionConfig:
        options = {}
        if sample_rate and audio_encoding not in _SELF_DESCRIBING:
            options["sample_rate_hertz"] = sample_rate
        if channels > 1:
            options["audio_channel_count"] = channels
        return speech.RecognitionConfig(
            encoding=audio_encoding,
            language_code=self.language or "en-US",
            enable_automatic_punctuation=self.enable_automatic_punctuation,
            **options,
        )

    def prepare_audio(self, upload: AudioUpload) -> Tuple[speech.RecognitionConfig, bytes]:
        """Return the request config and content for an upload, converting it if needed.

        Raises:
            UnsupportedEncodingError: If the upload can be neither sent nor decoded
        """
        native = self.native_encoding(upload.encoding)
        if native is not None:
            return self.recognition_config(native, self.sample_rate), upload.data

        try:
            samples, sample_rate = sf.read(upload.open(), dtype="int16", always_2d=True)
        except sf.LibsndfileError as e:
            raise UnsupportedEncodingError([str(upload.encoding)]) from e

        target = Encoding("ogg", "opus")
        if sample_rate not in _OPUS_SAMPLE_RATES or not self.encoder.is_supported(target):
            target = Encoding("flac")
        channels = samples.shape[1]
        content = self.encoder.encode(samples.tobytes(), sample_rate, channels, target)
        logger.info(f"Converted {len(upload.data)} bytes of {upload.encoding} "
                    f"into {len(content)} bytes of {target} for {self.service_name}")
        return self.recognition_config(self.native_encoding(target), sample_rate, channels), content

    def _recognize(self, config: speech.RecognitionConfig, content: bytes) -> speech.LongRunningRecognizeResponse:
        operation = self.client.long_running_recognize(
            config=config,
            audio=speech.RecognitionAudio(content=content),
            timeout=self.request_timeout,
        )
        return operation.result(timeout=self.operation_timeout)

    async def transcribe_chunk(self, chunk_id: str, upload: AudioUpload) -> TranscriptionResult:
        if self.client is None:
            self.initialize()

        start_time = time.time()
        config, content = self.prepare_audio(upload)

        loop = asyncio.get_running_loop()
        try:
            response = await loop.run_in_executor(None, functools.partial(self._recognize, config, content))
        except gax_exceptions.GoogleAPICallError as e:
            logger.error("Google STT API call error for chunk %s: %s", chunk_id, e)
            raise

        text = " ".join(
            result.alternatives[0].transcript.strip()
            for result in response.results
            if result.alternatives
        )
        if not text:
            logger.debug(f"--- NO SPEECH DETECTED in {chunk_id} ---")

        return TranscriptionResult(
            text=text,
            processing_time=time.time() - start_time,
            timestamp=datetime.now(),
            service=self.service_name,
            language=config.language_code,
            chunk_id=chunk_id,
        )
