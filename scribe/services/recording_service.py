"""Recording service that owns the current recording session."""

import logging
from typing import Callable, Optional

from ..audio.devices import CaptureDeviceGateway
from ..audio.session import RecordingSession
from ..config import ScribeConfig
from ..exceptions import NoActiveSessionError
from ..models.audio import RecordedAudio, RecorderState

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], RecordingSession]


class RecordingService:
    """Creates a fresh RecordingSession per recording attempt and exposes its state."""

    def __init__(self, config: ScribeConfig, gateway: Optional[CaptureDeviceGateway] = None,
                 session_factory: Optional[SessionFactory] = None):
        """Initialize recording service.

        Args:
            config: Application configuration
            gateway: Capture device gateway shared by all sessions
            session_factory: Overrides how sessions are built
        """
        self.config = config
        self.gateway = gateway or CaptureDeviceGateway()
        self._session_factory = session_factory or self._create_session
        self.session: Optional[RecordingSession] = None

    def _create_session(self) -> RecordingSession:
        return RecordingSession(
            gateway=self.gateway,
            preferred_encoding=self.config.get_preferred_encoding(),
            fallback_encodings=self.config.get_fallback_encodings(),
            bit_rate=self.config.get('recording.bit_rate', 32000),
            device_id=self.config.get('audio.device_id'),
            constraints=self.config.get_stream_constraints(),
            transition_timeout=self.config.get('recording.transition_timeout_seconds', 1.0),
            start_timeout=self.config.get('recording.start_timeout_seconds', 5.0),
        )

    def _require_session(self) -> RecordingSession:
        if self.session is None:
            raise NoActiveSessionError()
        return self.session

    async def start_recording(self) -> None:
        session = self._session_factory()
        self.session = session
        try:
            await session.start()
        except Exception:
            self.session = None
            logger.error("Unable to start recording")
            raise
        logger.info("🎙️ Recording started")

    async def toggle_pause(self) -> RecorderState:
        state = await self._require_session().toggle_pause()
        logger.info("⏸️ Recording paused" if state is RecorderState.PAUSED else "▶️ Resuming recording")
        return state

    async def stop_recording(self) -> RecordedAudio:
        """Stop the current session and return its audio.

        The session is discarded even when stopping fails.
        """
        session = self._require_session()
        try:
            return await session.stop()
        finally:
            self.session = None

    async def cancel_recording(self) -> None:
        session = self.session
        self.session = None
        if session is not None and session.is_active:
            await session.cancel()
            logger.info("🛑 Recording cancelled")

    def is_recording_active(self) -> bool:
        return self.session is not None and self.session.is_active

    def get_recording_state(self) -> RecorderState:
        if self.session is None:
            return RecorderState.INACTIVE
        return self.session.state

    def get_recording_duration_ms(self) -> float:
        if self.session is None:
            return 0.0
        return self.session.elapsed_ms()

    def format_recording_status(self) -> str:
        """Status line for a periodically refreshed recording indicator."""
        elapsed = int(self.get_recording_duration_ms() // 1000)
        minutes, seconds = divmod(elapsed, 60)
        icon = "⏸️" if self.get_recording_state() is RecorderState.PAUSED else "🔴"
        return f"{icon} Recording {minutes:02d}:{seconds:02d}"
