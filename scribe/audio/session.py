"""Recording session: start/pause/resume/stop over an audio recorder.

Every transition is a confirmed observation. The session asks the recorder
to change state, then waits for the recorder's own event before it touches
its timing bookkeeping. The lifecycle state itself is never stored here; it
is always read back from the recorder.
"""

import asyncio
import logging
import time
from concurrent.futures import Future
from typing import Callable, Dict, List, Optional, Sequence

from pubsub import pub

from ..exceptions import (
    AlreadyActiveError,
    EmptyRecordingError,
    InvalidStateError,
    NoActiveSessionError,
    StateTransitionTimeoutError,
)
from ..models.audio import (
    DEFAULT_ENCODING,
    FALLBACK_ENCODINGS,
    Encoding,
    RecordedAudio,
    RecorderState,
    SessionSnapshot,
)
from ..models.events import DeviceEvent, DeviceEventKind
from .devices import AudioInputStream, CaptureDeviceGateway, DeviceId
from .encoder import SoundFileEncoder
from .negotiation import negotiate_encoding
from .recorder import AudioRecorder

logger = logging.getLogger(__name__)

DEFAULT_TRANSITION_TIMEOUT = 1.0
DEFAULT_START_TIMEOUT = 5.0

RecorderFactory = Callable[[AudioInputStream, Encoding], AudioRecorder]


class RecordingSession:
    """One start-to-stop lifecycle of audio capture."""

    def __init__(self,
                 gateway: Optional[CaptureDeviceGateway] = None,
                 encoder: Optional[SoundFileEncoder] = None,
                 preferred_encoding: Optional[Encoding] = DEFAULT_ENCODING,
                 fallback_encodings: Sequence[Encoding] = FALLBACK_ENCODINGS,
                 bit_rate: int = 32000,
                 device_id: Optional[DeviceId] = None,
                 constraints: Optional[Dict[str, int]] = None,
                 transition_timeout: float = DEFAULT_TRANSITION_TIMEOUT,
                 start_timeout: float = DEFAULT_START_TIMEOUT,
                 recorder_factory: Optional[RecorderFactory] = None,
                 clock: Callable[[], float] = time.monotonic):
        """Initialize a recording session.

        Args:
            gateway: Opens the capture device stream
            encoder: Host encoder, used both to negotiate and to encode
            preferred_encoding: Encoding to try first
            fallback_encodings: Encodings to try next, in order
            bit_rate: Target audio bit rate in bits/s
            device_id: Input device index or name, None for the default device
            constraints: Stream overrides (sample_rate, channels, frames_per_buffer)
            transition_timeout: Seconds to wait for pause/resume/stop confirmation
            start_timeout: Seconds to wait for the recorder to confirm start
            recorder_factory: Builds the recorder for an opened stream
            clock: Monotonic clock in seconds
        """
        self.gateway = gateway or CaptureDeviceGateway()
        self.encoder = encoder or SoundFileEncoder()
        self.preferred_encoding = preferred_encoding
        self.fallback_encodings = list(fallback_encodings)
        self.bit_rate = bit_rate
        self.device_id = device_id
        self.constraints = constraints
        self.transition_timeout = transition_timeout
        self.start_timeout = start_timeout
        self._recorder_factory = recorder_factory or self._default_recorder
        self._clock = clock

        self.recorder: Optional[AudioRecorder] = None
        self.encoding: Optional[Encoding] = None
        self.chunks: List[bytes] = []
        self.start_time: Optional[float] = None
        self.pause_entered_at: Optional[float] = None
        self.paused_ms = 0.0
        self.device_error: Optional[BaseException] = None
        self._awaiting: Optional[DeviceEventKind] = None

    def _default_recorder(self, stream: AudioInputStream, encoding: Encoding) -> AudioRecorder:
        return AudioRecorder(stream, encoding, encoder=self.encoder, bit_rate=self.bit_rate)

    @property
    def state(self) -> RecorderState:
        if self.recorder is None:
            return RecorderState.INACTIVE
        return self.recorder.state

    @property
    def is_active(self) -> bool:
        return self.state is not RecorderState.INACTIVE

    def elapsed_ms(self) -> float:
        """Active (non-paused) recording time in milliseconds."""
        if self.start_time is None:
            return 0.0
        end = self.pause_entered_at if self.pause_entered_at is not None else self._clock()
        return max(0.0, (end - self.start_time) * 1000.0 - self.paused_ms)

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            state=self.state,
            elapsed_ms=self.elapsed_ms(),
            encoding=self.encoding,
            chunk_count=len(self.chunks),
        )

    async def start(self) -> None:
        """Open the device and start recording.

        Raises:
            AlreadyActiveError: If the session is recording or paused
            UnsupportedEncodingError: If no encoding can be negotiated
            DeviceUnavailableError: If the capture device cannot be opened
            StateTransitionTimeoutError: If the recorder never confirms the start
        """
        if self.is_active:
            raise AlreadyActiveError(self.state)

        encoding = negotiate_encoding(self.encoder.is_supported, self.preferred_encoding, self.fallback_encodings)
        stream = self.gateway.open_stream(self.device_id, self.constraints)
        try:
            recorder = self._recorder_factory(stream, encoding)
        except Exception:
            stream.release()
            raise

        self.recorder = recorder
        self.encoding = encoding
        self.chunks = []
        self.device_error = None
        pub.subscribe(self._on_device_event, recorder.topic)

        try:
            await self._transition(recorder.start, DeviceEventKind.START, "start", self.start_timeout)
        except BaseException:
            self._release()
            raise

        self.start_time = self._clock()
        self.pause_entered_at = None
        self.paused_ms = 0.0
        logger.info(f"Recording session started ({encoding})")

    async def pause(self) -> None:
        if self.state is not RecorderState.RECORDING:
            raise InvalidStateError("pause", self.state)
        self._raise_device_error()

        requested_at = self._clock()
        await self._transition(self.recorder.pause, DeviceEventKind.PAUSE, "pause", self.transition_timeout)
        self.pause_entered_at = requested_at
        logger.info("Recording paused")

    async def resume(self) -> None:
        if self.state is not RecorderState.PAUSED:
            raise InvalidStateError("resume", self.state)
        self._raise_device_error()

        requested_at = self._clock()
        await self._transition(self.recorder.resume, DeviceEventKind.RESUME, "resume", self.transition_timeout)
        self._close_pause(requested_at)
        logger.info(f"Recording resumed (paused total {self.paused_ms:.0f}ms)")

    def _close_pause(self, resumed_at: float) -> None:
        if self.pause_entered_at is not None:
            self.paused_ms += max(0.0, resumed_at - self.pause_entered_at) * 1000.0
        self.pause_entered_at = None

    async def toggle_pause(self) -> RecorderState:
        """Pause a recording session or resume a paused one."""
        if self.state is RecorderState.PAUSED:
            await self.resume()
        else:
            await self.pause()
        return self.state

    async def stop(self) -> RecordedAudio:
        """Stop recording and merge the captured chunks.

        A device error reported earlier in the session is raised once the
        device has been stopped and released.

        Raises:
            NoActiveSessionError: If the session is inactive
            EmptyRecordingError: If no audio data was captured
        """
        if not self.is_active:
            raise NoActiveSessionError()
        pending_error, self.device_error = self.device_error, None
        if pending_error is not None:
            logger.warning(f"Stopping after device error: {pending_error}")

        duration_ms = self.elapsed_ms()
        encoding = self.encoding
        try:
            await self._transition(self.recorder.stop, DeviceEventKind.STOP, "stop", self.transition_timeout)
            chunks = list(self.chunks)
        finally:
            self._release()

        if pending_error is not None:
            raise pending_error
        if not chunks:
            raise EmptyRecordingError()

        audio = RecordedAudio(data=b"".join(chunks), encoding=encoding, duration_ms=duration_ms)
        logger.info(f"Recording session stopped: {audio.size_bytes} bytes, {duration_ms / 1000:.1f}s")
        return audio

    async def cancel(self) -> None:
        """Stop recording and discard whatever was captured, including a pending device error."""
        if not self.is_active:
            raise NoActiveSessionError()
        if self.device_error is not None:
            logger.warning(f"Discarding device error on cancel: {self.device_error}")
            self.device_error = None
        try:
            await self._transition(self.recorder.stop, DeviceEventKind.STOP, "stop", self.transition_timeout)
        finally:
            self._release()
        logger.info("Recording session cancelled")

    async def _transition(self, action: Callable[[], Optional[Future]], expected: DeviceEventKind,
                          name: str, timeout: float) -> DeviceEvent:
        """Run ``action`` and wait for the recorder to confirm it.

        The listener is subscribed before the action runs and is always
        unsubscribed before this returns or raises. On timeout the queued
        recorder call is withdrawn if it has not started; a confirmation
        that still arrives later is applied by ``_on_device_event``.
        """
        topic = self.recorder.topic
        loop = asyncio.get_running_loop()
        outcome = loop.create_future()
        pending = None

        def listener(event: DeviceEvent):
            if outcome.done():
                return
            if event.kind is expected:
                outcome.set_result(event)
            elif event.kind is DeviceEventKind.ERROR:
                outcome.set_exception(event.error)

        pub.subscribe(listener, topic)
        self._awaiting = expected
        try:
            pending = action()
            return await asyncio.wait_for(outcome, timeout)
        except asyncio.TimeoutError:
            withdrawn = pending is not None and pending.cancel()
            logger.warning(f"Recorder did not confirm {name} within {timeout}s"
                           f"{' (request withdrawn)' if withdrawn else ''}")
            raise StateTransitionTimeoutError(name, timeout) from None
        except Exception as e:
            # Already surfaced to this caller, not pending for the next one
            if e is self.device_error:
                self.device_error = None
            raise
        finally:
            self._awaiting = None
            pub.unsubscribe(listener, topic)

    def _on_device_event(self, event: DeviceEvent):
        if event.kind is DeviceEventKind.DATA and event.data:
            self.chunks.append(event.data)
        elif event.kind is DeviceEventKind.ERROR:
            logger.error(f"Recorder reported an error: {event.error}")
            self.device_error = event.error
        elif event.kind is self._awaiting:
            return
        elif event.kind is DeviceEventKind.PAUSE and self.pause_entered_at is None:
            logger.warning("Recorder confirmed pause after its wait timed out")
            self.pause_entered_at = self._clock()
        elif event.kind is DeviceEventKind.RESUME and self.pause_entered_at is not None:
            logger.warning("Recorder confirmed resume after its wait timed out")
            self._close_pause(self._clock())

    def _raise_device_error(self) -> None:
        error, self.device_error = self.device_error, None
        if error is not None:
            raise error

    def _release(self) -> None:
        recorder, self.recorder = self.recorder, None
        if recorder is not None:
            pub.unsubscribe(self._on_device_event, recorder.topic)
            recorder.release()
        self.chunks = []
        self.start_time = None
        self.pause_entered_at = None
        self.paused_ms = 0.0
