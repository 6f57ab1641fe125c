"""Audio recorder: the device-side encoder session behind a recording.

The recorder never blocks its caller. Each control call is queued on a
single worker thread, and its outcome is reported as a DeviceEvent on the
recorder's pub/sub topic. When the call was made from a running asyncio
loop, events are delivered on that loop's thread.

Captured frames are encoded as they arrive, on the thread that delivers
them, so stopping only has to finish the file.
"""

import asyncio
import functools
import itertools
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Optional

from pubsub import pub

from ..exceptions import InvalidStateError
from ..models.audio import Encoding, RecorderState
from ..models.events import DeviceEvent, DeviceEventKind
from .devices import AudioInputStream
from .encoder import EncodingSink, SoundFileEncoder

logger = logging.getLogger(__name__)


class AudioRecorder:
    """Records PCM from an input stream and emits it encoded on stop."""

    _ids = itertools.count(1)

    def __init__(self, stream: AudioInputStream, encoding: Encoding,
                 encoder: Optional[SoundFileEncoder] = None, bit_rate: int = 32000,
                 topic: Optional[str] = None):
        self.stream = stream
        self.encoding = encoding
        self.encoder = encoder or SoundFileEncoder()
        self.bit_rate = bit_rate
        self.topic = topic or f"audio_recorder_{next(self._ids)}"

        self._state = RecorderState.INACTIVE
        self._sink: Optional[EncodingSink] = None
        self._lock = threading.Lock()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="AudioRecorder")

        stream.set_frame_callback(self._on_frames)

    @property
    def state(self) -> RecorderState:
        return self._state

    def start(self) -> Future:
        self._require("start", RecorderState.INACTIVE)
        self._bind_loop()
        return self._submit(self._do_start)

    def pause(self) -> Future:
        self._require("pause", RecorderState.RECORDING)
        return self._submit(self._do_pause)

    def resume(self) -> Future:
        self._require("resume", RecorderState.PAUSED)
        return self._submit(self._do_resume)

    def stop(self) -> Future:
        self._require("stop", RecorderState.RECORDING, RecorderState.PAUSED)
        return self._submit(self._do_stop)

    def release(self) -> None:
        """Free the input stream. The recorder is unusable afterwards."""
        self._executor.shutdown(wait=False)
        self.stream.set_frame_callback(None)
        self.stream.release()
        with self._lock:
            sink, self._sink = self._sink, None
        if sink is not None:
            try:
                sink.close()
            except Exception as e:
                logger.warning(f"Recorder {self.topic} could not close its encoder: {e}")
        self._state = RecorderState.INACTIVE

    def _require(self, operation: str, *states: RecorderState) -> None:
        if self._state not in states:
            raise InvalidStateError(operation, self._state)

    def _bind_loop(self) -> None:
        try:
            self._loop = asyncio.get_running_loop()
        except RuntimeError:
            self._loop = None

    def _submit(self, operation: Callable[[], None]) -> Future:
        return self._executor.submit(self._execute, operation)

    def _execute(self, operation: Callable[[], None]) -> None:
        try:
            operation()
        except Exception as e:
            logger.error(f"Recorder {self.topic} failed in {operation.__name__}: {e}")
            self._emit(DeviceEventKind.ERROR, error=e)

    def _on_frames(self, data: bytes) -> None:
        with self._lock:
            if self._state is not RecorderState.RECORDING or self._sink is None:
                return
            try:
                self._sink.write(data)
                return
            except Exception as e:
                # The half-written file is unusable; later frames are dropped
                self._sink = None
                error = e
        logger.error(f"Recorder {self.topic} failed to encode captured audio: {error}")
        self._emit(DeviceEventKind.ERROR, error=error)

    def _do_start(self) -> None:
        sink = self.encoder.open_sink(self.stream.sample_rate, self.stream.channels,
                                      self.encoding, self.bit_rate)
        with self._lock:
            self._sink = sink
        self.stream.start()
        self._state = RecorderState.RECORDING
        logger.info(f"Recorder {self.topic} started ({self.encoding})")
        self._emit(DeviceEventKind.START)

    def _do_pause(self) -> None:
        self.stream.stop()
        self._state = RecorderState.PAUSED
        self._emit(DeviceEventKind.PAUSE)

    def _do_resume(self) -> None:
        self.stream.start()
        self._state = RecorderState.RECORDING
        self._emit(DeviceEventKind.RESUME)

    def _do_stop(self) -> None:
        self.stream.stop()
        with self._lock:
            sink, self._sink = self._sink, None
        data = sink.close() if sink is not None else b""
        if data:
            logger.debug(f"Recorder {self.topic} encoded {sink.frames} frames into {len(data)} bytes")
            self._emit(DeviceEventKind.DATA, data=data)
        self._state = RecorderState.INACTIVE
        logger.info(f"Recorder {self.topic} stopped")
        self._emit(DeviceEventKind.STOP)

    def _emit(self, kind: DeviceEventKind, data: Optional[bytes] = None,
              error: Optional[BaseException] = None) -> None:
        event = DeviceEvent(kind=kind, state=self._state, data=data, error=error)
        publish = functools.partial(pub.sendMessage, self.topic, event=event)
        loop = self._loop
        if loop is not None and not loop.is_closed():
            loop.call_soon_threadsafe(publish)
        else:
            publish()
