"""Pytest configuration and fixtures for Scribe tests."""

import asyncio
import itertools
import logging
from typing import Dict, List, Optional
from unittest.mock import Mock, patch

import numpy as np
import pytest
from pubsub import pub

from scribe.exceptions import InvalidStateError
from scribe.models.audio import Encoding, RecorderState
from scribe.models.events import DeviceEvent, DeviceEventKind


# Configure logging for tests
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class FakeClock:
    """Manually advanced monotonic clock, in seconds."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeSink:
    """Collects PCM and tags it on close, like a trivial container."""

    def __init__(self):
        self.parts: List[bytes] = []
        self.frames = 0

    def write(self, pcm: bytes) -> None:
        self.parts.append(pcm)
        self.frames += len(pcm) // 2

    def close(self) -> bytes:
        data = b"".join(self.parts)
        self.parts = []
        return b"ENC" + data if data else b""


class FakeEncoder:
    """Encoder double: supports a fixed set of encodings and tags the PCM it encodes."""

    def __init__(self, supported=None):
        self.supported = set(supported) if supported is not None else {Encoding("ogg")}

    def is_supported(self, encoding: Encoding) -> bool:
        return encoding in self.supported

    def open_sink(self, sample_rate: int, channels: int, encoding: Encoding, bit_rate: int = 32000) -> FakeSink:
        return FakeSink()

    def encode(self, pcm: bytes, sample_rate: int, channels: int, encoding: Encoding, bit_rate: int = 32000) -> bytes:
        return b"ENC" + pcm


class FakeRecorder:
    """Recorder double that confirms transitions the way a device would.

    Each transition is confirmed on the next loop iteration, unless it is
    listed in ``silent`` (never confirmed), ``late`` (confirmed after the given
    delay in seconds) or ``failing`` (answered with an error event).
    ``chunks`` are emitted as data events right before stop.
    """

    _ids = itertools.count(1)

    def __init__(self, chunks: Optional[List[bytes]] = None, silent=(), failing: Optional[Dict[str, Exception]] = None,
                 late: Optional[Dict[str, float]] = None):
        self.topic = f"fake_recorder_{next(self._ids)}"
        self.chunks = list(chunks or [])
        self.silent = set(silent)
        self.failing = dict(failing or {})
        self.late = dict(late or {})
        self.state = RecorderState.INACTIVE
        self.released = False
        self.calls: List[str] = []

    def _schedule(self, name: str, kind: DeviceEventKind, new_state: RecorderState, before=()):
        self.calls.append(name)
        if name in self.silent:
            return

        def confirm():
            if name in self.failing:
                self.emit(DeviceEventKind.ERROR, error=self.failing[name])
                return
            for event_kind, data in before:
                self.emit(event_kind, data=data)
            self.state = new_state
            self.emit(kind)

        loop = asyncio.get_running_loop()
        if name in self.late:
            loop.call_later(self.late[name], confirm)
        else:
            loop.call_soon(confirm)

    def emit(self, kind: DeviceEventKind, data: Optional[bytes] = None, error: Optional[Exception] = None):
        pub.sendMessage(self.topic, event=DeviceEvent(kind=kind, state=self.state, data=data, error=error))

    def start(self):
        if self.state is not RecorderState.INACTIVE:
            raise InvalidStateError("start", self.state)
        self._schedule("start", DeviceEventKind.START, RecorderState.RECORDING)

    def pause(self):
        self._schedule("pause", DeviceEventKind.PAUSE, RecorderState.PAUSED)

    def resume(self):
        self._schedule("resume", DeviceEventKind.RESUME, RecorderState.RECORDING)

    def stop(self):
        before = [(DeviceEventKind.DATA, chunk) for chunk in self.chunks]
        self._schedule("stop", DeviceEventKind.STOP, RecorderState.INACTIVE, before=before)

    def release(self):
        self.released = True
        self.state = RecorderState.INACTIVE


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def fake_encoder():
    return FakeEncoder()


@pytest.fixture
def fake_gateway():
    """Gateway double whose streams are plain mocks."""
    gateway = Mock()
    gateway.open_stream.side_effect = lambda device_id=None, constraints=None: Mock(name="stream")
    return gateway


@pytest.fixture
def make_session(fake_gateway, fake_encoder, fake_clock):
    """Build a RecordingSession wired to a FakeRecorder."""
    from scribe.audio.session import RecordingSession

    def factory(recorder: Optional[FakeRecorder] = None, **kwargs):
        recorder = recorder or FakeRecorder(chunks=[b"\x01\x02", b"\x03"])
        options = dict(
            gateway=fake_gateway,
            encoder=fake_encoder,
            recorder_factory=lambda stream, encoding: recorder,
            clock=fake_clock,
        )
        options.update(kwargs)
        return RecordingSession(**options), recorder

    return factory


@pytest.fixture
def sample_audio_chunk():
    """Generate a sample audio chunk for testing."""
    # Generate 1024 samples of 16-bit audio (sine wave)
    sample_rate = 16000
    duration = 1024 / sample_rate  # ~0.064 seconds
    freq = 440  # A4 note

    t = np.linspace(0, duration, 1024, False)
    wave_data = np.sin(2 * np.pi * freq * t)

    # Convert to 16-bit integers
    audio_data = (wave_data * 32767).astype(np.int16)
    return audio_data.tobytes()


@pytest.fixture
def mock_pyaudio():
    """Mock PyAudio for testing without actual audio hardware."""
    with patch('pyaudio.PyAudio') as mock_pyaudio_class:
        mock_pyaudio_instance = Mock()
        mock_stream = Mock()

        # Configure mock stream
        mock_stream.is_stopped.return_value = False
        mock_stream.is_active.return_value = True
        mock_stream.start_stream.return_value = None
        mock_stream.stop_stream.return_value = None
        mock_stream.close.return_value = None

        # Configure mock PyAudio instance
        mock_pyaudio_instance.open.return_value = mock_stream
        mock_pyaudio_instance.terminate.return_value = None
        mock_pyaudio_instance.get_device_count.return_value = 2
        mock_pyaudio_instance.get_device_info_by_index.side_effect = lambda i: [
            {"name": "Built-in Output", "maxInputChannels": 0, "defaultSampleRate": 48000.0},
            {"name": "USB Microphone", "maxInputChannels": 1, "defaultSampleRate": 44100.0},
        ][i]

        # Configure mock PyAudio class
        mock_pyaudio_class.return_value = mock_pyaudio_instance

        yield {
            'class': mock_pyaudio_class,
            'instance': mock_pyaudio_instance,
            'stream': mock_stream
        }


@pytest.fixture
def config_file(tmp_path):
    """Write a YAML config and return its path."""
    def write(text: str) -> str:
        path = tmp_path / "scribe.yaml"
        path.write_text(text, encoding="utf-8")
        return str(path)

    return write


@pytest.fixture
def make_recorder():
    """Constructor for FakeRecorder doubles."""
    return FakeRecorder
