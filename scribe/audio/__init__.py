"""Audio capture, encoding and recording session module."""

from .devices import AudioInputStream, CaptureDeviceGateway
from .encoder import SoundFileEncoder
from .negotiation import negotiate_encoding
from .recorder import AudioRecorder
from .session import RecordingSession

__all__ = [
    'AudioInputStream',
    'CaptureDeviceGateway',
    'SoundFileEncoder',
    'negotiate_encoding',
    'AudioRecorder',
    'RecordingSession',
]
