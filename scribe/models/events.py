"""Event models published by audio recorders over pub/sub."""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from .audio import RecorderState


class DeviceEventKind(Enum):
    """What a recorder is reporting."""
    START = "start"
    PAUSE = "pause"
    RESUME = "resume"
    STOP = "stop"
    DATA = "data"
    ERROR = "error"


@dataclass
class DeviceEvent:
    """A state confirmation, data chunk or error reported by a recorder."""
    kind: DeviceEventKind
    state: RecorderState
    data: Optional[bytes] = None
    error: Optional[BaseException] = None
    timestamp: float = field(default_factory=time.time)  # Unix timestamp when the event was raised
