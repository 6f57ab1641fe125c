"""Scribe exception hierarchy.

Every error raised by the recording core or the transcription pipeline
inherits from ScribeError so callers can tell our failures apart from
device or network errors, which are propagated unchanged.
"""

from typing import Iterable, Optional


class ScribeError(Exception):
    """Base exception for all Scribe errors."""

    def __init__(self, detail: str = "An unexpected error occurred", code: str = "SCRIBE_ERROR"):
        self.detail = detail
        self.code = code
        super().__init__(detail)


class ConfigurationError(ScribeError):
    """Raised when required configuration is missing or invalid."""

    def __init__(self, detail: str):
        super().__init__(detail=detail, code="CONFIGURATION_ERROR")


class UnsupportedEncodingError(ScribeError):
    """Raised when neither the preferred encoding nor any fallback is supported."""

    def __init__(self, candidates: Iterable[str]):
        self.candidates = list(candidates)
        super().__init__(
            detail=f"No supported encoding among: {', '.join(self.candidates) or '(none)'}",
            code="UNSUPPORTED_ENCODING",
        )


class DeviceUnavailableError(ScribeError):
    """Raised when the capture device cannot be opened (missing or not permitted)."""

    def __init__(self, device_id: Optional[object], reason: str):
        self.device_id = device_id
        super().__init__(
            detail=f"Audio input device {device_id if device_id is not None else '(default)'} unavailable: {reason}",
            code="DEVICE_UNAVAILABLE",
        )


class AlreadyActiveError(ScribeError):
    """Raised when starting a session that is already recording or paused."""

    def __init__(self, state: object):
        self.state = state
        super().__init__(detail=f"Recording session is already active ({state})", code="ALREADY_ACTIVE")


class InvalidStateError(ScribeError):
    """Raised when an operation is not allowed in the current recorder state."""

    def __init__(self, operation: str, state: object):
        self.operation = operation
        self.state = state
        super().__init__(detail=f"Cannot {operation} while {state}", code="INVALID_STATE")


class NoActiveSessionError(ScribeError):
    """Raised when stopping a session that was never started."""

    def __init__(self):
        super().__init__(detail="There is no active recording to stop", code="NO_ACTIVE_SESSION")


class StateTransitionTimeoutError(ScribeError):
    """Raised when the device does not confirm a state change in time."""

    def __init__(self, transition: str, timeout: float):
        self.transition = transition
        self.timeout = timeout
        super().__init__(
            detail=f"Device did not confirm '{transition}' within {timeout:.2f}s",
            code="STATE_TRANSITION_TIMEOUT",
        )


class EmptyRecordingError(ScribeError):
    """Raised when a session stops without having captured any audio data."""

    def __init__(self):
        super().__init__(detail="Recording captured no audio data", code="EMPTY_RECORDING")


class TranscriptionServiceError(ScribeError):
    """Raised when a speech-to-text service answers with an error."""

    def __init__(self, service: str, detail: str, status: Optional[int] = None):
        self.service = service
        self.status = status
        message = f"{service} error: {status} - {detail}" if status is not None else f"{service} error: {detail}"
        super().__init__(detail=message, code="TRANSCRIPTION_SERVICE_ERROR")
