"""
Wire error taxonomy for the SayType bridge API.

Every failure a handler can report is a BridgeError subclass carrying a
stable wire code. The exception handlers in ``api.main`` serialize them as
``{"error": <message>, "code": <code>}`` with the matching HTTP status.
"""

from enum import Enum
from typing import Dict

from saytype_bridge.core.audio_utils import AudioDecodeError, Base64DecodeError


class ErrorCode(str, Enum):
    """Stable error codes sent to clients."""

    UNAUTHORIZED = "UNAUTHORIZED"
    INVALID_FORMAT = "INVALID_FORMAT"
    DECODE_ERROR = "DECODE_ERROR"
    MODEL_NOT_LOADED = "MODEL_NOT_LOADED"
    TRANSCRIBE_ERROR = "TRANSCRIBE_ERROR"


STATUS_FOR_CODE: Dict[ErrorCode, int] = {
    ErrorCode.UNAUTHORIZED: 401,
    ErrorCode.INVALID_FORMAT: 400,
    ErrorCode.DECODE_ERROR: 400,
    ErrorCode.MODEL_NOT_LOADED: 503,
    ErrorCode.TRANSCRIBE_ERROR: 500,
}


class BridgeError(Exception):
    """Base class for errors that map onto a wire error code."""

    code: ErrorCode = ErrorCode.TRANSCRIBE_ERROR

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    @property
    def status_code(self) -> int:
        return STATUS_FOR_CODE[self.code]

    def to_dict(self) -> Dict[str, str]:
        return {"error": self.message, "code": self.code.value}


class Unauthorized(BridgeError):
    code = ErrorCode.UNAUTHORIZED

    def __init__(self, message: str = "Invalid token"):
        super().__init__(message)


class InvalidFormat(BridgeError):
    code = ErrorCode.INVALID_FORMAT


class DecodeFailed(BridgeError):
    code = ErrorCode.DECODE_ERROR


class ModelNotLoaded(BridgeError):
    code = ErrorCode.MODEL_NOT_LOADED

    def __init__(self, message: str = "Model not loaded"):
        super().__init__(message)


class TranscribeFailed(BridgeError):
    code = ErrorCode.TRANSCRIBE_ERROR


def from_audio_error(exc: AudioDecodeError) -> BridgeError:
    """Map a decoder failure onto its wire error."""
    if isinstance(exc, Base64DecodeError):
        return DecodeFailed(str(exc))
    return InvalidFormat(str(exc))
