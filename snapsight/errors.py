"""Closed error taxonomy shared by every service.

Each exception carries a stable ``ErrorKind`` plus structured fields so the
presentation layer can branch on ``exc.kind`` instead of parsing messages.
"""

from enum import Enum
from typing import ClassVar

import httpx


class ErrorKind(str, Enum):
    """Stable machine-readable error codes."""

    CONFIG_INCOMPLETE = "ERR_CONFIG_INCOMPLETE"
    NOT_INITIALIZED = "ERR_NOT_INITIALIZED"
    INVALID_FILE = "ERR_INVALID_FILE"
    IMAGE_TOO_LARGE = "ERR_IMAGE_TOO_LARGE"
    CAPTURE_FAILED = "ERR_CAPTURE_FAILED"
    FILE_READ = "ERR_FILE_READ"
    TRANSPORT = "ERR_TRANSPORT"
    TIMEOUT = "ERR_TIMEOUT"
    OFFLINE = "ERR_OFFLINE"
    AUTH_FAILED = "ERR_AUTH_FAILED"
    RATE_LIMIT = "ERR_RATE_LIMIT"
    SERVER = "ERR_SERVER"
    BAD_REQUEST = "ERR_BAD_REQUEST"
    FILE_TOO_LARGE = "ERR_FILE_TOO_LARGE"
    FILE_EXISTS = "ERR_FILE_EXISTS"
    INVALID_RESPONSE = "ERR_INVALID_RESPONSE"
    BUSY = "ERR_BUSY"
    INTERNAL = "ERR_INTERNAL"


class SnapsightError(Exception):
    """Base exception for all snapsight errors."""

    kind: ClassVar[ErrorKind]
    retryable: ClassVar[bool] = False

    def __init__(
        self,
        detail: str,
        *,
        status: int | None = None,
        attempts: int = 0,
        phase: str = "",
    ) -> None:
        super().__init__(detail)
        self.detail = detail
        self.status = status
        self.attempts = attempts
        self.phase = phase

    @property
    def code(self) -> str:
        return self.kind.value

    def __str__(self) -> str:
        return f"{self.code}: {self.detail}"


class ConfigurationError(SnapsightError):
    """Raised when required credentials are missing or unreadable."""

    kind = ErrorKind.CONFIG_INCOMPLETE

    def __init__(self, detail: str, *, missing: list[str] | None = None) -> None:
        super().__init__(detail)
        self.missing = list(missing or [])


class NotInitializedError(SnapsightError):
    """Raised when a service is used before it could initialize."""

    kind = ErrorKind.NOT_INITIALIZED


class InvalidFileError(SnapsightError):
    """Raised when a buffer is not a PNG or exceeds the upload limit."""

    kind = ErrorKind.INVALID_FILE


class ImageTooLargeError(SnapsightError):
    """Raised when a fetched image is too large to analyze."""

    kind = ErrorKind.IMAGE_TOO_LARGE


class CaptureError(SnapsightError):
    """Raised when the screen cannot be captured."""

    kind = ErrorKind.CAPTURE_FAILED


class FileReadError(SnapsightError):
    """Raised when a captured image cannot be read from disk."""

    kind = ErrorKind.FILE_READ


class TransportError(SnapsightError):
    """Raised on network failures (retried)."""

    kind = ErrorKind.TRANSPORT
    retryable = True


class RequestTimeoutError(TransportError):
    """Raised when a request exceeds its timeout."""

    kind = ErrorKind.TIMEOUT


class OfflineError(TransportError):
    """Raised when the remote host cannot be reached."""

    kind = ErrorKind.OFFLINE


class AuthError(SnapsightError):
    """Raised on HTTP 401/403."""

    kind = ErrorKind.AUTH_FAILED


class RateLimitedError(SnapsightError):
    """Raised on HTTP 429."""

    kind = ErrorKind.RATE_LIMIT


class ServerError(SnapsightError):
    """Raised on HTTP 5xx (retried)."""

    kind = ErrorKind.SERVER
    retryable = True


class BadRequestError(SnapsightError):
    """Raised on HTTP 400 and other rejected requests."""

    kind = ErrorKind.BAD_REQUEST


class QuotaOrSizeError(SnapsightError):
    """Raised on HTTP 413."""

    kind = ErrorKind.FILE_TOO_LARGE


class ObjectExistsError(SnapsightError):
    """Raised when the object store refuses to overwrite an existing name."""

    kind = ErrorKind.FILE_EXISTS


class InvalidResponseError(SnapsightError):
    """Raised when a remote payload does not match its contract."""

    kind = ErrorKind.INVALID_RESPONSE


class BusyError(SnapsightError):
    """Raised when a run is triggered while another one is in flight."""

    kind = ErrorKind.BUSY


class InternalError(SnapsightError):
    """Raised in place of an unexpected exception that escaped a run."""

    kind = ErrorKind.INTERNAL


def classify_status(status: int, detail: str, *, phase: str = "") -> SnapsightError:
    """Map an HTTP error status to the matching exception."""
    error_cls: type[SnapsightError]
    if status in (401, 403):
        error_cls = AuthError
    elif status == 409:
        error_cls = ObjectExistsError
    elif status == 413:
        error_cls = QuotaOrSizeError
    elif status == 429:
        error_cls = RateLimitedError
    elif status >= 500:
        error_cls = ServerError
    else:
        error_cls = BadRequestError
    return error_cls(detail, status=status, phase=phase)


def classify_transport(exc: httpx.TransportError, *, phase: str = "") -> TransportError:
    """Map an httpx transport exception to the matching exception."""
    if isinstance(exc, httpx.TimeoutException):
        return RequestTimeoutError(f"request timed out: {exc}", phase=phase)
    if isinstance(exc, httpx.ConnectError):
        return OfflineError(f"cannot reach host: {exc}", phase=phase)
    return TransportError(f"network error: {exc}", phase=phase)
