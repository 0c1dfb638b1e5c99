# Free/Busy Sync Error Handling
# Error ids match the legacy lookup protocol's error numbering

from enum import Enum
from typing import Any, Optional


# ============================================================================
# ERROR CODES (reported to lookup clients)
# ============================================================================


class ErrorCode(int, Enum):
    GENERIC = 0
    EXCHANGE_UNREACHABLE = 1
    UNSUPPORTED_VERSION = 2
    MALFORMED_REQUEST = 3
    DIRECTORY_ERROR = 4
    TIME_ZONE = 5


# Reasons
ERROR_MALFORMED_DATA = "malformedData"
ERROR_UNRECOGNIZED_STATUS = "unrecognizedStatus"
ERROR_RANGE_INVARIANT = "rangeInvariant"
ERROR_TRANSIENT_IO = "transientIO"
ERROR_MALFORMED_REQUEST = "malformedRequest"
ERROR_UNSUPPORTED_VERSION = "unsupportedVersion"
ERROR_TIME_ZONE = "timeZone"
ERROR_SYNC_ABORTED = "syncAborted"
ERROR_INTERNAL = "internalError"


# ============================================================================
# EXCEPTION CLASSES
# ============================================================================


class FreeBusyError(Exception):
    """Base exception for free/busy conversion and sync errors."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.GENERIC,
        reason: str = ERROR_INTERNAL,
        detail: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.reason = reason
        self.detail = detail

    def to_dict(self) -> dict[str, Any]:
        """Convert to an error payload dict."""
        error_detail: dict[str, Any] = {
            "reason": self.reason,
            "message": self.message,
        }
        if self.detail:
            error_detail["detail"] = self.detail

        return {
            "error": {
                "code": int(self.error_code),
                "message": self.message,
                "errors": [error_detail],
            }
        }


class MalformedDataError(FreeBusyError):
    """Encoded free/busy data could not be decoded, or a piece spans months."""

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(message, reason=ERROR_MALFORMED_DATA, detail=detail)


class UnrecognizedStatusError(FreeBusyError):
    """A busy status token is not one of the known values."""

    def __init__(self, token: str):
        super().__init__(
            f"Unrecognized busy status: {token!r}",
            reason=ERROR_UNRECOGNIZED_STATUS,
        )
        self.token = token


class RangeInvariantError(FreeBusyError):
    """A range was rejected because its start is after its end."""

    def __init__(self, message: str):
        super().__init__(message, reason=ERROR_RANGE_INVARIANT)


class TransientIOError(FreeBusyError):
    """A collaborator could not be reached. The caller may degrade or retry."""

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(
            message,
            error_code=ErrorCode.EXCHANGE_UNREACHABLE,
            reason=ERROR_TRANSIENT_IO,
            detail=detail,
        )


class MalformedRequestError(FreeBusyError):
    def __init__(self, message: str):
        super().__init__(
            message,
            error_code=ErrorCode.MALFORMED_REQUEST,
            reason=ERROR_MALFORMED_REQUEST,
        )


class UnsupportedVersionError(FreeBusyError):
    def __init__(self, version: str):
        super().__init__(
            f"Unsupported request version: {version}",
            error_code=ErrorCode.UNSUPPORTED_VERSION,
            reason=ERROR_UNSUPPORTED_VERSION,
        )
        self.version = version


class TimeZoneError(FreeBusyError):
    def __init__(self, zone: str):
        super().__init__(
            f"Unknown time zone: {zone}",
            error_code=ErrorCode.TIME_ZONE,
            reason=ERROR_TIME_ZONE,
        )
        self.zone = zone


class SyncAbortedError(FreeBusyError):
    """Raised when a batch run exceeds its error threshold."""

    def __init__(self, error_count: int, threshold: int):
        super().__init__(
            f"Too many errors during synchronization ({error_count} > {threshold})",
            reason=ERROR_SYNC_ABORTED,
        )
        self.error_count = error_count
        self.threshold = threshold
