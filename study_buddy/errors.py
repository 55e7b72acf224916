"""
Errors - The failure taxonomy shared by the router and the client.

Every failure the system knows about is a StudyBuddyError carrying:
- kind: a stable ErrorKind tag (safe to show to the caller)
- status_code: the HTTP status the router answers with
- message: a client-safe message (never upstream internals)

The router turns these into JSON error payloads; the client rebuilds them
from those payloads so a UI can tell a rate limit from a quota problem.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Stable tags for every failure the system reports."""

    CONFIGURATION_MISSING = "configuration_missing"
    STREAM_START_FAILURE = "stream_start_failure"
    UPSTREAM_FAILURE = "upstream_failure"
    RATE_LIMITED = "rate_limited"
    QUOTA_EXCEEDED = "quota_exceeded"
    TIMEOUT = "timeout"
    PARSE_FAILURE = "parse_failure"
    UNAUTHORIZED = "unauthorized"
    INVALID_REQUEST = "invalid_request"
    CONVERSATION_BUSY = "conversation_busy"
    STREAM_FRAMING = "stream_framing"


class StudyBuddyError(Exception):
    """Base class for all Study Buddy failures."""

    kind: ErrorKind = ErrorKind.UPSTREAM_FAILURE
    status_code: int = 500
    default_message: str = "AI gateway error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_payload(self) -> dict:
        """JSON body returned to callers of the router."""
        return {"error": self.message, "kind": self.kind.value}


class ConfigurationMissingError(StudyBuddyError):
    """Required configuration is absent. Fatal at startup."""

    kind = ErrorKind.CONFIGURATION_MISSING
    default_message = "Required configuration is missing"

    def __init__(self, missing: list[str]):
        self.missing = list(missing)
        super().__init__(f"Missing required configuration: {', '.join(self.missing)}")


class StreamStartError(StudyBuddyError):
    kind = ErrorKind.STREAM_START_FAILURE
    status_code = 502
    default_message = "Failed to start stream"


class UpstreamError(StudyBuddyError):
    kind = ErrorKind.UPSTREAM_FAILURE
    status_code = 500
    default_message = "AI gateway error"


class RateLimitedError(StudyBuddyError):
    kind = ErrorKind.RATE_LIMITED
    status_code = 429
    default_message = "Rate limits exceeded, please try again later."


class QuotaExceededError(StudyBuddyError):
    kind = ErrorKind.QUOTA_EXCEEDED
    status_code = 402
    default_message = "Payment required, please add funds."


class UpstreamTimeoutError(StudyBuddyError):
    kind = ErrorKind.TIMEOUT
    status_code = 504
    default_message = "The AI service took too long to respond."


class ParseFailureError(StudyBuddyError):
    kind = ErrorKind.PARSE_FAILURE
    status_code = 502
    default_message = "The AI response could not be understood."


class UnauthorizedError(StudyBuddyError):
    kind = ErrorKind.UNAUTHORIZED
    status_code = 401
    default_message = "Unauthorized - Missing authentication token"


class InvalidRequestError(StudyBuddyError):
    kind = ErrorKind.INVALID_REQUEST
    status_code = 400
    default_message = "Invalid request"


class ConversationBusyError(StudyBuddyError):
    """A turn was started while the previous one is still streaming."""

    kind = ErrorKind.CONVERSATION_BUSY
    status_code = 409
    default_message = "A response is still streaming for this conversation."


class StreamFramingError(StudyBuddyError):
    kind = ErrorKind.STREAM_FRAMING
    status_code = 502
    default_message = "Stream line exceeded the maximum buffered size."


_ERRORS_BY_KIND: dict[ErrorKind, type[StudyBuddyError]] = {
    cls.kind: cls
    for cls in (
        StreamStartError,
        UpstreamError,
        RateLimitedError,
        QuotaExceededError,
        UpstreamTimeoutError,
        ParseFailureError,
        UnauthorizedError,
        InvalidRequestError,
        ConversationBusyError,
        StreamFramingError,
    )
}

_ERRORS_BY_STATUS: dict[int, type[StudyBuddyError]] = {
    429: RateLimitedError,
    402: QuotaExceededError,
    401: UnauthorizedError,
    504: UpstreamTimeoutError,
}


def error_from_payload(status_code: int, payload: object) -> StudyBuddyError:
    """
    Rebuild an error from a router JSON error payload.

    Falls back to the status code when the payload carries no known kind,
    and to UpstreamError when neither is recognised.
    """
    message = None
    error_cls: type[StudyBuddyError] | None = None

    if isinstance(payload, dict):
        message = payload.get("error") if isinstance(payload.get("error"), str) else None
        try:
            error_cls = _ERRORS_BY_KIND.get(ErrorKind(payload.get("kind")))
        except ValueError:
            error_cls = None

    if error_cls is None:
        error_cls = _ERRORS_BY_STATUS.get(status_code, UpstreamError)

    return error_cls(message)
