"""Custom exceptions for the Scatterbrain content engine.

This module defines the exception hierarchy used throughout the engine.
Every error that can reach a request boundary inherits from ScatterbrainError
and carries an ErrorKind, which the HTTP layer translates into a status code
and a client-facing error payload.
"""

from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """Closed set of error kinds surfaced to callers."""

    VALIDATION = "validation"
    AUTH = "auth"
    UPSTREAM_TIMEOUT = "upstream-timeout"
    UPSTREAM_FAILURE = "upstream-failure"
    PERSISTENCE_FAILURE = "persistence-failure"


_HTTP_STATUS: dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.AUTH: 401,
    ErrorKind.UPSTREAM_FAILURE: 502,
    ErrorKind.UPSTREAM_TIMEOUT: 504,
    ErrorKind.PERSISTENCE_FAILURE: 500,
}


def http_status_for(kind: ErrorKind) -> int:
    """Return the HTTP status code used for an error kind."""
    return _HTTP_STATUS[kind]


class ScatterbrainError(Exception):
    """Base class for engine errors.

    All errors that should be reported to the caller inherit from this class.
    """

    kind: ErrorKind = ErrorKind.UPSTREAM_FAILURE
    retryable: bool = False

    def __init__(self, message: str, *, retryable: bool | None = None):
        super().__init__(message)
        if retryable is not None:
            self.retryable = retryable

    @property
    def hint(self) -> str | None:
        """Optional user-facing hint describing how to recover."""
        return None

    def to_dict(self) -> dict[str, Any]:
        """Serialize the error for a JSON response body."""
        payload: dict[str, Any] = {
            "error": str(self),
            "kind": self.kind.value,
            "retryable": self.retryable,
        }
        if self.hint:
            payload["hint"] = self.hint
        return payload


class ValidationError(ScatterbrainError):
    """Missing or malformed required input.

    Raised before any network call is made. Retrying the same input will not help.
    """

    kind = ErrorKind.VALIDATION
    retryable = False


class AuthError(ScatterbrainError):
    """Missing or unverifiable identity token."""

    kind = ErrorKind.AUTH
    retryable = False


class UpstreamError(ScatterbrainError):
    """The language-model provider call failed.

    Covers connection errors, rate limits and non-2xx responses. May succeed
    on a later attempt.
    """

    kind = ErrorKind.UPSTREAM_FAILURE
    retryable = True


class UpstreamTimeoutError(ScatterbrainError):
    """The request-level wall-clock budget elapsed.

    Kept distinct from UpstreamError so clients can suggest shorter input
    instead of showing a generic failure.
    """

    kind = ErrorKind.UPSTREAM_TIMEOUT
    retryable = True

    @property
    def hint(self) -> str | None:
        return "This is taking too long. Try again with shorter input."


class ParseError(ScatterbrainError):
    """A pipeline stage received model output with no usable JSON."""

    kind = ErrorKind.UPSTREAM_FAILURE
    retryable = False


class PipelineFailedError(ScatterbrainError):
    """The three-stage pipeline stopped before producing content.

    Carries the formatted partial run so callers can inspect completed stages.
    """

    kind = ErrorKind.UPSTREAM_FAILURE
    retryable = True

    def __init__(self, message: str, *, partial: dict[str, Any] | None = None):
        super().__init__(message)
        self.partial = partial

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        if self.partial is not None:
            payload["partial"] = self.partial
        return payload


class PersistenceError(ScatterbrainError):
    """The record store rejected a read or write.

    When raised after a successful analysis, `result` holds the computed
    payload so it can still be returned to the caller.
    """

    kind = ErrorKind.PERSISTENCE_FAILURE
    retryable = True

    def __init__(self, message: str, *, result: dict[str, Any] | None = None):
        super().__init__(message)
        self.result = result

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        if self.result is not None:
            payload["result"] = self.result
        return payload


class ConfigurationError(Exception):
    """Invalid configuration.

    This is NOT a ScatterbrainError - configuration issues should be fixed
    before the server starts, not reported per request.
    """

    pass
