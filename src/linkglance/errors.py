"""Failure taxonomy for the resolution pipeline.

``FetchError`` and ``ExtractError`` are raised by the lower layers and never
leave the resolver: ``LinkPreviewResolver`` is the single place that maps
them into a ``ResolutionError``, which is what callers (and the MCP layer)
see.
"""

from __future__ import annotations

from enum import StrEnum

# Client errors that may clear up on their own
_RETRYABLE_CLIENT_STATUSES = frozenset({408, 429})


class FetchErrorKind(StrEnum):
    TIMEOUT = "TIMEOUT"
    TOO_MANY_REDIRECTS = "TOO_MANY_REDIRECTS"
    HTTP_STATUS = "HTTP_STATUS"
    UNREACHABLE = "UNREACHABLE"


class ErrorCode(StrEnum):
    UNSUPPORTED_SCHEME = "UNSUPPORTED_SCHEME"
    FETCH_FAILED = "FETCH_FAILED"
    PARSE_FAILED = "PARSE_FAILED"
    INVALID_INPUT = "INVALID_INPUT"


class FetchError(Exception):
    """The remote resource could not be retrieved."""

    def __init__(
        self,
        kind: FetchErrorKind,
        url: str,
        message: str,
        *,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.url = url
        self.message = message
        self.status_code = status_code

    @property
    def recoverable(self) -> bool:
        if self.kind != FetchErrorKind.HTTP_STATUS or self.status_code is None:
            return True
        if self.status_code in _RETRYABLE_CLIENT_STATUSES:
            return True
        return not 400 <= self.status_code < 500


class ExtractError(Exception):
    """The fetched content could not be parsed at all."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"Unparseable content at {url}: {reason}")
        self.url = url
        self.reason = reason


class ResolutionError(Exception):
    """Raised by the resolver for every failed resolution.

    Caught by the tool handlers in server.py and serialised into the MCP
    error response. ``cause`` holds the lower-level failure, if any.
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        suggestion: str,
        recoverable: bool = False,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.suggestion = suggestion
        self.recoverable = recoverable
        self.cause = cause

    def to_dict(self) -> dict:
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "suggestion": self.suggestion,
                "recoverable": self.recoverable,
            }
        }
