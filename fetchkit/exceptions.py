"""
Exceptions raised by fetchkit.

Configuration errors are raised while handles are applied or before a request
is sent; `FetchError` is raised by responders when the server answers with a
non-success status. Transport errors (`httpx.HTTPError`) are never wrapped.
"""

from __future__ import annotations

from typing import Any

import httpx


class FetchKitError(Exception):
    """Base class for all fetchkit errors."""


# =============================================================================
# Configuration errors
# =============================================================================


class ConfigurationConflictError(FetchKitError):
    """A set-once handle found its field already populated."""

    def __init__(self, field: str) -> None:
        super().__init__(f"{field} has already been set in the fetch context")
        self.field = field


class MissingPathError(FetchKitError):
    """The context has no non-empty path segment at dispatch time."""

    def __init__(self) -> None:
        super().__init__("no path provided")


class MissingResponderError(FetchKitError):
    """The context has no responder at dispatch time."""

    def __init__(self) -> None:
        super().__init__("no responder provided")


class MissingIdFieldError(FetchKitError):
    """A record returned by a bulk operation has no `id` field."""

    def __init__(self, record: Any) -> None:
        super().__init__("record is missing the 'id' field")
        self.record = record


# =============================================================================
# Response errors
# =============================================================================


class FetchError(FetchKitError):
    """
    The server answered with a non-success status.

    The message is the reason phrase for the status code. The original
    response is kept (its body is buffered, so it can still be read) along
    with the decoded error body: parsed JSON for JSON responses, text otherwise.
    """

    def __init__(self, response: httpx.Response, body: Any | None = None) -> None:
        reason = response.reason_phrase or httpx.codes.get_reason_phrase(response.status_code)
        super().__init__(reason or f"HTTP {response.status_code}")
        self.response = response
        self.body = body

    @property
    def status_code(self) -> int:
        return self.response.status_code

    def __repr__(self) -> str:
        return f"FetchError(status_code={self.status_code}, message={str(self)!r})"
