"""
Fetch context model.

A `FetchContext` is the descriptor that handles accumulate before a request is
sent. Handles always assign new values rather than changing stored
ones. The only mutable value is `RequestInit.headers` (an `httpx.Headers`),
which `FetchContext.copy()` and `RequestInit.detached()` duplicate so one call
cannot leak headers into the shared binding-time context.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import IO, Any, TypeAlias

import httpx

FetchRespond: TypeAlias = Callable[[httpx.Response], Any]
FetchHeaderRespondTransform: TypeAlias = Callable[[str], Any]


class Strategy(Enum):
    """How a handle combines its value with what the context already holds."""

    SET_ONCE = "set_once"
    REPLACE = "replace"
    MERGE = "merge"


FileContent: TypeAlias = bytes | IO[bytes]


@dataclass(frozen=True, slots=True)
class FormData:
    """Multipart form body: plain fields plus uploaded files."""

    fields: Mapping[str, Any] = field(default_factory=dict)
    files: Mapping[str, FileContent | tuple[str, FileContent] | tuple[str, FileContent, str]] = (
        field(default_factory=dict)
    )


RequestBody: TypeAlias = str | bytes | FormData


@dataclass(frozen=True, slots=True)
class RequestInit:
    """
    Per-request options handed to the transport.

    `None` means "not configured"; a merge only carries over the fields the
    new init actually sets.
    """

    method: str | None = None
    headers: httpx.Headers | None = None
    body: RequestBody | None = None

    @classmethod
    def coerce(cls, value: RequestInit | Mapping[str, Any]) -> RequestInit:
        if isinstance(value, RequestInit):
            return value
        unknown = set(value) - {f.name for f in fields(cls)}
        if unknown:
            raise TypeError(f"Unknown request init option(s): {', '.join(sorted(unknown))}")
        headers = value.get("headers")
        return cls(
            method=value.get("method"),
            headers=httpx.Headers(headers) if headers is not None else None,
            body=value.get("body"),
        )

    def detached(self) -> RequestInit:
        """Return a copy owning its own headers collection."""
        if self.headers is None:
            return self
        return replace(self, headers=httpx.Headers(self.headers))

    def merged(self, other: RequestInit) -> RequestInit:
        """Shallow merge: fields set on `other` win."""
        changes = {f.name: getattr(other, f.name) for f in fields(other)}
        return replace(self, **{k: v for k, v in changes.items() if v is not None})


Transport: TypeAlias = Callable[[str, RequestInit], Awaitable[httpx.Response]]


def _default_transport() -> Transport:
    from .transport import default_transport

    return default_transport


@dataclass(slots=True)
class FetchContext:
    paths: tuple[str, ...] = ()
    query: httpx.QueryParams | None = None
    init: RequestInit | None = None
    responds: tuple[FetchRespond, ...] = ()
    respond: FetchRespond | None = None
    transport: Transport = field(default_factory=_default_transport)

    def copy(self) -> FetchContext:
        init = self.init.detached() if self.init is not None else None
        return replace(self, init=init)

    @property
    def headers(self) -> httpx.Headers:
        if self.init is None or self.init.headers is None:
            return httpx.Headers()
        return self.init.headers

    def with_init(self, **changes: Any) -> RequestInit:
        """Return `init` with `changes` applied, starting from an empty init."""
        return replace(self.init or RequestInit(), **changes)


FetchContextHandle: TypeAlias = Callable[[FetchContext], None]

QueryInput: TypeAlias = (
    str | Mapping[str, Any] | Sequence[tuple[str, Any]] | httpx.QueryParams | None
)
HeadersInput: TypeAlias = Mapping[str, str] | Sequence[tuple[str, str]] | httpx.Headers
