"""
Handle combinators.

Every combinator is a factory: it takes configuration and returns a
`FetchContextHandle` that updates a `FetchContext`. List- and record-valued
fields accept a `Strategy`:

- `Strategy.SET_ONCE` (default): raise `ConfigurationConflictError` if the field
  is already populated;
- `Strategy.REPLACE`: overwrite unconditionally;
- `Strategy.MERGE`: combine with the existing value (see each combinator).

Handles never mutate the values they receive or the values already stored in
the context; they always assign freshly built ones.

Example:
    fetch_user = create_fetcher(
        with_path("https://api.example.com/users"),
        with_respond(respond_json),
    )
    user = await fetch_user(
        with_path("5", Strategy.MERGE),
        with_method("PATCH"),
        with_json_body({"name": "x"}),
    )
"""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from typing import Any

import httpx
from pydantic import BaseModel

from .context import (
    FetchContext,
    FetchContextHandle,
    FetchRespond,
    FormData,
    HeadersInput,
    QueryInput,
    RequestInit,
    Strategy,
    Transport,
)
from .exceptions import ConfigurationConflictError

JSON_CONTENT_TYPE = "application/json"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


def merge_headers(target: HeadersInput | None, *sources: HeadersInput) -> httpx.Headers:
    """
    Case-insensitive union of header collections.

    A header present in several inputs keeps every value, in input order.
    """
    items: list[tuple[str, str]] = []
    for headers in (target, *sources):
        if headers is None:
            continue
        items.extend(httpx.Headers(headers).multi_items())
    return httpx.Headers(items)


def merge_query(target: QueryInput, *sources: QueryInput) -> httpx.QueryParams:
    """Concatenate query pairs; duplicate keys are kept, insertion order preserved."""
    items: list[tuple[str, str]] = []
    for query in (target, *sources):
        if query is None:
            continue
        items.extend(httpx.QueryParams(query).multi_items())
    return httpx.QueryParams(items)


# =============================================================================
# Context handles
# =============================================================================


def with_transport(transport: Transport) -> FetchContextHandle:
    """Use `transport` to send the request."""

    def handle(ctx: FetchContext) -> None:
        ctx.transport = transport

    return handle


def with_path(path: str, strategy: Strategy = Strategy.SET_ONCE) -> FetchContextHandle:
    """Configure the request path; `MERGE` appends a segment."""
    if strategy is Strategy.MERGE:

        def merge(ctx: FetchContext) -> None:
            ctx.paths = (*ctx.paths, path)

        return merge

    if strategy is Strategy.REPLACE:

        def replace(ctx: FetchContext) -> None:
            ctx.paths = (path,)

        return replace

    def set_once(ctx: FetchContext) -> None:
        if ctx.paths:
            raise ConfigurationConflictError("path")
        ctx.paths = (path,)

    return set_once


def with_query(query: QueryInput, strategy: Strategy = Strategy.SET_ONCE) -> FetchContextHandle:
    """
    Configure the query string.

    `query` is anything `httpx.QueryParams` accepts. `MERGE` appends the new
    pairs after the existing ones without dropping existing keys.
    """
    params = httpx.QueryParams(query)

    if strategy is Strategy.MERGE:

        def merge(ctx: FetchContext) -> None:
            ctx.query = merge_query(ctx.query, params)

        return merge

    if strategy is Strategy.REPLACE:

        def replace(ctx: FetchContext) -> None:
            ctx.query = params

        return replace

    def set_once(ctx: FetchContext) -> None:
        if ctx.query:
            raise ConfigurationConflictError("query")
        ctx.query = params

    return set_once


def with_request_init(
    init: RequestInit | Mapping[str, Any], strategy: Strategy = Strategy.SET_ONCE
) -> FetchContextHandle:
    """Configure the request init as a whole; `MERGE` is a shallow merge."""
    value = RequestInit.coerce(init)

    if strategy is Strategy.MERGE:

        def merge(ctx: FetchContext) -> None:
            ctx.init = value if ctx.init is None else ctx.init.merged(value)

        return merge

    if strategy is Strategy.REPLACE:

        def replace(ctx: FetchContext) -> None:
            ctx.init = value

        return replace

    def set_once(ctx: FetchContext) -> None:
        if ctx.init is not None:
            raise ConfigurationConflictError("init")
        ctx.init = value

    return set_once


def with_headers(
    headers: HeadersInput, strategy: Strategy = Strategy.SET_ONCE
) -> FetchContextHandle:
    """Configure request headers; `MERGE` keeps values present on both sides."""
    value = httpx.Headers(headers)

    if strategy is Strategy.MERGE:

        def merge(ctx: FetchContext) -> None:
            ctx.init = ctx.with_init(headers=merge_headers(ctx.init and ctx.init.headers, value))

        return merge

    if strategy is Strategy.REPLACE:

        def replace(ctx: FetchContext) -> None:
            ctx.init = ctx.with_init(headers=value)

        return replace

    def set_once(ctx: FetchContext) -> None:
        if ctx.headers:
            raise ConfigurationConflictError("headers")
        ctx.init = ctx.with_init(headers=value)

    return set_once


def with_method(method: str) -> FetchContextHandle:
    """Set the HTTP method, keeping the rest of the init."""

    def handle(ctx: FetchContext) -> None:
        ctx.init = ctx.with_init(method=method)

    return handle


def _body_handle(body: str | bytes | FormData, content_type: str | None) -> FetchContextHandle:
    extra = {"Content-Type": content_type} if content_type else None

    def handle(ctx: FetchContext) -> None:
        headers = ctx.init.headers if ctx.init else None
        if extra is not None:
            headers = merge_headers(headers, extra)
        ctx.init = ctx.with_init(headers=headers, body=body)

    return handle


def with_json_body(body: Any) -> FetchContextHandle:
    """
    Send `body` as JSON.

    Strings are sent as-is. Mappings, sequences and pydantic models are
    serialized compactly. `Content-Type: application/json` is merged into the
    existing headers.
    """
    if isinstance(body, str):
        payload = body
    elif isinstance(body, BaseModel):
        payload = body.model_dump_json(by_alias=True)
    elif isinstance(body, (Mapping, Sequence)) and not isinstance(body, (bytes, bytearray)):
        payload = json.dumps(body, separators=(",", ":"), ensure_ascii=False)
    else:
        raise TypeError(
            f"JSON body must be a string, a mapping, a sequence or a pydantic model, "
            f"not {type(body).__name__}"
        )
    return _body_handle(payload, JSON_CONTENT_TYPE)


def with_form_body(body: Mapping[str, Any] | Sequence[tuple[str, Any]] | str) -> FetchContextHandle:
    """Send `body` URL-encoded as `application/x-www-form-urlencoded`."""
    return _body_handle(str(httpx.QueryParams(body)), FORM_CONTENT_TYPE)


def with_form_data(form: FormData) -> FetchContextHandle:
    """Send a multipart body; the transport sets the boundary header."""
    return _body_handle(form, None)


def with_respond(respond: FetchRespond, strategy: Strategy = Strategy.SET_ONCE) -> FetchContextHandle:
    """Configure the single responder whose result is returned unwrapped."""
    if strategy is Strategy.MERGE:
        raise ValueError("The single responder cannot be merged; use with_responds() instead.")

    if strategy is Strategy.REPLACE:

        def replace(ctx: FetchContext) -> None:
            ctx.respond = respond

        return replace

    def set_once(ctx: FetchContext) -> None:
        if ctx.respond is not None:
            raise ConfigurationConflictError("respond")
        ctx.respond = respond

    return set_once


def with_responds(
    responds: Sequence[FetchRespond], strategy: Strategy = Strategy.SET_ONCE
) -> FetchContextHandle:
    """
    Configure the responder list.

    `MERGE` places the new responders before the existing ones.
    """
    value = tuple(responds)

    if strategy is Strategy.MERGE:

        def merge(ctx: FetchContext) -> None:
            ctx.responds = (*value, *ctx.responds)

        return merge

    if strategy is Strategy.REPLACE:

        def replace(ctx: FetchContext) -> None:
            ctx.responds = value

        return replace

    def set_once(ctx: FetchContext) -> None:
        if ctx.responds:
            raise ConfigurationConflictError("responds")
        ctx.responds = value

    return set_once


def compose(*handles: FetchContextHandle) -> FetchContextHandle:
    """Apply `handles` in order as a single handle."""

    def handle(ctx: FetchContext) -> None:
        for h in handles:
            h(ctx)

    return handle
