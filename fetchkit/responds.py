"""
Response consumers ("responders").

A responder takes the `httpx.Response` produced by the transport and returns a
derived value. Responders may be plain functions or coroutines. The fetcher
buffers the body before dispatch, so several responders can read the same
response.
"""

from __future__ import annotations

from typing import Any, TypeVar

import httpx
from pydantic import TypeAdapter

from .context import FetchHeaderRespondTransform, FetchRespond
from .exceptions import FetchError

T = TypeVar("T")


def _is_json(response: httpx.Response) -> bool:
    content_type = response.headers.get("Content-Type")
    return bool(content_type) and content_type.strip().lower().startswith("application/json")


def _error_body(response: httpx.Response) -> Any:
    if _is_json(response) and response.content:
        try:
            return response.json()
        except ValueError:
            # Declared JSON but unparseable; keep the raw text.
            pass
    return response.text


async def respond_json(response: httpx.Response) -> Any:
    """
    Return the parsed JSON body of a successful response.

    An empty success body (e.g. 204) yields `None`. Any non-2xx status raises
    `FetchError` with the decoded error body attached: parsed JSON when the
    server declared `application/json`, text otherwise.
    """
    if response.is_success:
        if not response.content:
            return None
        return response.json()
    raise FetchError(response, _error_body(response))


async def respond_text(response: httpx.Response) -> str:
    """Return the body text of a successful response; raise `FetchError` otherwise."""
    if response.is_success:
        return response.text
    raise FetchError(response, _error_body(response))


def respond_model(type_: type[T]) -> FetchRespond:
    """Like `respond_json`, then validate the payload into `type_` with pydantic."""
    adapter = TypeAdapter(type_)

    async def respond(response: httpx.Response) -> T:
        return adapter.validate_python(await respond_json(response))

    return respond


def with_header_respond(
    header: str, transform: FetchHeaderRespondTransform | None = None
) -> FetchRespond:
    """
    Read one response header.

    `transform` (e.g. `int`) is applied to the header value when it is present;
    a missing header yields `None`.
    """

    def respond(response: httpx.Response) -> Any:
        content = response.headers.get(header)
        if content is None or transform is None:
            return content
        return transform(content)

    return respond
