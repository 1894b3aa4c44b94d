"""
httpx-backed transports.

A transport is an async callable `(target, init) -> httpx.Response`. It is the
only place where network I/O happens; errors raised by httpx propagate to the
caller unchanged.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from .context import FormData, RequestInit

logger = logging.getLogger(__name__)

DEFAULT_METHOD = "GET"


def _request_kwargs(init: RequestInit) -> dict[str, Any]:
    kwargs: dict[str, Any] = {}
    if init.headers is not None:
        kwargs["headers"] = init.headers
    body = init.body
    if isinstance(body, FormData):
        kwargs["data"] = dict(body.fields)
        if body.files:
            kwargs["files"] = dict(body.files)
    elif body is not None:
        kwargs["content"] = body
    return kwargs


class HTTPXTransport:
    """
    Send requests through an `httpx.AsyncClient`.

    Pass an existing client to share its connection pool, or let the transport
    own one built from `base_url`, `headers` and an optional low-level httpx
    `transport` (e.g. `httpx.MockTransport` in tests). An owned client is closed
    by `aclose()` or when leaving `async with`.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        *,
        base_url: str = "",
        headers: httpx.Headers | dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        log_requests: bool = False,
    ):
        self._owns_client = client is None
        if client is None:
            client = httpx.AsyncClient(base_url=base_url, headers=headers, transport=transport)
        self._client = client
        self._log_requests = log_requests

    @property
    def client(self) -> httpx.AsyncClient:
        return self._client

    async def __call__(self, target: str, init: RequestInit) -> httpx.Response:
        method = init.method or DEFAULT_METHOD
        if self._log_requests:
            logger.debug("%s %s", method, target)
        response = await self._client.request(method, target, **_request_kwargs(init))
        if self._log_requests:
            logger.debug(
                "%s %s -> %d (%d bytes)", method, target, response.status_code, len(response.content)
            )
        return response

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> HTTPXTransport:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()


async def default_transport(target: str, init: RequestInit) -> httpx.Response:
    """Send one request with a short-lived `httpx.AsyncClient`."""
    async with httpx.AsyncClient() as client:
        return await HTTPXTransport(client)(target, init)
