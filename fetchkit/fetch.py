"""
Request pipeline.

`create_fetcher()` applies binding-time handles once to build a base context.
Each call copies that context, applies call-time handles, validates the result,
sends the request through the context's transport and hands the response to
the configured responders.
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Sequence
from typing import Any

import httpx

from .context import FetchContext, FetchContextHandle, FetchRespond, RequestInit
from .exceptions import MissingPathError, MissingResponderError


def build_target(paths: Sequence[str], query: httpx.QueryParams | None = None) -> str:
    """
    Join path segments with `/` and append the encoded query string.

    Unlike a plain `"/".join(paths)`, empty segments are skipped and slashes at
    the seams are collapsed, so `("/api/", "users")` gives `/api/users` rather
    than `/api//users` and the default base `"/"` does not produce `//users`.
    """
    segments = [p for p in paths if p]
    if not segments:
        raise MissingPathError()
    target = segments[0]
    for segment in segments[1:]:
        target = f"{target.rstrip('/')}/{segment.lstrip('/')}"
    if query:
        target = f"{target}?{query}"
    return target


async def _invoke(respond: FetchRespond, response: httpx.Response) -> Any:
    result = respond(response)
    if inspect.isawaitable(result):
        result = await result
    return result


async def dispatch(
    response: httpx.Response,
    responds: Sequence[FetchRespond],
    respond: FetchRespond | None = None,
) -> Any:
    """
    Apply responders to one response.

    A lone `respond` returns its result directly. Otherwise `responds` and then
    `respond` run concurrently and their results come back as a list in that
    order. The first failing responder's exception propagates; responders still
    running are cancelled and their results discarded.
    """
    if respond is None and not responds:
        raise MissingResponderError()

    # Buffer once so every responder reads the same content.
    await response.aread()

    if respond is not None and not responds:
        return await _invoke(respond, response)

    consumers = [*responds]
    if respond is not None:
        consumers.append(respond)
    tasks = [asyncio.ensure_future(_invoke(c, response)) for c in consumers]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            task.cancel()
        raise


class Fetcher:
    """
    A reusable request pipeline.

    Binding-time handles run once in the constructor; the resulting base
    context is the template every call starts from and is never changed by a
    call.
    """

    def __init__(self, *handles: FetchContextHandle):
        ctx = FetchContext()
        for handle in handles:
            handle(ctx)
        self._base = ctx

    @property
    def base(self) -> FetchContext:
        """A copy of the binding-time context."""
        return self._base.copy()

    def prepare(self, *handles: FetchContextHandle) -> FetchContext:
        """Copy the base context and apply call-time `handles` to it."""
        ctx = self._base.copy()
        for handle in handles:
            handle(ctx)
        return ctx

    async def __call__(self, *handles: FetchContextHandle) -> Any:
        ctx = self.prepare(*handles)
        if not any(ctx.paths):
            raise MissingPathError()
        if ctx.respond is None and not ctx.responds:
            raise MissingResponderError()

        target = build_target(ctx.paths, ctx.query)
        init = ctx.init.detached() if ctx.init is not None else RequestInit()
        response = await ctx.transport(target, init)
        return await dispatch(response, ctx.responds, ctx.respond)


def create_fetcher(*handles: FetchContextHandle) -> Fetcher:
    """Create a `Fetcher` configured by the binding-time `handles`."""
    return Fetcher(*handles)
