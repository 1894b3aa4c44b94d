"""Tests for the request pipeline and response dispatch."""

from __future__ import annotations

import asyncio

import httpx
import pytest

from fetchkit import (
    MissingPathError,
    MissingResponderError,
    RequestInit,
    Strategy,
    build_target,
    create_fetcher,
    dispatch,
    respond_json,
    respond_text,
    with_header_respond,
    with_headers,
    with_json_body,
    with_method,
    with_path,
    with_query,
    with_respond,
    with_responds,
    with_transport,
)

# =============================================================================
# build_target
# =============================================================================


def test_build_target_joins_segments() -> None:
    assert build_target(("users", "5")) == "users/5"


def test_build_target_collapses_seam_slashes() -> None:
    assert build_target(("/api/", "/users", "5")) == "/api/users/5"
    assert build_target(("https://api.example.com/", "users")) == "https://api.example.com/users"


def test_build_target_appends_query() -> None:
    query = httpx.QueryParams([("a", "1"), ("a", "2")])
    assert build_target(("/search",), query) == "/search?a=1&a=2"
    assert build_target(("/search",), httpx.QueryParams()) == "/search"


def test_build_target_requires_a_segment() -> None:
    with pytest.raises(MissingPathError):
        build_target(("", ""))


# =============================================================================
# Pipeline
# =============================================================================


@pytest.mark.asyncio
async def test_patch_scenario_sends_expected_request(make_transport, json_response) -> None:
    transport = make_transport(json_response({"id": 5, "name": "x"}))
    fetch = create_fetcher(with_path("users"), with_respond(respond_json), with_transport(transport))

    result = await fetch(
        with_path("5", Strategy.MERGE),
        with_method("PATCH"),
        with_json_body({"name": "x"}),
    )

    assert result == {"id": 5, "name": "x"}
    assert transport.calls == [
        (
            "users/5",
            RequestInit(
                method="PATCH",
                headers=httpx.Headers({"Content-Type": "application/json"}),
                body='{"name":"x"}',
            ),
        )
    ]


@pytest.mark.asyncio
async def test_call_without_handles_sends_base_path_and_empty_init(make_transport, json_response) -> None:
    transport = make_transport(json_response({"ok": True}))
    fetch = create_fetcher(with_path("/api/items"), with_respond(respond_json), with_transport(transport))

    assert await fetch() == {"ok": True}
    assert transport.calls == [("/api/items", RequestInit())]


@pytest.mark.asyncio
async def test_query_is_encoded_onto_target(make_transport, json_response) -> None:
    transport = make_transport(json_response([]))
    fetch = create_fetcher(with_path("/search"), with_respond(respond_json), with_transport(transport))

    await fetch(with_query({"q": "a b", "page": 2}), with_method("GET"))

    target, init = transport.calls[0]
    assert target == "/search?q=a+b&page=2"
    assert init.method == "GET"


@pytest.mark.asyncio
async def test_calls_never_change_the_base_context(make_transport, json_response) -> None:
    transport = make_transport(json_response({}), json_response({}))
    fetch = create_fetcher(
        with_path("users"),
        with_headers({"Accept": "application/json"}),
        with_respond(respond_json),
        with_transport(transport),
    )

    await fetch(
        with_path("1", Strategy.MERGE),
        with_headers({"X-Trace": "abc"}, Strategy.MERGE),
        with_query({"a": "1"}),
    )
    await fetch(with_path("2", Strategy.MERGE))

    base = fetch.base
    assert base.paths == ("users",)
    assert base.query is None
    assert base.headers == httpx.Headers({"Accept": "application/json"})
    assert [target for target, _ in transport.calls] == ["users/1?a=1", "users/2"]
    assert "x-trace" not in transport.calls[1][1].headers


@pytest.mark.asyncio
async def test_transport_changing_headers_does_not_leak_into_later_calls(json_response) -> None:
    seen: list[list[tuple[str, str]]] = []

    async def signing(target: str, init: RequestInit) -> httpx.Response:
        assert init.headers is not None
        seen.append(init.headers.multi_items())
        init.headers["X-Signed"] = "sig"
        return json_response({})

    reused = with_headers({"X-Client": "web"}, Strategy.REPLACE)
    fetch = create_fetcher(
        with_path("users"),
        with_headers({"Accept": "application/json"}),
        with_respond(respond_json),
        with_transport(signing),
    )

    await fetch()
    await fetch()
    await fetch(reused)
    await fetch(reused)

    base_headers = [("accept", "application/json")]
    call_headers = [("x-client", "web")]
    assert seen == [base_headers, base_headers, call_headers, call_headers]
    assert fetch.base.headers.multi_items() == [("accept", "application/json")]


@pytest.mark.asyncio
async def test_call_time_handles_see_earlier_call_time_effects(make_transport, json_response) -> None:
    transport = make_transport(json_response({}))
    fetch = create_fetcher(with_respond(respond_json), with_transport(transport))

    await fetch(with_path("a"), with_path("b", Strategy.MERGE), with_path("c", Strategy.MERGE))

    assert transport.calls[0][0] == "a/b/c"


@pytest.mark.asyncio
async def test_missing_path_fails_before_transport(make_transport) -> None:
    transport = make_transport()
    fetch = create_fetcher(with_respond(respond_json), with_transport(transport))

    with pytest.raises(MissingPathError):
        await fetch()
    with pytest.raises(MissingPathError):
        await fetch(with_path(""))
    assert transport.calls == []


@pytest.mark.asyncio
async def test_missing_responder_fails_before_transport(make_transport) -> None:
    transport = make_transport()
    fetch = create_fetcher(with_path("users"), with_transport(transport))

    with pytest.raises(MissingResponderError):
        await fetch()
    assert transport.calls == []


@pytest.mark.asyncio
async def test_call_time_transport_override(make_transport, json_response) -> None:
    bound = make_transport()
    override = make_transport(json_response({"from": "override"}))
    fetch = create_fetcher(with_path("x"), with_respond(respond_json), with_transport(bound))

    assert await fetch(with_transport(override)) == {"from": "override"}
    assert bound.calls == []
    assert len(override.calls) == 1


@pytest.mark.asyncio
async def test_transport_errors_propagate_unchanged() -> None:
    error = httpx.ConnectError("refused")

    async def failing(target: str, init: RequestInit) -> httpx.Response:
        raise error

    fetch = create_fetcher(with_path("x"), with_respond(respond_json), with_transport(failing))

    with pytest.raises(httpx.ConnectError) as exc_info:
        await fetch()
    assert exc_info.value is error


@pytest.mark.asyncio
async def test_fetch_many_style_returns_ordered_pair(make_transport) -> None:
    response = httpx.Response(200, json=[{"id": 1}], headers={"X-Total-Count": "42"})
    transport = make_transport(response)
    fetch = create_fetcher(
        with_path("items"),
        with_respond(respond_json),
        with_transport(transport),
        with_responds([with_header_respond("X-Total-Count", int)], Strategy.MERGE),
    )

    assert await fetch() == [42, [{"id": 1}]]


# =============================================================================
# dispatch
# =============================================================================


@pytest.mark.asyncio
async def test_dispatch_single_responder_is_not_wrapped() -> None:
    response = httpx.Response(200, json={"a": 1})
    assert await dispatch(response, (), respond_json) == {"a": 1}


@pytest.mark.asyncio
async def test_dispatch_order_follows_registration_not_completion() -> None:
    response = httpx.Response(200, json={"a": 1})

    async def slow(res: httpx.Response) -> str:
        await asyncio.sleep(0.02)
        return "slow"

    async def fast(res: httpx.Response) -> str:
        return "fast"

    assert await dispatch(response, (slow, fast)) == ["slow", "fast"]
    assert await dispatch(response, (fast,), slow) == ["fast", "slow"]


@pytest.mark.asyncio
async def test_dispatch_lets_every_responder_read_the_body() -> None:
    response = httpx.Response(200, json={"a": 1})
    assert await dispatch(response, (respond_text, respond_json), respond_json) == [
        '{"a":1}',
        {"a": 1},
        {"a": 1},
    ]


@pytest.mark.asyncio
async def test_dispatch_accepts_sync_responders() -> None:
    response = httpx.Response(204, headers={"ETag": "v1"})
    assert await dispatch(response, (with_header_respond("etag"), lambda res: res.status_code)) == [
        "v1",
        204,
    ]


@pytest.mark.asyncio
async def test_dispatch_propagates_first_failure() -> None:
    response = httpx.Response(200, json={})

    async def broken(res: httpx.Response) -> None:
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError, match="boom"):
        await dispatch(response, (respond_json, broken))


@pytest.mark.asyncio
async def test_dispatch_without_responders_fails() -> None:
    with pytest.raises(MissingResponderError):
        await dispatch(httpx.Response(200), ())


class _AsyncChunks(httpx.AsyncByteStream):
    def __init__(self, *chunks: bytes) -> None:
        self._chunks = chunks

    async def __aiter__(self):
        for chunk in self._chunks:
            yield chunk


@pytest.mark.asyncio
async def test_dispatch_buffers_unread_stream_for_every_responder() -> None:
    response = httpx.Response(
        200,
        headers={"Content-Type": "application/json"},
        stream=_AsyncChunks(b'{"a"', b":1}"),
    )

    assert await dispatch(response, (respond_text, respond_json), respond_json) == [
        '{"a":1}',
        {"a": 1},
        {"a": 1},
    ]


@pytest.mark.asyncio
async def test_dispatch_cancels_pending_responders_on_failure() -> None:
    response = httpx.Response(200, json={})
    cancelled = asyncio.Event()

    async def slow(res: httpx.Response) -> None:
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            cancelled.set()
            raise

    async def broken(res: httpx.Response) -> None:
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError, match="boom"):
        await dispatch(response, (slow, broken))

    await asyncio.wait_for(cancelled.wait(), timeout=1)
