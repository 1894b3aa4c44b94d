from __future__ import annotations

import httpx
import pytest

from fetchkit import RequestInit


class RecordingTransport:
    """Async transport double returning canned responses and recording calls."""

    def __init__(self, *responses: httpx.Response) -> None:
        self._responses = list(responses)
        self.calls: list[tuple[str, RequestInit]] = []

    async def __call__(self, target: str, init: RequestInit) -> httpx.Response:
        self.calls.append((target, init))
        return self._responses.pop(0)


@pytest.fixture
def make_transport() -> type[RecordingTransport]:
    return RecordingTransport


@pytest.fixture
def json_response():
    def make(body: object, status_code: int = 200, headers: dict[str, str] | None = None) -> httpx.Response:
        return httpx.Response(status_code, json=body, headers=headers)

    return make
