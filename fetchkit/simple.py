"""
Preconfigured fetchers for JSON APIs.

`simple()` returns a pair of fetchers sharing a base path and the default JSON
responder. `fetch_many` also reads the total row count header, so it resolves
to `[total, rows]`.
"""

from __future__ import annotations

from dataclasses import dataclass

from .config import DEFAULT_BASE, SimpleConfig
from .context import FetchContextHandle, Strategy
from .fetch import Fetcher, create_fetcher
from .handles import with_path, with_respond, with_responds
from .responds import respond_json, with_header_respond


@dataclass(frozen=True, slots=True)
class SimpleApp:
    fetch_one: Fetcher
    fetch_many: Fetcher
    config: SimpleConfig


def simple(
    base: str = DEFAULT_BASE,
    count_header: str | None = None,
    *handles: FetchContextHandle,
) -> SimpleApp:
    """
    Create `fetch_one`/`fetch_many` fetchers for `base`.

    Args:
        base: Base URL or path (default: "/")
        count_header: Total count header name (default: "X-Total-Count")
        handles: Extra binding-time handles, e.g. `with_transport(...)`
    """
    config = SimpleConfig(base=base) if count_header is None else SimpleConfig(base, count_header)
    return simple_from_config(config, *handles)


def simple_from_config(config: SimpleConfig, *handles: FetchContextHandle) -> SimpleApp:
    base_handles = (with_path(config.base), with_respond(respond_json), *handles)
    count_respond = with_header_respond(config.count_header, int)
    return SimpleApp(
        fetch_one=create_fetcher(*base_handles),
        fetch_many=create_fetcher(*base_handles, with_responds([count_respond], Strategy.MERGE)),
        config=config,
    )
