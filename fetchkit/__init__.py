"""
fetchkit: composable HTTP request building.

Handles configure a request context, responders turn the response into values,
and a fetcher ties them together around an injectable async transport.

Example:
    ```python
    from fetchkit import Strategy, create_fetcher, respond_json, with_path, with_respond

    users = create_fetcher(with_path("https://api.example.com/users"), with_respond(respond_json))
    user = await users(with_path("5", Strategy.MERGE))
    ```
"""

from __future__ import annotations

from .config import SimpleConfig
from .context import FetchContext, FetchContextHandle, FetchRespond, FormData, RequestInit, Strategy
from .exceptions import (
    ConfigurationConflictError,
    FetchError,
    FetchKitError,
    MissingIdFieldError,
    MissingPathError,
    MissingResponderError,
)
from .fetch import Fetcher, build_target, create_fetcher, dispatch
from .handles import (
    compose,
    merge_headers,
    merge_query,
    with_form_body,
    with_form_data,
    with_headers,
    with_json_body,
    with_method,
    with_path,
    with_query,
    with_request_init,
    with_respond,
    with_responds,
    with_transport,
)
from .provider import ListResult, SimpleDataProvider, extract_id
from .responds import respond_json, respond_model, respond_text, with_header_respond
from .simple import SimpleApp, simple, simple_from_config
from .transport import HTTPXTransport, default_transport

__version__ = "0.1.0"

__all__ = [
    # Context
    "FetchContext",
    "FetchContextHandle",
    "FetchRespond",
    "FormData",
    "RequestInit",
    "Strategy",
    # Pipeline
    "Fetcher",
    "build_target",
    "create_fetcher",
    "dispatch",
    # Handles
    "compose",
    "merge_headers",
    "merge_query",
    "with_form_body",
    "with_form_data",
    "with_headers",
    "with_json_body",
    "with_method",
    "with_path",
    "with_query",
    "with_request_init",
    "with_respond",
    "with_responds",
    "with_transport",
    # Responders
    "respond_json",
    "respond_model",
    "respond_text",
    "with_header_respond",
    # Transport
    "HTTPXTransport",
    "default_transport",
    # Simple app / provider
    "ListResult",
    "SimpleApp",
    "SimpleConfig",
    "SimpleDataProvider",
    "extract_id",
    "simple",
    "simple_from_config",
    # Exceptions
    "ConfigurationConflictError",
    "FetchError",
    "FetchKitError",
    "MissingIdFieldError",
    "MissingPathError",
    "MissingResponderError",
]
