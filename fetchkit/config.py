"""
Configuration for the simple app and data provider.
"""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_BASE = "/"
DEFAULT_COUNT_HEADER = "X-Total-Count"


@dataclass(frozen=True, slots=True)
class SimpleConfig:
    """
    Settings shared by `simple()` and `SimpleDataProvider`.

    Attributes:
        base: Base URL or base path every request starts from
        count_header: Response header carrying the total row count for list calls
    """

    base: str = DEFAULT_BASE
    count_header: str = DEFAULT_COUNT_HEADER
