"""
Query string building.

Produces the same encoding PHP's http_build_query does, which is what
form-encoded bodies, query strings and the Cookie header are built with.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Any
from urllib.parse import quote_plus

from pydantic import BaseModel


def _iter_items(data: Any):
    if isinstance(data, BaseModel):
        data = data.model_dump(mode="json")
    if isinstance(data, Mapping):
        return data.items()
    if isinstance(data, (list, tuple)):
        return enumerate(data)
    raise TypeError(f"Cannot build a query from {type(data).__name__}")


def _scalar(value: Any) -> str:
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, Enum):
        return _scalar(value.value)
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


def _flatten(prefix: str, value: Any, pairs: list[tuple[str, str]]) -> None:
    if value is None:
        return
    if isinstance(value, (Mapping, list, tuple, BaseModel)):
        for key, item in _iter_items(value):
            _flatten(f"{prefix}[{key}]", item, pairs)
        return
    pairs.append((prefix, _scalar(value)))


def flatten_query(data: Any) -> list[tuple[str, str]]:
    """
    Flatten nested data into (key, value) pairs.

    Nested mappings and sequences become ``key[sub]`` / ``key[0]`` keys,
    booleans become ``1``/``0`` and None values are dropped.
    """
    pairs: list[tuple[str, str]] = []
    for key, value in _iter_items(data):
        _flatten(str(key), value, pairs)
    return pairs


def build_query(data: Any, separator: str = "&") -> str:
    """
    URL-encode data as a query string.

    Example:
        >>> build_query({"q": "keyword", "page": 2})
        'q=keyword&page=2'
        >>> build_query({"filter": {"tags": ["a", "b"]}})
        'filter%5Btags%5D%5B0%5D=a&filter%5Btags%5D%5B1%5D=b'
    """
    return separator.join(
        f"{quote_plus(key)}={quote_plus(value)}" for key, value in flatten_query(data)
    )


def append_query(url: str, data: Any) -> str:
    """Append encoded data to a URL as ``url?query``."""
    return f"{url}?{build_query(data)}"


def is_empty(data: Any) -> bool:
    """True for None and for empty strings, bytes, mappings and sequences."""
    if data is None:
        return True
    if isinstance(data, BaseModel):
        return not data.model_dump(exclude_none=True)
    try:
        return len(data) == 0
    except TypeError:
        return False
