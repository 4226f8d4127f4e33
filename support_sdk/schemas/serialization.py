"""
JSON Serialization

Encoder and decoder used for JSON request bodies and JSON responses.
Every failure surfaces as SerializationError so callers handle a single
exception type regardless of what the underlying codec raised.
"""

import json
import math
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel

from .errors import SerializationError

# Compact separators, same output shape as PHP's json_encode
JSON_SEPARATORS: tuple[str, str] = (",", ":")


def format_datetime(dt: datetime) -> str:
    """
    Format a datetime as ISO-8601 in UTC with a Z suffix.

    Naive datetimes are treated as UTC; aware ones are converted.
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    else:
        dt = dt.astimezone(timezone.utc)
    if dt.microsecond == 0:
        return dt.strftime("%Y-%m-%dT%H:%M:%SZ")
    return dt.strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def prepare_value(value: Any, path: str = "") -> Any:
    """
    Recursively convert a value into plain JSON types.

    Args:
        value: Any Python value.
        path: Current path for error reporting.

    Returns:
        A structure made of dict, list, str, int, float, bool and None.

    Raises:
        SerializationError: If the value contains a non-finite float or a
            type that has no JSON representation.
    """
    if value is None or isinstance(value, (bool, int, str)):
        return value

    if isinstance(value, float):
        if not math.isfinite(value):
            raise SerializationError(
                message=f"Inf and NaN cannot be JSON encoded: {value}",
                details={"path": path, "value": str(value)},
            )
        return value

    if isinstance(value, datetime):
        return format_datetime(value)

    if isinstance(value, date):
        return value.isoformat()

    if isinstance(value, Enum):
        return prepare_value(value.value, path)

    if isinstance(value, BaseModel):
        return prepare_value(value.model_dump(mode="json", by_alias=True), path)

    if isinstance(value, dict):
        return {
            str(k): prepare_value(v, f"{path}.{k}" if path else str(k))
            for k, v in value.items()
        }

    if isinstance(value, (list, tuple, set, frozenset)):
        return [prepare_value(item, f"{path}[{i}]") for i, item in enumerate(value)]

    if isinstance(value, bytes):
        try:
            return value.decode("utf-8")
        except UnicodeDecodeError as e:
            raise SerializationError(
                message="Malformed UTF-8 characters, possibly incorrectly encoded",
                details={"path": path, "error": str(e)},
            ) from e

    raise SerializationError(
        message=f"Type is not supported: {type(value).__name__}",
        details={"path": path, "type": type(value).__name__},
    )


class JsonSerializer:
    """
    JSON codec for request bodies and response payloads.

    Usage:
        serializer = JsonSerializer()
        body = serializer.encode({"username": "john"})
        data = serializer.decode(response.body)
    """

    def __init__(self, *, ensure_ascii: bool = False, sort_keys: bool = False) -> None:
        self.ensure_ascii = ensure_ascii
        self.sort_keys = sort_keys

    def encode(self, value: Any) -> str:
        """
        Serialize a value to a compact JSON string.

        Raises:
            SerializationError: If serialization fails.
        """
        try:
            return json.dumps(
                prepare_value(value),
                separators=JSON_SEPARATORS,
                ensure_ascii=self.ensure_ascii,
                sort_keys=self.sort_keys,
                allow_nan=False,
            )
        except SerializationError:
            raise
        except (TypeError, ValueError, RecursionError) as e:
            raise SerializationError(
                message=f"Failed to encode JSON: {e}",
                details={"type": type(value).__name__, "error": str(e)},
            ) from e

    def decode(self, data: str | bytes) -> Any:
        """
        Parse a JSON document.

        Raises:
            SerializationError: If the document is not valid JSON.
        """
        try:
            if isinstance(data, bytes):
                data = data.decode("utf-8")
            return json.loads(data)
        except (UnicodeDecodeError, ValueError) as e:
            raise SerializationError(
                message=f"Failed to decode JSON: {e}",
                details={"error": str(e)},
            ) from e
