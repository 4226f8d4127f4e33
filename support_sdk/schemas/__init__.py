"""
Schemas Module

Error taxonomy and JSON serialization shared by the HTTP client.
"""

from .errors import (
    ErrorCodes,
    HttpError,
    RequestError,
    SerializationError,
    SupportSdkException,
    TransportError,
    UnavailableError,
    ValidationError,
)
from .serialization import JsonSerializer, format_datetime, prepare_value

__all__ = [
    "ErrorCodes",
    "HttpError",
    "RequestError",
    "SerializationError",
    "SupportSdkException",
    "TransportError",
    "UnavailableError",
    "ValidationError",
    "JsonSerializer",
    "format_datetime",
    "prepare_value",
]
