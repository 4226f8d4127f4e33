"""
Support SDK

Fluent HTTP client facade over a pluggable transport.
"""

from support_sdk.http import FileUpload, HttpClient, HttpResult
from support_sdk.schemas import (
    HttpError,
    SerializationError,
    TransportError,
    UnavailableError,
    ValidationError,
)

__version__ = "0.1.0"

__all__ = [
    "FileUpload",
    "HttpClient",
    "HttpResult",
    "HttpError",
    "SerializationError",
    "TransportError",
    "UnavailableError",
    "ValidationError",
]
