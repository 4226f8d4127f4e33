"""
HTTP Client Module

Stateful HTTP client facade with header capture and unified error state.
"""

from .capture import CaptureState, HeaderCapture, parse_header_lines
from .client import HttpClient
from .query import build_query
from .result import HttpResult
from .transport import (
    AuthType,
    FileUpload,
    RequestsTransport,
    Transport,
    TransportErrorCode,
    TransportOptions,
    TransportReply,
    TransportRequest,
)

__all__ = [
    "AuthType",
    "CaptureState",
    "FileUpload",
    "HeaderCapture",
    "HttpClient",
    "HttpResult",
    "RequestsTransport",
    "Transport",
    "TransportErrorCode",
    "TransportOptions",
    "TransportReply",
    "TransportRequest",
    "build_query",
    "parse_header_lines",
]
