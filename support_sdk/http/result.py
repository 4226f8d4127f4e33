"""
HTTP Result

Immutable outcome of one execution. A new HttpResult is built for every
request, so nothing from a previous call can leak into the next one.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from support_sdk.schemas.errors import HttpError, TransportError
from support_sdk.schemas.serialization import JsonSerializer

from .capture import parse_header_lines
from .transport import TransportReply


def is_http_error_status(status_code: int) -> bool:
    return 400 <= status_code < 600


@dataclass(frozen=True)
class HttpResult:
    """
    Response state of a single execution.

    ``body`` is None when the transport failed (no response at all), which
    is distinct from an empty body.
    """
    body: Optional[bytes] = None
    status_code: int = 0
    response_headers: tuple[str, ...] = ()
    request_headers: tuple[str, ...] = ()
    # Error records carry a details dict; hashing uses the plain fields only.
    transport_error: Optional[TransportError] = field(default=None, hash=False)
    http_error: Optional[HttpError] = field(default=None, hash=False)
    effective_url: str = ""
    info: dict[str, Any] = field(default_factory=dict, hash=False)

    @classmethod
    def from_reply(cls, reply: TransportReply, response_headers: tuple[str, ...]) -> "HttpResult":
        """Derive the combined error state from a transport reply and captured headers."""
        transport_error = None
        if reply.error_code != 0:
            transport_error = TransportError(
                code=int(reply.error_code),
                message=reply.error_message or "",
                details={"url": reply.effective_url},
            )

        status_code = reply.status_code or 0
        http_error = None
        if is_http_error_status(status_code):
            http_error = HttpError(
                code=status_code,
                message=response_headers[0] if response_headers else "",
                details={"url": reply.effective_url},
            )

        request_headers = tuple(
            segment for segment in reply.request_header_text.split("\r\n") if segment
        )

        return cls(
            body=reply.body,
            status_code=status_code,
            response_headers=tuple(response_headers),
            request_headers=request_headers,
            transport_error=transport_error,
            http_error=http_error,
            effective_url=reply.effective_url,
            info=dict(reply.info),
        )

    # -- combined error ------------------------------------------------------

    @property
    def error(self) -> bool:
        return self.transport_error is not None or self.http_error is not None

    @property
    def error_code(self) -> int:
        """Transport code if the transport failed, else the HTTP status, else 0."""
        if self.transport_error is not None:
            return self.transport_error.code
        if self.http_error is not None:
            return self.status_code
        return 0

    @property
    def http_error_message(self) -> str:
        # The first captured line is the status line of the final response.
        if not self.error:
            return ""
        return self.response_headers[0] if self.response_headers else ""

    @property
    def error_message(self) -> str:
        if self.transport_error is not None:
            return self.transport_error.message
        return self.http_error_message

    @property
    def transport_error_code(self) -> int:
        return self.transport_error.code if self.transport_error else 0

    @property
    def transport_error_message(self) -> str:
        return self.transport_error.message if self.transport_error else ""

    # -- status classes --------------------------------------------------------

    def is_info(self) -> bool:
        return 100 <= self.status_code < 200

    def is_success(self) -> bool:
        return 200 <= self.status_code < 300

    def is_redirect(self) -> bool:
        return 300 <= self.status_code < 400

    def is_error(self) -> bool:
        return is_http_error_status(self.status_code)

    def is_client_error(self) -> bool:
        return 400 <= self.status_code < 500

    def is_server_error(self) -> bool:
        return 500 <= self.status_code < 600

    # -- content ---------------------------------------------------------------

    def get_response_headers(self, key: Optional[str] = None):
        """
        Parsed response headers.

        Without a key, returns a dict of lower-cased names to values. With a
        key, returns that header's value (case-insensitive) or None.
        """
        headers = parse_header_lines(self.response_headers)
        if key:
            return headers.get(key.strip().lower())
        return headers

    @property
    def text(self) -> str:
        if self.body is None:
            return ""
        return self.body.decode("utf-8", errors="replace")

    def json(self, serializer: Optional[JsonSerializer] = None) -> Any:
        """Parse the body as JSON; raises SerializationError if it isn't."""
        return (serializer or JsonSerializer()).decode(self.body or b"")

    def to_dict(self) -> dict[str, Any]:
        return {
            "url": self.effective_url,
            "status_code": self.status_code,
            "error": self.error,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "response_headers": list(self.response_headers),
            "request_headers": list(self.request_headers),
            "transport_error": self.transport_error.model_dump() if self.transport_error else None,
            "http_error": self.http_error.model_dump() if self.http_error else None,
        }
