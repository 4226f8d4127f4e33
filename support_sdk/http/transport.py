"""
HTTP Transport

The transport performs one blocking exchange per call and reports what
happened: body, error code and message, status and outgoing headers. It
never raises for network failures; those come back as libcurl-compatible
error codes on the reply.
"""

from __future__ import annotations

import logging
import mimetypes
import time
from abc import ABC, abstractmethod
from collections.abc import Mapping
from contextlib import ExitStack
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from pathlib import Path
from typing import Any, Callable, Optional, Union
from urllib.parse import urlsplit

from support_sdk.config.runtime import DEFAULT_ENCODING, DEFAULT_USER_AGENT
from support_sdk.schemas.errors import UnavailableError

logger = logging.getLogger(__name__)

HeaderCallback = Callable[[str], int]


class TransportErrorCode(IntEnum):
    """Error codes reported on TransportReply, numbered as libcurl numbers them."""
    OK = 0
    UNSUPPORTED_PROTOCOL = 1
    URL_MALFORMAT = 3
    COULDNT_RESOLVE_PROXY = 5
    COULDNT_RESOLVE_HOST = 6
    COULDNT_CONNECT = 7
    READ_ERROR = 26
    OPERATION_TIMEDOUT = 28
    SSL_CONNECT_ERROR = 35
    TOO_MANY_REDIRECTS = 47
    GOT_NOTHING = 52
    RECV_ERROR = 56
    PEER_FAILED_VERIFICATION = 60
    BAD_CONTENT_ENCODING = 61
    PROXY = 97


class AuthType(str, Enum):
    BASIC = "basic"
    DIGEST = "digest"


@dataclass(frozen=True)
class FileUpload:
    """
    Marks a form field as a file to upload.

    A form payload containing one of these is sent as multipart/form-data
    instead of being URL-encoded.
    """
    path: Union[str, Path]
    mime_type: Optional[str] = None
    filename: Optional[str] = None

    def open(self, stack: ExitStack) -> tuple[str, Any, str]:
        path = Path(self.path)
        mime = self.mime_type or mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        handle = stack.enter_context(open(path, "rb"))
        return (self.filename or path.name, handle, mime)


Body = Union[str, bytes, Mapping[str, Any], None]


@dataclass
class TransportOptions:
    """Options that persist on a transport handle across requests."""
    user_agent: str = DEFAULT_USER_AGENT
    referer: Optional[str] = None
    auth: Optional[tuple[AuthType, str, str]] = None
    connect_timeout: float = 10.0
    timeout: float = 10.0
    verify_peer: bool = False
    verify_host: bool = False
    encoding: Optional[str] = DEFAULT_ENCODING
    verbose: bool = False
    follow_redirects: bool = False
    capture_request_headers: bool = True


@dataclass(frozen=True)
class TransportRequest:
    method: str
    url: str
    body: Body = None
    header_lines: tuple[str, ...] = ()
    cookie: Optional[str] = None
    options: TransportOptions = field(default_factory=TransportOptions)


@dataclass(frozen=True)
class TransportReply:
    """
    Outcome of one exchange.

    ``body`` is None when the exchange failed, which is distinct from an
    empty body.
    """
    body: Optional[bytes]
    error_code: int = 0
    error_message: str = ""
    status_code: int = 0
    effective_url: str = ""
    request_header_text: str = ""
    info: dict[str, Any] = field(default_factory=dict, hash=False)


class Transport(ABC):
    """A handle able to perform blocking HTTP exchanges."""

    name: str = "transport"

    @abstractmethod
    def perform(self, request: TransportRequest, on_header: HeaderCallback) -> TransportReply:
        """
        Execute one request.

        ``on_header`` must be called with every received header line,
        status lines and block-terminating blank lines included.
        """

    @abstractmethod
    def close(self) -> None:
        """Release the handle. Calling it twice is a no-op."""

    @property
    @abstractmethod
    def closed(self) -> bool:
        ...


def _hostname_unchecked_adapter():
    from requests.adapters import HTTPAdapter

    class HostnameUncheckedAdapter(HTTPAdapter):
        """Verifies the certificate chain but not the host name."""

        def init_poolmanager(self, *args: Any, **kwargs: Any) -> None:
            kwargs["assert_hostname"] = False
            super().init_poolmanager(*args, **kwargs)

    return HostnameUncheckedAdapter()


_HTTP_VERSIONS = {10: "HTTP/1.0", 11: "HTTP/1.1", 20: "HTTP/2"}

_READ_CHUNK_SIZE = 64 * 1024

_RESOLVE_MARKERS = (
    "name or service not known",
    "nodename nor servname",
    "getaddrinfo failed",
    "failed to resolve",
    "name resolution",
)


class RequestsTransport(Transport):
    """
    Transport backed by a requests.Session.

    Usage:
        transport = RequestsTransport()
        reply = transport.perform(TransportRequest("GET", url), capture.feed)
        transport.close()
    """

    name = "requests"

    def __init__(self) -> None:
        try:
            import requests
        except ImportError as e:
            raise UnavailableError(
                "The requests library is not installed: pip install requests",
                transport=self.name,
            ) from e

        self._session = requests.Session()
        # Only headers set on the client go out; no session defaults.
        self._session.headers.clear()
        self._session.headers["Accept"] = "*/*"
        self._default_https_adapter = self._session.get_adapter("https://")
        self._unchecked_https_adapter = None

    @property
    def closed(self) -> bool:
        return self._session is None

    def close(self) -> None:
        if self._session is not None:
            self._session.close()
            self._session = None

    def perform(self, request: TransportRequest, on_header: HeaderCallback) -> TransportReply:
        """
        Execute one request.

        ``options.timeout`` bounds the whole exchange, connect included. It
        is also handed to requests as the per-read socket timeout, so a
        stalled read returns no later than one timeout past the deadline.
        """
        import requests
        from urllib3.exceptions import HTTPError as Urllib3Error

        if self._session is None:
            raise RuntimeError("Transport handle is closed")

        options = request.options
        session = self._session
        # Cookies only come from the client's Cookie header.
        session.cookies.clear()
        self._mount_https_adapter(options)

        started = time.monotonic()
        deadline = started + options.timeout if options.timeout else None
        prepared = None
        try:
            with ExitStack() as stack:
                data, files = self._split_body(request.body, stack)
                prepared = session.prepare_request(
                    requests.Request(
                        method=request.method,
                        url=request.url,
                        headers=self._build_headers(request),
                        data=data,
                        files=files,
                        auth=self._build_auth(options.auth),
                    )
                )
                self._log_block(options, ">", self._request_header_text(prepared))
                response = session.send(
                    prepared,
                    timeout=(options.connect_timeout or None, options.timeout or None),
                    verify=options.verify_peer,
                    allow_redirects=options.follow_redirects,
                    stream=True,
                )
                stack.callback(response.close)
                body = self._read_body(response, started, deadline)
        except (requests.RequestException, Urllib3Error, OSError) as e:
            code, message = classify_exception(e)
            logger.debug(f"{request.method} {request.url} failed with transport code {code}: {message}")
            header_text = self._request_header_text(prepared) if prepared is not None else ""
            return TransportReply(
                body=None,
                error_code=code,
                error_message=message,
                status_code=0,
                effective_url=request.url,
                request_header_text=header_text if options.capture_request_headers else "",
                info={"url": request.url, "http_code": 0},
            )

        for hop in [*response.history, response]:
            self._feed_headers(hop, on_header, options)

        sent = response.request or prepared
        header_text = self._request_header_text(sent)
        return TransportReply(
            body=body,
            status_code=response.status_code,
            effective_url=response.url,
            request_header_text=header_text if options.capture_request_headers else "",
            info={
                "url": response.url,
                "http_code": response.status_code,
                "content_type": response.headers.get("Content-Type"),
                "redirect_count": len(response.history),
                "total_time": response.elapsed.total_seconds(),
                "size_download": len(body),
                "request_header": header_text,
            },
        )

    @staticmethod
    def _read_body(response, started: float, deadline: Optional[float]) -> bytes:
        import requests

        chunks: list[bytes] = []
        received = 0
        while True:
            if deadline is not None and time.monotonic() > deadline:
                elapsed_ms = int((time.monotonic() - started) * 1000)
                raise requests.exceptions.ReadTimeout(
                    f"Operation timed out after {elapsed_ms} milliseconds with {received} bytes received"
                )
            # read1 returns whatever one socket read yields, so the deadline
            # is checked between slow chunks.
            chunk = response.raw.read1(_READ_CHUNK_SIZE, decode_content=True)
            if not chunk:
                break
            chunks.append(chunk)
            received += len(chunk)
        return b"".join(chunks)

    def _mount_https_adapter(self, options: TransportOptions) -> None:
        if options.verify_peer and not options.verify_host:
            if self._unchecked_https_adapter is None:
                self._unchecked_https_adapter = _hostname_unchecked_adapter()
            self._session.mount("https://", self._unchecked_https_adapter)
        else:
            self._session.mount("https://", self._default_https_adapter)

    @staticmethod
    def _build_headers(request: TransportRequest) -> dict[str, str]:
        options = request.options
        headers: dict[str, str] = {}
        if options.user_agent:
            headers["User-Agent"] = options.user_agent
        if options.referer:
            headers["Referer"] = options.referer
        if options.encoding is not None:
            headers["Accept-Encoding"] = options.encoding or "gzip, deflate"
        if request.cookie:
            headers["Cookie"] = request.cookie
        if isinstance(request.body, (str, bytes)):
            headers["Content-Type"] = "application/x-www-form-urlencoded"
        for line in request.header_lines:
            name, _, value = line.partition(":")
            headers[name.strip()] = value.strip()
        return headers

    @staticmethod
    def _build_auth(auth: Optional[tuple[AuthType, str, str]]):
        if auth is None:
            return None
        from requests.auth import HTTPBasicAuth, HTTPDigestAuth

        auth_type, username, password = auth
        if auth_type is AuthType.DIGEST:
            return HTTPDigestAuth(username, password)
        return HTTPBasicAuth(username, password)

    @staticmethod
    def _split_body(body: Body, stack: ExitStack):
        if not isinstance(body, Mapping):
            return body, None
        files = {
            key: value.open(stack)
            for key, value in body.items()
            if isinstance(value, FileUpload)
        }
        fields = {
            key: value
            for key, value in body.items()
            if not isinstance(value, FileUpload)
        }
        return fields, (files or None)

    @staticmethod
    def _request_header_text(prepared) -> str:
        parts = urlsplit(prepared.url)
        lines = [f"{prepared.method} {prepared.path_url} HTTP/1.1"]
        if "Host" not in prepared.headers:
            lines.append(f"Host: {parts.netloc.rpartition('@')[2]}")
        lines.extend(f"{name}: {value}" for name, value in prepared.headers.items())
        return "\r\n".join(lines) + "\r\n\r\n"

    def _feed_headers(self, response, on_header: HeaderCallback, options: TransportOptions) -> None:
        version = _HTTP_VERSIONS.get(getattr(response.raw, "version", 11), "HTTP/1.1")
        lines = [f"{version} {response.status_code} {response.reason or ''}".rstrip()]
        raw_headers = getattr(response.raw, "headers", None) or response.headers
        lines.extend(f"{name}: {value}" for name, value in raw_headers.items())
        self._log_block(options, "<", "\r\n".join(lines))
        for line in lines:
            on_header(line + "\r\n")
        on_header("\r\n")

    @staticmethod
    def _log_block(options: TransportOptions, direction: str, text: str) -> None:
        if not options.verbose:
            return
        for line in text.split("\r\n"):
            if line:
                logger.debug(f"{direction} {line}")


def _is_read_timeout(exc: BaseException, lowered: str) -> bool:
    from urllib3.exceptions import ReadTimeoutError

    # requests re-raises body read timeouts as ConnectionError
    cause = exc.args[0] if exc.args else None
    return isinstance(exc, ReadTimeoutError) or isinstance(cause, ReadTimeoutError) or "read timed out" in lowered


def classify_exception(exc: BaseException) -> tuple[int, str]:
    """Map a requests, urllib3 or file exception to a transport error code and message."""
    import requests
    from urllib3.exceptions import DecodeError, HTTPError as Urllib3Error

    message = str(exc) or exc.__class__.__name__
    lowered = message.lower()

    if isinstance(exc, requests.exceptions.Timeout) or _is_read_timeout(exc, lowered):
        return TransportErrorCode.OPERATION_TIMEDOUT, message
    if isinstance(exc, requests.exceptions.SSLError):
        if "certificate verify failed" in lowered:
            return TransportErrorCode.PEER_FAILED_VERIFICATION, message
        return TransportErrorCode.SSL_CONNECT_ERROR, message
    if isinstance(exc, requests.exceptions.ProxyError):
        if any(marker in lowered for marker in _RESOLVE_MARKERS):
            return TransportErrorCode.COULDNT_RESOLVE_PROXY, message
        return TransportErrorCode.PROXY, message
    if isinstance(exc, requests.exceptions.ConnectionError):
        if any(marker in lowered for marker in _RESOLVE_MARKERS):
            return TransportErrorCode.COULDNT_RESOLVE_HOST, message
        if "remotedisconnected" in lowered or "remote end closed connection" in lowered:
            return TransportErrorCode.GOT_NOTHING, message
        return TransportErrorCode.COULDNT_CONNECT, message
    if isinstance(exc, requests.exceptions.TooManyRedirects):
        return TransportErrorCode.TOO_MANY_REDIRECTS, message
    if isinstance(exc, requests.exceptions.InvalidSchema):
        return TransportErrorCode.UNSUPPORTED_PROTOCOL, message
    if isinstance(exc, (requests.exceptions.MissingSchema, requests.exceptions.InvalidURL)):
        return TransportErrorCode.URL_MALFORMAT, message
    if isinstance(exc, (requests.exceptions.ContentDecodingError, DecodeError)):
        return TransportErrorCode.BAD_CONTENT_ENCODING, message
    if isinstance(exc, (requests.RequestException, Urllib3Error)):
        return TransportErrorCode.RECV_ERROR, message
    return TransportErrorCode.READ_ERROR, message
