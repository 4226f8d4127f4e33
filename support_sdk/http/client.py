"""
HTTP Client

Stateful client facade over a Transport. Verb methods shape the request,
execute it and publish an immutable HttpResult; setters configure the
handle and persist until reset().
"""

from __future__ import annotations

import logging
import weakref
from collections.abc import Mapping
from dataclasses import fields, replace
from typing import Any, Callable, Iterable, Optional

from support_sdk.config.runtime import DEFAULT_ENCODING, DEFAULT_USER_AGENT, HttpConfig, get_default_config
from support_sdk.schemas.serialization import JsonSerializer

from .capture import HeaderCapture
from .query import append_query, build_query, is_empty
from .result import HttpResult
from .transport import (
    AuthType,
    Body,
    FileUpload,
    RequestsTransport,
    Transport,
    TransportOptions,
    TransportRequest,
)

logger = logging.getLogger(__name__)

_OPTION_NAMES = frozenset(f.name for f in fields(TransportOptions))


class HttpClient:
    """
    HTTP client with fluent verb methods.

    Usage:
        client = HttpClient()
        client.get("https://api.example.com/search", {"q": "keyword"})
        if client.is_success():
            data = client.result.json()

        client.post("https://api.example.com/login", {"username": "john"}, as_json=True)
        if client.error:
            print(client.error_code, client.error_message)

    Network failures and HTTP error statuses are never raised; they are
    recorded on ``client.result`` for the caller to inspect after each call.
    """

    AUTH_BASIC = AuthType.BASIC
    AUTH_DIGEST = AuthType.DIGEST
    USER_AGENT = DEFAULT_USER_AGENT

    def __init__(
        self,
        config: Optional[HttpConfig] = None,
        *,
        transport_factory: Optional[Callable[[], Transport]] = None,
        serializer: Optional[JsonSerializer] = None,
    ) -> None:
        """
        Initialize HTTP client.

        Args:
            config: Transport defaults (timeouts, TLS verification, encoding).
                Falls back to the process default loaded from the environment.
            transport_factory: Builds the transport handle; RequestsTransport
                by default. Called again by reset().
            serializer: JSON codec for ``as_json`` bodies.

        Raises:
            UnavailableError: If the transport library is not installed.
        """
        self.config = config or get_default_config()
        self.serializer = serializer or JsonSerializer()
        self._transport_factory = transport_factory or RequestsTransport
        self.transport: Optional[Transport] = None
        self._finalizer: Optional[weakref.finalize] = None
        self._headers: dict[str, str] = {}
        self._cookies: dict[str, str] = {}
        self._cookie_header: Optional[str] = None
        self.result = HttpResult()
        self._init()

    @classmethod
    def make(cls, config: Optional[HttpConfig] = None, **kwargs: Any) -> "HttpClient":
        """Create a client with 5 second connect and overall timeouts."""
        client = cls(config, **kwargs)
        client.set_timeout(5, 5)
        return client

    def _init(self) -> None:
        self.transport = self._transport_factory()
        self._finalizer = weakref.finalize(self, self.transport.close)
        self.options = TransportOptions(
            user_agent=self.config.user_agent or self.USER_AGENT,
            connect_timeout=self.config.connect_timeout,
            timeout=self.config.timeout,
            verify_peer=self.config.verify_peer,
            verify_host=self.config.verify_host,
            encoding=self.config.encoding,
            verbose=self.config.verbose,
            follow_redirects=self.config.follow_redirects,
            capture_request_headers=True,
        )

    # -- lifecycle ---------------------------------------------------------------

    def reset(self) -> "HttpClient":
        """
        Drop every setting and result, then reopen a fresh handle.

        Headers, cookies and options set since construction are cleared;
        the construction config is applied again.
        """
        self.close()
        self._headers = {}
        self._cookies = {}
        self._cookie_header = None
        self.result = HttpResult()
        self._init()
        return self

    def close(self) -> "HttpClient":
        """Release the transport handle. Safe to call more than once."""
        if self._finalizer is not None:
            self._finalizer()
            self._finalizer = None
        self.transport = None
        return self

    @property
    def closed(self) -> bool:
        return self.transport is None

    def __enter__(self) -> "HttpClient":
        return self

    def __exit__(self, *args) -> None:
        self.close()

    # -- execution ---------------------------------------------------------------

    def execute(
        self,
        method: str,
        url: str,
        body: Body = None,
        *,
        extra_headers: Iterable[str] = (),
    ) -> HttpResult:
        """
        Perform one request and publish its result.

        Args:
            method: HTTP method, sent verbatim (upper-cased).
            url: Fully built URL, query string included.
            body: Encoded body, a multipart field mapping, or None.
            extra_headers: Header lines for this request only.

        Returns:
            The new HttpResult, also stored on ``self.result``.
        """
        if self.transport is None:
            raise RuntimeError("HttpClient is closed; call reset() to open a new handle")

        method = method.upper()
        capture = HeaderCapture()
        request = TransportRequest(
            method=method,
            url=url,
            body=body,
            header_lines=tuple(self._headers.values()) + tuple(extra_headers),
            cookie=self._cookie_header,
            options=replace(self.options),
        )

        logger.debug(f"{method} {url}")
        reply = self.transport.perform(request, capture.feed)
        result = HttpResult.from_reply(reply, capture.lines)
        self.result = result

        if result.error:
            # Recorded on the result for the caller, not raised.
            logger.debug(f"{method} {url} failed with code {result.error_code}: {result.error_message}")
        return result

    def _prepare_payload(self, data: Any) -> Body:
        if data is None:
            data = {}
        if isinstance(data, (str, bytes)):
            return data
        if isinstance(data, Mapping) and any(isinstance(v, FileUpload) for v in data.values()):
            # multipart upload, the transport encodes it
            return dict(data)
        return build_query(data)

    def _prepare_json_payload(self, data: Any) -> tuple[str, tuple[str, ...]]:
        body = self.serializer.encode({} if data is None else data)
        if any(name.lower() == "content-type" for name in self._headers):
            return body, ()
        return body, ("Content-Type: application/json",)

    def _shape_body(self, data: Any, as_json: bool) -> tuple[Body, tuple[str, ...]]:
        if as_json:
            return self._prepare_json_payload(data)
        return self._prepare_payload(data), ()

    # -- verbs -------------------------------------------------------------------

    def get(self, url: str, params: Any = None) -> "HttpClient":
        """
        Make a GET request.

        Params are query-encoded and appended to the URL; GET has no body.
        """
        if not is_empty(params):
            url = append_query(url, params)
        self.execute("GET", url)
        return self

    def purge(self, url: str, host_name: Optional[str] = None) -> "HttpClient":
        """
        Make a PURGE request, as used to invalidate reverse-proxy caches.

        Args:
            url: The URL to purge.
            host_name: Optional value for the Host header. It is set with
                set_header() and so persists until reset().
        """
        if host_name:
            self.set_header("Host", host_name)
        self.execute("PURGE", url)
        return self

    def post(self, url: str, data: Any = None, as_json: bool = False) -> "HttpClient":
        """Make a POST request with a form-encoded or JSON body."""
        body, extra = self._shape_body(data, as_json)
        self.execute("POST", url, body, extra_headers=extra)
        return self

    def put(self, url: str, data: Any = None, payload: bool = False, as_json: bool = False) -> "HttpClient":
        """
        Make a PUT request.

        Args:
            url: The URL to send to.
            data: Optional data. Ignored when empty.
            payload: Send data as the body instead of as a query string.
            as_json: JSON-encode the body (only with ``payload``).
        """
        return self._send_with_data("PUT", url, data, payload, as_json)

    def patch(self, url: str, data: Any = None, payload: bool = False, as_json: bool = False) -> "HttpClient":
        """Make a PATCH request; same data handling as put()."""
        return self._send_with_data("PATCH", url, data, payload, as_json)

    def delete(self, url: str, data: Any = None, payload: bool = False) -> "HttpClient":
        """Make a DELETE request; data goes in the query string unless ``payload``."""
        return self._send_with_data("DELETE", url, data, payload, False)

    def _send_with_data(self, method: str, url: str, data: Any, payload: bool, as_json: bool) -> "HttpClient":
        body: Body = None
        extra: tuple[str, ...] = ()
        if not is_empty(data):
            if payload:
                body, extra = self._shape_body(data, as_json)
            else:
                url = append_query(url, data)
        self.execute(method, url, body, extra_headers=extra)
        return self

    # -- setters -----------------------------------------------------------------

    def set_header(self, key: str, value: str) -> "HttpClient":
        """Add or replace a header sent with every following request."""
        self._headers[key] = f"{key}: {value}"
        return self

    def set_cookie(self, key: str, value: str) -> "HttpClient":
        """Add or replace a cookie; all cookies go out in one Cookie header."""
        self._cookies[key] = value
        self._cookie_header = build_query(self._cookies, separator="; ")
        return self

    def set_user_agent(self, user_agent: str) -> "HttpClient":
        return self.set_opt("user_agent", user_agent)

    def set_referer(self, referer: str) -> "HttpClient":
        return self.set_opt("referer", referer)

    def set_basic_authentication(self, username: str, password: str) -> "HttpClient":
        """Send credentials with HTTP basic auth."""
        return self.set_opt("auth", (AuthType.BASIC, username, password))

    def set_digest_authentication(self, username: str, password: str) -> "HttpClient":
        """Send credentials with HTTP digest auth."""
        return self.set_opt("auth", (AuthType.DIGEST, username, password))

    def set_timeout(self, connect_timeout: float = 10, timeout: float = 10) -> "HttpClient":
        """
        Set timeouts in seconds.

        Args:
            connect_timeout: Seconds to wait while connecting; 0 waits forever.
            timeout: Seconds allowed for the exchange; 0 waits forever.
        """
        self.set_opt("connect_timeout", connect_timeout)
        return self.set_opt("timeout", timeout)

    def set_ssl_verify(self, verify_peer: bool = False, verify_host: bool = False) -> "HttpClient":
        """Toggle TLS certificate chain and host name verification."""
        self.set_opt("verify_peer", verify_peer)
        return self.set_opt("verify_host", verify_host)

    def set_encoding(self, value: str = DEFAULT_ENCODING) -> "HttpClient":
        """Set the accepted content encodings; responses are decoded automatically."""
        return self.set_opt("encoding", value)

    def set_verbose(self, on: bool = True) -> "HttpClient":
        """Log outgoing and incoming header blocks at DEBUG level."""
        return self.set_opt("verbose", on)

    def set_follow_redirects(self, on: bool = True) -> "HttpClient":
        return self.set_opt("follow_redirects", on)

    def set_opt(self, name: str, value: Any) -> "HttpClient":
        """
        Set a transport option by name.

        Raises:
            ValueError: If ``name`` is not a TransportOptions field.
        """
        if name not in _OPTION_NAMES:
            raise ValueError(f"Unknown transport option: {name!r}")
        setattr(self.options, name, value)
        return self

    # -- getters -----------------------------------------------------------------

    def get_opt(self, name: str) -> Any:
        """Transport info of the last exchange (e.g. ``http_code``, ``url``)."""
        return self.result.info.get(name)

    def get_opts(self) -> dict[str, Any]:
        return dict(self.result.info)

    def get_endpoint(self) -> str:
        """Effective URL of the last exchange."""
        return self.result.effective_url

    def get_response(self) -> Optional[bytes]:
        return self.result.body

    def get_error_code(self) -> int:
        """Transport error code of the last exchange, 0 when it succeeded."""
        return self.result.transport_error_code

    def get_error_message(self) -> str:
        return self.result.transport_error_message

    def get_http_status(self) -> int:
        return self.result.status_code

    def get_response_headers(self, key: Optional[str] = None):
        return self.result.get_response_headers(key)

    @property
    def headers(self) -> dict[str, str]:
        return dict(self._headers)

    @property
    def cookies(self) -> dict[str, str]:
        return dict(self._cookies)

    @property
    def response(self) -> Optional[bytes]:
        return self.result.body

    @property
    def http_status_code(self) -> int:
        return self.result.status_code

    @property
    def error(self) -> bool:
        return self.result.error

    @property
    def error_code(self) -> int:
        return self.result.error_code

    @property
    def error_message(self) -> str:
        return self.result.error_message

    @property
    def transport_error(self) -> bool:
        return self.result.transport_error is not None

    @property
    def transport_error_code(self) -> int:
        return self.result.transport_error_code

    @property
    def transport_error_message(self) -> str:
        return self.result.transport_error_message

    @property
    def http_error(self) -> bool:
        return self.result.http_error is not None

    @property
    def http_error_message(self) -> str:
        return self.result.http_error_message

    @property
    def request_headers(self) -> tuple[str, ...]:
        return self.result.request_headers

    @property
    def response_headers(self) -> tuple[str, ...]:
        return self.result.response_headers

    # -- status classes ----------------------------------------------------------

    def is_info(self) -> bool:
        return self.result.is_info()

    def is_success(self) -> bool:
        return self.result.is_success()

    def is_redirect(self) -> bool:
        return self.result.is_redirect()

    def is_error(self) -> bool:
        return self.result.is_error()

    def is_client_error(self) -> bool:
        return self.result.is_client_error()

    def is_server_error(self) -> bool:
        return self.result.is_server_error()
