"""
Unit tests for HttpClient request shaping, execution and lifecycle.

All exchanges go through the scripted FakeTransport from
fixtures/transports.py; nothing touches the network.
"""

import json
import logging

import pytest

from fixtures.transports import FakeTransportFactory, make_exchange, make_failure
from support_sdk.config import HttpConfig
from support_sdk.http import FileUpload, HttpClient, HttpResult
from support_sdk.http.transport import AuthType
from support_sdk.schemas.errors import SerializationError, UnavailableError


# =============================================================================
# Verb shaping
# =============================================================================

class TestGet:
    def test_params_become_query_string(self, client, transport_factory):
        client.get("https://api.example.com/search", {"q": "keyword"})

        request = transport_factory.last_request
        assert request.method == "GET"
        assert request.url == "https://api.example.com/search?q=keyword"
        assert request.body is None

    def test_no_params_leaves_url_untouched(self, client, transport_factory):
        client.get("https://api.example.com/search")
        assert transport_factory.last_request.url == "https://api.example.com/search"

    def test_returns_client_for_chaining(self, client):
        assert client.get("https://api.example.com/") is client
        assert client.set_header("X-A", "1").get("https://api.example.com/").is_success()


class TestPost:
    def test_form_body(self, client, transport_factory):
        client.post("https://api.example.com/login", {"username": "john", "password": "doe"})

        request = transport_factory.last_request
        assert request.method == "POST"
        assert request.url == "https://api.example.com/login"
        assert request.body == "username=john&password=doe"
        assert not any(line.lower().startswith("content-type") for line in request.header_lines)

    def test_json_body(self, client, transport_factory):
        client.post("https://api.example.com/login", {"username": "john", "password": "doe"}, as_json=True)

        request = transport_factory.last_request
        assert json.loads(request.body) == {"username": "john", "password": "doe"}
        assert request.body == '{"username":"john","password":"doe"}'
        assert "Content-Type: application/json" in request.header_lines

    def test_json_body_keeps_caller_content_type(self, client, transport_factory):
        client.set_header("Content-Type", "application/vnd.api+json")
        client.post("https://api.example.com/items", {"a": 1}, as_json=True)

        content_types = [
            line for line in transport_factory.last_request.header_lines
            if line.lower().startswith("content-type")
        ]
        assert content_types == ["Content-Type: application/vnd.api+json"]

    def test_string_body_is_sent_unchanged(self, client, transport_factory):
        client.post("https://api.example.com/raw", "a=1&b=2")
        assert transport_factory.last_request.body == "a=1&b=2"

    def test_file_upload_skips_url_encoding(self, client, transport_factory, tmp_path):
        upload = FileUpload(tmp_path / "report.csv", mime_type="text/csv")
        client.post("https://api.example.com/upload", {"title": "Q1", "file": upload})

        body = transport_factory.last_request.body
        assert isinstance(body, dict)
        assert body == {"title": "Q1", "file": upload}

    def test_serialization_error_is_raised_before_sending(self, client, transport_factory):
        with pytest.raises(SerializationError):
            client.post("https://api.example.com/x", {"value": float("nan")}, as_json=True)
        assert transport_factory.current.requests == []


class TestPutPatchDelete:
    @pytest.mark.parametrize("verb", ["put", "patch", "delete"])
    def test_data_goes_to_query_without_payload(self, client, transport_factory, verb):
        getattr(client, verb)("https://api.example.com/items/7", {"name": "new"})

        request = transport_factory.last_request
        assert request.method == verb.upper()
        assert request.url == "https://api.example.com/items/7?name=new"
        assert request.body is None

    @pytest.mark.parametrize("verb", ["put", "patch", "delete"])
    def test_data_goes_to_body_with_payload(self, client, transport_factory, verb):
        getattr(client, verb)("https://api.example.com/items/7", {"name": "new"}, payload=True)

        request = transport_factory.last_request
        assert request.url == "https://api.example.com/items/7"
        assert request.body == "name=new"

    @pytest.mark.parametrize("verb", ["put", "patch"])
    def test_json_payload(self, client, transport_factory, verb):
        getattr(client, verb)("https://api.example.com/items/7", {"name": "new"}, payload=True, as_json=True)
        assert transport_factory.last_request.body == '{"name":"new"}'

    @pytest.mark.parametrize("verb", ["put", "patch", "delete"])
    @pytest.mark.parametrize("payload", [True, False])
    @pytest.mark.parametrize("data", [None, {}, []])
    def test_empty_data_sends_nothing(self, client, transport_factory, verb, payload, data):
        getattr(client, verb)("https://api.example.com/items/7", data, payload=payload)

        request = transport_factory.last_request
        assert request.url == "https://api.example.com/items/7"
        assert request.body is None


class TestPurge:
    def test_sets_method_and_host_header(self, client, transport_factory):
        client.purge("http://10.0.0.5/page", "www.example.com")

        request = transport_factory.last_request
        assert request.method == "PURGE"
        assert request.url == "http://10.0.0.5/page"
        assert "Host: www.example.com" in request.header_lines

    def test_host_header_persists(self, client, transport_factory):
        client.purge("http://10.0.0.5/page", "www.example.com")
        client.get("http://10.0.0.5/page")
        assert "Host: www.example.com" in transport_factory.last_request.header_lines

    def test_without_host(self, client, transport_factory):
        client.purge("http://10.0.0.5/page")
        assert transport_factory.last_request.header_lines == ()


# =============================================================================
# Execution results
# =============================================================================

class TestExecution:
    def test_transport_failure_is_recorded_not_raised(self, client, transport_factory):
        transport_factory.queue(make_failure(7, "Failed to connect: Connection refused"))

        client.get("https://api.example.com/")

        assert client.error is True
        assert client.error_code == 7
        assert client.http_status_code == 0
        assert client.transport_error is True
        assert client.transport_error_code == 7
        assert client.get_error_code() == 7
        assert client.http_error is False
        assert client.error_message == "Failed to connect: Connection refused"
        assert client.response is None

    def test_http_404_is_recorded(self, client, transport_factory):
        transport_factory.queue(make_exchange(404, "Not Found", {"Content-Type": "text/plain"}, b"nope"))

        client.get("https://api.example.com/missing")

        assert client.error is True
        assert client.error_code == 404
        assert client.get_error_code() == 0
        assert client.http_error is True
        assert client.is_client_error()
        assert client.error_message == "HTTP/1.1 404 Not Found"
        assert client.response == b"nope"

    def test_recorded_errors_are_logged_below_warning(self, client, transport_factory, caplog):
        transport_factory.queue(
            make_exchange(503, "Service Unavailable"),
            make_failure(7, "Failed to connect: Connection refused"),
        )

        with caplog.at_level(logging.DEBUG, logger="support_sdk.http.client"):
            client.get("https://api.example.com/")
            client.get("https://api.example.com/")

        failures = [r for r in caplog.records if "failed with code" in r.getMessage()]
        assert len(failures) == 2
        assert all(r.levelno < logging.WARNING for r in failures)

    def test_interim_continue_headers_are_dropped(self, client, transport_factory):
        transport_factory.queue(
            make_exchange(200, "OK", {"Content-Type": "application/json"}, b"{}", interim_continue=True)
        )

        client.post("https://api.example.com/upload", {"a": "1"})

        assert client.response_headers == ("HTTP/1.1 200 OK", "Content-Type: application/json")
        assert client.get_response_headers("x-interim") is None
        assert client.get_response_headers("Content-Type") == "application/json"

    def test_header_callback_returns_line_lengths(self, client, transport_factory):
        transport_factory.queue(make_exchange(200, "OK", {"A": "b"}))
        client.get("https://api.example.com/")
        assert transport_factory.current.header_returns == [17, 6, 2]

    def test_request_headers_are_split(self, client, transport_factory):
        client.get("https://api.example.com/")
        assert client.request_headers == ("GET / HTTP/1.1", "Host: api.example.com", "Accept: */*")

    def test_execute_returns_result(self, client, transport_factory):
        transport_factory.queue(make_exchange(201, "Created"))
        result = client.execute("post", "https://api.example.com/items", "a=1")

        assert isinstance(result, HttpResult)
        assert result is client.result
        assert result.status_code == 201
        assert transport_factory.last_request.method == "POST"

    def test_no_state_leaks_between_calls(self, client, transport_factory):
        transport_factory.queue(
            make_exchange(500, "Internal Server Error", {"X-Error": "1"}),
            make_exchange(200, "OK"),
        )

        client.get("https://api.example.com/a")
        first = client.result
        client.get("https://api.example.com/b")

        assert client.error is False
        assert client.error_code == 0
        assert client.error_message == ""
        assert client.get_response_headers("x-error") is None
        assert first.status_code == 500
        assert first.error_code == 500

    def test_info_accessors(self, client, transport_factory):
        transport_factory.queue(make_exchange(200, "OK", url="https://api.example.com/final"))
        client.get("https://api.example.com/start")

        assert client.get_endpoint() == "https://api.example.com/final"
        assert client.get_opt("http_code") == 200
        assert client.get_opts()["url"] == "https://api.example.com/final"
        assert client.get_http_status() == 200


# =============================================================================
# Headers, cookies and options
# =============================================================================

class TestSetters:
    def test_headers_and_cookies_persist(self, client, transport_factory):
        client.set_header("X-Requested-With", "XMLHttpRequest")
        client.set_cookie("session", "abc")
        client.set_cookie("lang", "en us")

        client.get("https://api.example.com/a")
        client.get("https://api.example.com/b")

        request = transport_factory.last_request
        assert request.header_lines == ("X-Requested-With: XMLHttpRequest",)
        assert request.cookie == "session=abc; lang=en+us"

    def test_set_header_replaces_existing(self, client, transport_factory):
        client.set_header("Accept", "text/html").set_header("Accept", "application/json")
        client.get("https://api.example.com/")
        assert transport_factory.last_request.header_lines == ("Accept: application/json",)

    def test_options_are_snapshotted_per_request(self, client, transport_factory):
        client.set_timeout(3, 7)
        client.get("https://api.example.com/")
        sent = transport_factory.last_request.options
        client.set_timeout(1, 1)

        assert (sent.connect_timeout, sent.timeout) == (3, 7)

    def test_authentication_options(self, client):
        client.set_basic_authentication("john", "doe")
        assert client.options.auth == (AuthType.BASIC, "john", "doe")

        client.set_digest_authentication("john", "doe")
        assert client.options.auth == (AuthType.DIGEST, "john", "doe")

    def test_misc_setters(self, client):
        client.set_user_agent("Agent/1.0").set_referer("https://ref.example.com")
        client.set_ssl_verify(True, True).set_encoding("br").set_verbose().set_follow_redirects()

        options = client.options
        assert options.user_agent == "Agent/1.0"
        assert options.referer == "https://ref.example.com"
        assert (options.verify_peer, options.verify_host) == (True, True)
        assert options.encoding == "br"
        assert options.verbose is True
        assert options.follow_redirects is True

    def test_unknown_option_raises(self, client):
        with pytest.raises(ValueError):
            client.set_opt("no_such_option", 1)


# =============================================================================
# Lifecycle
# =============================================================================

class TestLifecycle:
    def test_baseline_configuration(self, client):
        options = client.options
        assert options.user_agent == HttpClient.USER_AGENT
        assert options.capture_request_headers is True
        assert (options.connect_timeout, options.timeout) == (10, 10)
        assert (options.verify_peer, options.verify_host) == (False, False)
        assert options.encoding == "gzip,deflate"

    def test_config_is_applied(self, transport_factory):
        config = HttpConfig(connect_timeout=2, timeout=4, verify_peer=True, user_agent="cfg/1")
        with HttpClient(config, transport_factory=transport_factory) as http:
            assert (http.options.connect_timeout, http.options.timeout) == (2, 4)
            assert http.options.verify_peer is True
            assert http.options.user_agent == "cfg/1"

    def test_make_uses_five_second_timeouts(self, transport_factory):
        http = HttpClient.make(HttpConfig(), transport_factory=transport_factory)
        http.get("https://api.example.com/")

        options = transport_factory.last_request.options
        assert (options.connect_timeout, options.timeout) == (5, 5)
        http.close()

    def test_reset_restores_fresh_state(self, transport_factory):
        transport_factory.queue(make_exchange(404, "Not Found"))
        http = HttpClient.make(HttpConfig(), transport_factory=transport_factory)
        http.set_header("X-A", "1").set_cookie("c", "1").set_basic_authentication("u", "p")
        http.get("https://api.example.com/")
        old_transport = transport_factory.current

        assert http.reset() is http

        assert old_transport.closed
        assert len(transport_factory.created) == 2
        assert http.headers == {}
        assert http.cookies == {}
        assert http.result == HttpResult()
        assert http.error is False
        assert http.http_status_code == 0
        assert http.options.auth is None
        assert (http.options.connect_timeout, http.options.timeout) == (10, 10)

        http.get("https://api.example.com/")
        request = transport_factory.last_request
        assert request.header_lines == ()
        assert request.cookie is None
        assert http.is_success()

    def test_reset_twice_is_harmless(self, client, transport_factory):
        client.reset().reset()
        assert len(transport_factory.created) == 3
        assert all(t.closed for t in transport_factory.created[:-1])
        assert not transport_factory.current.closed

    def test_close_is_idempotent(self, client, transport_factory):
        transport = transport_factory.current
        client.close()
        client.close()

        assert client.closed
        assert transport.close_calls == 1

    def test_execute_after_close_raises(self, client):
        client.close()
        with pytest.raises(RuntimeError):
            client.get("https://api.example.com/")

    def test_context_manager_closes(self, transport_factory):
        with HttpClient(HttpConfig(), transport_factory=transport_factory) as http:
            http.get("https://api.example.com/")
        assert transport_factory.current.closed

    def test_unavailable_transport_raises(self):
        def missing_transport():
            raise UnavailableError("requests is not installed", transport="requests")

        with pytest.raises(UnavailableError) as excinfo:
            HttpClient(HttpConfig(), transport_factory=missing_transport)
        assert excinfo.value.details["transport"] == "requests"

    def test_default_config_comes_from_environment(self, monkeypatch):
        monkeypatch.setenv("SUPPORT_SDK_HTTP_TIMEOUT", "30")
        http = HttpClient(transport_factory=FakeTransportFactory())
        assert http.options.timeout == 30
        http.close()
