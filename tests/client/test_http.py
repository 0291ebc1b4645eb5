"""Unit tests for the Vault client HTTP utilities.

This module tests the request/response helpers defined in vault/_http.py:

1. to_query_string: form encoding of query parameters
2. build_url / build_headers / build_body / build_timeout: request construction
3. _parse_errors: extracting error messages from various response formats
4. _raise_for_status / handle_response: status classification and decoding
5. connection_error: mapping of transport exceptions
"""

import httpx
import pytest

from vault._config import ClientOptions
from vault._http import (
    RESCUED_EXCEPTIONS,
    USER_AGENT,
    _parse_errors,
    _raise_for_status,
    build_body,
    build_extensions,
    build_headers,
    build_timeout,
    build_url,
    build_verify,
    connection_error,
    handle_response,
    to_query_string,
)
from vault.exceptions import (
    HTTPClientError,
    HTTPConnectionError,
    HTTPError,
    HTTPServerError,
    HTTPTimeoutError,
)

ADDRESS = "https://vault.test"


# =============================================================================
# to_query_string
# =============================================================================

class TestToQueryString:
    """Tests for query string encoding."""

    def test_converts_spaces_to_plus(self) -> None:
        assert to_query_string({"emoji": "sad panda"}) == "emoji=sad+panda"

    def test_preserves_insertion_order(self) -> None:
        assert to_query_string({"b": 1, "a": 2}) == "b=1&a=2"

    def test_escapes_reserved_characters(self) -> None:
        assert to_query_string({"path": "a/b&c=d"}) == "path=a%2Fb%26c%3Dd"

    def test_drops_none_values(self) -> None:
        assert to_query_string({"list": "true", "cursor": None}) == "list=true"

    def test_sequences_repeat_the_key(self) -> None:
        assert to_query_string({"key": ["a", "b"]}) == "key=a&key=b"

    def test_empty(self) -> None:
        assert to_query_string({}) == ""
        assert to_query_string(None) == ""


# =============================================================================
# Request construction
# =============================================================================

class TestBuildUrl:
    """Tests for URL construction."""

    def test_joins_address_and_path(self) -> None:
        assert build_url(ADDRESS, "GET", "/v1/sys/health", {}) == "https://vault.test/v1/sys/health"

    def test_path_without_leading_slash(self) -> None:
        assert build_url(ADDRESS, "GET", "v1/sys/health", {}) == "https://vault.test/v1/sys/health"

    def test_root_path(self) -> None:
        assert build_url(ADDRESS, "GET", "/", {}) == "https://vault.test/"

    def test_get_appends_query_string(self) -> None:
        url = build_url(ADDRESS, "GET", "/v1/secret", {"list": "true"})
        assert url == "https://vault.test/v1/secret?list=true"

    def test_delete_appends_query_string(self) -> None:
        url = build_url(ADDRESS, "DELETE", "/v1/secret", {"version": 2})
        assert url == "https://vault.test/v1/secret?version=2"

    def test_existing_query_is_extended(self) -> None:
        url = build_url(ADDRESS, "GET", "/v1/secret?list=true", {"a": "b"})
        assert url == "https://vault.test/v1/secret?list=true&a=b"

    def test_post_data_not_in_url(self) -> None:
        assert build_url(ADDRESS, "POST", "/v1/secret", {"a": "b"}) == "https://vault.test/v1/secret"


class TestBuildHeaders:
    """Tests for header merging."""

    def test_default_headers(self) -> None:
        headers = build_headers(ClientOptions())

        assert headers["User-Agent"] == USER_AGENT
        assert headers["Content-Type"] == "application/json"
        assert "X-Vault-Token" not in headers
        assert "X-Vault-Namespace" not in headers

    def test_token_and_namespace(self) -> None:
        headers = build_headers(ClientOptions(token="s.abc", namespace="team-a"))

        assert headers["X-Vault-Token"] == "s.abc"
        assert headers["X-Vault-Namespace"] == "team-a"

    def test_per_call_headers_override_instance_headers(self) -> None:
        options = ClientOptions(token="s.abc", headers={"X-Trace": "instance", "X-Other": "1"})

        headers = build_headers(options, {"X-Trace": "call", "X-Vault-Token": "s.call"})

        assert headers["X-Trace"] == "call"
        assert headers["X-Other"] == "1"
        assert headers["X-Vault-Token"] == "s.call"


class TestBuildBody:
    """Tests for request body selection."""

    def test_query_verbs_have_no_body(self) -> None:
        assert build_body("GET", {"a": 1}) == {}
        assert build_body("DELETE", {"a": 1}) == {}

    def test_mappings_are_sent_as_json(self) -> None:
        assert build_body("POST", {"a": 1}) == {"json": {"a": 1}}
        assert build_body("PUT", {}) == {"json": {}}

    def test_raw_content(self) -> None:
        assert build_body("PATCH", '{"a": 1}') == {"content": '{"a": 1}'}

    def test_none(self) -> None:
        assert build_body("POST", None) == {}


class TestTransportOptions:
    """Tests for timeout, TLS and SNI settings."""

    def test_timeout_applies_everywhere(self) -> None:
        timeout = build_timeout(ClientOptions(timeout=10.0))

        assert timeout.connect == 10.0
        assert timeout.read == 10.0
        assert timeout.write == 10.0

    def test_open_and_read_timeouts_override(self) -> None:
        timeout = build_timeout(ClientOptions(timeout=10.0, open_timeout=1.0, read_timeout=60.0))

        assert timeout.connect == 1.0
        assert timeout.read == 60.0
        assert timeout.write == 10.0

    def test_no_timeout(self) -> None:
        timeout = build_timeout(ClientOptions(timeout=None))
        assert timeout.connect is None
        assert timeout.read is None

    def test_sni_hostname(self) -> None:
        assert build_extensions(ClientOptions()) == {}
        assert build_extensions(ClientOptions(hostname="vault.internal")) == {"sni_hostname": "vault.internal"}

    def test_verify(self) -> None:
        assert build_verify(ClientOptions()) is True
        assert build_verify(ClientOptions(ssl_verify=False)) is False


# =============================================================================
# Error parsing
# =============================================================================

class TestParseErrors:
    """Tests for _parse_errors."""

    def test_vault_errors_list(self) -> None:
        response = httpx.Response(403, json={"errors": ["permission denied"]})

        errors, body = _parse_errors(response)

        assert errors == ["permission denied"]
        assert body == {"errors": ["permission denied"]}

    def test_empty_errors_list(self) -> None:
        response = httpx.Response(404, json={"errors": []})
        assert _parse_errors(response)[0] == []

    @pytest.mark.parametrize("key", ["detail", "message", "error"])
    def test_alternative_keys(self, key: str) -> None:
        response = httpx.Response(400, json={key: "bad input"})
        assert _parse_errors(response)[0] == ["bad input"]

    def test_plain_json_object(self) -> None:
        response = httpx.Response(400, json={"foo": "bar"})
        assert "foo" in _parse_errors(response)[0][0]

    def test_plain_text(self) -> None:
        response = httpx.Response(500, text="Internal Server Error\n")

        errors, body = _parse_errors(response)

        assert errors == ["Internal Server Error"]
        assert body == "Internal Server Error\n"

    def test_empty_body(self) -> None:
        response = httpx.Response(502, text="")
        assert _parse_errors(response)[0] == []


# =============================================================================
# Status handling
# =============================================================================

class TestRaiseForStatus:
    """Tests for _raise_for_status."""

    @pytest.mark.parametrize("status_code", [200, 204, 304])
    def test_success_does_not_raise(self, status_code: int) -> None:
        _raise_for_status(httpx.Response(status_code), ADDRESS)

    @pytest.mark.parametrize("status_code", [400, 403, 404, 412, 422, 429, 499])
    def test_4xx_raises_client_error(self, status_code: int) -> None:
        with pytest.raises(HTTPClientError) as exc_info:
            _raise_for_status(httpx.Response(status_code, json={"errors": ["nope"]}), ADDRESS)

        assert exc_info.value.status_code == status_code
        assert exc_info.value.errors == ["nope"]
        assert exc_info.value.address == ADDRESS

    @pytest.mark.parametrize("status_code", [500, 501, 503, 520, 599])
    def test_5xx_raises_server_error(self, status_code: int) -> None:
        with pytest.raises(HTTPServerError) as exc_info:
            _raise_for_status(httpx.Response(status_code, text=f"{status_code}"), ADDRESS)

        assert exc_info.value.status_code == status_code

    def test_unknown_status_raises_http_error(self) -> None:
        with pytest.raises(HTTPError) as exc_info:
            _raise_for_status(httpx.Response(600), ADDRESS)

        assert type(exc_info.value) is HTTPError


class TestHandleResponse:
    """Tests for response decoding."""

    def test_json_body(self) -> None:
        assert handle_response(httpx.Response(200, json={"data": {"a": 1}}), ADDRESS) == {"data": {"a": 1}}

    def test_empty_body(self) -> None:
        assert handle_response(httpx.Response(204), ADDRESS) is None

    def test_text_body(self) -> None:
        assert handle_response(httpx.Response(200, text="ok"), ADDRESS) == "ok"

    def test_error_raises(self) -> None:
        with pytest.raises(HTTPServerError):
            handle_response(httpx.Response(503, json={"errors": ["Vault is sealed"]}), ADDRESS)

    def test_malformed_json_raises_connection_error(self) -> None:
        response = httpx.Response(200, content=b"{not json", headers={"content-type": "application/json"})

        with pytest.raises(HTTPConnectionError) as exc_info:
            handle_response(response, ADDRESS)

        assert exc_info.value.address == ADDRESS
        assert isinstance(exc_info.value.cause, ValueError)
        assert "malformed" in str(exc_info.value)


# =============================================================================
# Transport exceptions
# =============================================================================

class TestConnectionError:
    """Tests for connection_error."""

    @pytest.mark.parametrize("exception_class", RESCUED_EXCEPTIONS)
    def test_rescued_exceptions_become_connection_errors(self, exception_class: type[httpx.RequestError]) -> None:
        error = connection_error(ADDRESS, exception_class("boom"), ClientOptions())

        assert isinstance(error, HTTPConnectionError)
        assert error.address == ADDRESS

    def test_timeouts_become_timeout_errors(self) -> None:
        error = connection_error(ADDRESS, httpx.ReadTimeout("slow"), ClientOptions(timeout=5.0))

        assert isinstance(error, HTTPTimeoutError)
        assert error.timeout == 5.0
