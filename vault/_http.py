"""Internal HTTP handling utilities for the Vault client.

This module provides the pieces of request handling shared by the sync and
async clients:
- Query string encoding
- Header, URL and timeout construction from the client options
- Response parsing and status classification
- Mapping of transport exceptions to HTTPConnectionError

This is an internal module and should not be imported directly by users.
"""

import ssl
from collections.abc import Mapping
from typing import Any, Literal
from urllib.parse import urlencode

import httpx

from vault._config import ClientOptions
from vault.exceptions import (
    ErrorKind,
    HTTPClientError,
    HTTPConnectionError,
    HTTPError,
    HTTPServerError,
    HTTPTimeoutError,
    classify,
)

# HTTP methods supported by the client
HttpMethod = Literal["GET", "POST", "PUT", "PATCH", "DELETE"]

# Verbs whose data is sent in the query string rather than the body
QUERY_VERBS = frozenset({"GET", "DELETE"})

USER_AGENT = "VaultPython/0.1.0 (+https://github.com/hashicorp/vault)"

# Common transport failures, listed for callers and tests. The client maps
# every httpx.RequestError to HTTPConnectionError, not only these.
RESCUED_EXCEPTIONS: tuple[type[Exception], ...] = (
    httpx.ConnectError,
    httpx.ConnectTimeout,
    httpx.ReadError,
    httpx.ReadTimeout,
    httpx.WriteError,
    httpx.WriteTimeout,
    httpx.PoolTimeout,
    httpx.RemoteProtocolError,
    httpx.LocalProtocolError,
    httpx.ProxyError,
)


def to_query_string(params: Mapping[str, Any] | None) -> str:
    """Encode a mapping as a URL query string.

    Uses form encoding, so spaces become ``+``. Keys keep the mapping's
    order, None values are dropped and list or tuple values expand into
    repeated keys.

    Args:
        params: The parameters to encode.

    Returns:
        The encoded query string, without a leading ``?``.
    """
    if not params:
        return ""
    pairs: list[tuple[str, Any]] = []
    for key, value in params.items():
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            pairs.extend((str(key), item) for item in value)
        else:
            pairs.append((str(key), value))
    return urlencode(pairs)


def build_url(address: str, method: str, path: str, data: Any) -> str:
    """Join the server address and path, adding the query string for GET/DELETE."""
    url = f"{address}/{path.lstrip('/')}"
    if method in QUERY_VERBS and isinstance(data, Mapping):
        query = to_query_string(data)
        if query:
            separator = "&" if "?" in url else "?"
            url = f"{url}{separator}{query}"
    return url


def build_headers(options: ClientOptions, headers: Mapping[str, str] | None = None) -> dict[str, str]:
    """Merge default, instance and per-call headers (later wins)."""
    merged = {
        "User-Agent": USER_AGENT,
        "Content-Type": "application/json",
    }
    if options.token:
        merged["X-Vault-Token"] = options.token
    if options.namespace:
        merged["X-Vault-Namespace"] = options.namespace
    merged.update(options.headers)
    if headers:
        merged.update(headers)
    return merged


def build_body(method: str, data: Any) -> dict[str, Any]:
    """Return the httpx keyword arguments carrying the request body."""
    if method in QUERY_VERBS or data is None:
        return {}
    if isinstance(data, (str, bytes)):
        return {"content": data}
    return {"json": data}


def build_timeout(options: ClientOptions) -> httpx.Timeout:
    """Translate the timeout options into an httpx.Timeout."""
    connect = options.open_timeout if options.open_timeout is not None else options.timeout
    read = options.read_timeout if options.read_timeout is not None else options.timeout
    return httpx.Timeout(options.timeout, connect=connect, read=read)


def build_extensions(options: ClientOptions) -> dict[str, Any]:
    if options.hostname:
        return {"sni_hostname": options.hostname}
    return {}


def build_verify(options: ClientOptions) -> ssl.SSLContext | bool:
    """Translate the TLS options into httpx's verify argument."""
    if not options.ssl_verify:
        return False
    if options.ssl_ca_cert:
        return ssl.create_default_context(cafile=options.ssl_ca_cert)
    return True


def connection_error(address: str, exc: httpx.RequestError, options: ClientOptions) -> HTTPConnectionError:
    """Map a transport exception to the matching HTTPConnectionError."""
    if isinstance(exc, httpx.TimeoutException):
        return HTTPTimeoutError(address, cause=exc, timeout=options.timeout)
    return HTTPConnectionError(address, cause=exc)


def _parse_errors(response: httpx.Response) -> tuple[list[str], Any]:
    """Extract error messages and the decoded body from an error response.

    Vault reports failures as ``{"errors": [...]}``. Other JSON shapes
    (``detail``, ``message``, ``error``) and plain text bodies are
    understood as well.

    Returns:
        A tuple of (errors, response_body).
    """
    try:
        body = response.json()
    except ValueError:
        text = response.text.strip()
        return ([text] if text else []), response.text

    if isinstance(body, dict):
        errors = body.get("errors")
        if isinstance(errors, list):
            return [str(error) for error in errors], body
        for key in ("detail", "message", "error"):
            if key in body:
                return [str(body[key])], body
    return [str(body)], body


def _raise_for_status(response: httpx.Response, address: str) -> None:
    """Raise the classified exception for a failed response.

    Raises:
        HTTPClientError: For HTTP 4xx responses.
        HTTPServerError: For HTTP 5xx responses.
        HTTPError: For any other non-success status.
    """
    kind = classify(status_code=response.status_code)
    if kind is None:
        return

    errors, response_body = _parse_errors(response)
    if kind is ErrorKind.CLIENT:
        error_class: type[HTTPError] = HTTPClientError
    elif kind is ErrorKind.SERVER:
        error_class = HTTPServerError
    else:
        error_class = HTTPError
    raise error_class(
        address=address,
        status_code=response.status_code,
        errors=errors,
        response_body=response_body,
    )


def handle_response(response: httpx.Response, address: str) -> Any:
    """Check a response and return its decoded body.

    Returns:
        The parsed JSON body, the text body for other content types, or
        None for empty responses.

    Raises:
        HTTPError: If the status code is not a success.
        HTTPConnectionError: If a JSON response body cannot be decoded.
    """
    _raise_for_status(response, address)

    if not response.content:
        return None
    content_type = response.headers.get("content-type", "")
    if "json" in content_type:
        try:
            return response.json()
        except ValueError as e:
            raise HTTPConnectionError(
                address,
                cause=e,
                message=f"The Vault server at `{address}' returned a malformed JSON response ({e})",
            ) from e
    return response.text
