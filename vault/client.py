"""Main Vault client classes.

This module provides the request entry points for talking to Vault:
- VaultClient: Synchronous client
- AsyncVaultClient: Asynchronous client

Each HTTP verb has its own method. GET, PUT and DELETE are idempotent and
go through request_with_retries, which retries according to the client's
retry_options. POST and PATCH are never replayed implicitly; they always
make a single request.

Example:
    Synchronous usage::

        from vault import VaultClient

        with VaultClient(address="https://vault.example.com", token="s.abc") as client:
            client.retry_options = {"attempts": 3, "base": 0.1}
            health = client.get("/v1/sys/health")
            client.post("/v1/secret/data/app", {"data": {"password": "hunter2"}})

    Asynchronous usage::

        from vault import AsyncVaultClient

        async with AsyncVaultClient() as client:
            await client.get("/v1/sys/health")
"""

import logging
from collections.abc import Awaitable, Callable, Mapping
from pathlib import Path
from typing import Any, TypeVar

import httpx

from vault._config import CONNECTION_OPTIONS, Configurable, Defaults
from vault._http import (
    HttpMethod,
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
from vault._retry import RetryableErrors, RetryPolicy, async_with_retries
from vault._retry import with_retries as _with_retries

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Whether each verb goes through request_with_retries by default
VERB_ROUTES: dict[str, bool] = {
    "GET": True,
    "PUT": True,
    "DELETE": True,
    "POST": False,
    "PATCH": False,
}


class VaultClient(Configurable):
    """Synchronous client for the Vault HTTP API.

    Options (address, token, retry_options, ...) are read from the
    environment at construction, can be overridden with keyword arguments,
    and can be reassigned at any time as attributes.

    Attributes:
        transport: Custom httpx transport (e.g., MockTransport for testing).
    """

    def __init__(
        self,
        transport: httpx.BaseTransport | None = None,
        env_file: str | Path | None = None,
        **options: Any,
    ) -> None:
        """Initialize the client.

        Args:
            transport: Custom httpx transport. When given, it performs every
                request and proxy settings are not applied.
            env_file: Optional .env file consulted for default options.
            **options: Values for any ClientOptions field.
        """
        super().__init__(env_file=env_file, **options)
        self.transport = transport
        self._http: httpx.Client | None = None

    def __enter__(self) -> "VaultClient":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def close(self) -> None:
        """Close the underlying connection pool."""
        if self._http is not None:
            self._http.close()
            self._http = None

    def _option_changed(self, name: str) -> None:
        if name in CONNECTION_OPTIONS:
            self.close()

    def _connection(self) -> httpx.Client:
        if self._http is None:
            proxy = self.proxy_address if self.transport is None else None
            self._http = httpx.Client(
                transport=self.transport,
                verify=build_verify(self._options),
                proxy=proxy,
                follow_redirects=True,
            )
        return self._http

    def get(
        self,
        path: str,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        """Make a GET request, retried according to retry_options.

        Args:
            path: The URL path.
            params: Query parameters.
            headers: Extra headers for this request only.

        Returns:
            The decoded response body.
        """
        return self._dispatch("GET", path, params if params is not None else {}, headers or {})

    def delete(
        self,
        path: str,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        """Make a DELETE request, retried according to retry_options.

        Args:
            path: The URL path.
            params: Query parameters.
            headers: Extra headers for this request only.

        Returns:
            The decoded response body.
        """
        return self._dispatch("DELETE", path, params if params is not None else {}, headers or {})

    def put(
        self,
        path: str,
        data: Any = None,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        """Make a PUT request, retried according to retry_options.

        Args:
            path: The URL path.
            data: JSON body to send.
            headers: Extra headers for this request only.

        Returns:
            The decoded response body.
        """
        return self._dispatch("PUT", path, data if data is not None else {}, headers or {})

    def post(
        self,
        path: str,
        data: Any = None,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        """Make a POST request. Never retried implicitly.

        Args:
            path: The URL path.
            data: JSON body to send.
            headers: Extra headers for this request only.

        Returns:
            The decoded response body.
        """
        return self._dispatch("POST", path, data if data is not None else {}, headers or {})

    def patch(
        self,
        path: str,
        data: Any = None,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        """Make a PATCH request. Never retried implicitly.

        Args:
            path: The URL path.
            data: JSON body to send.
            headers: Extra headers for this request only.

        Returns:
            The decoded response body.
        """
        return self._dispatch("PATCH", path, data if data is not None else {}, headers or {})

    def _dispatch(self, method: HttpMethod, path: str, data: Any, headers: Mapping[str, str]) -> Any:
        if VERB_ROUTES[method]:
            return self.request_with_retries(method, path, data, headers)
        return self.request(method, path, data, headers)

    def request_with_retries(
        self,
        method: HttpMethod,
        path: str,
        data: Any = None,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        """Make a request, retrying it according to retry_options.

        Without retry_options the request is made exactly once.
        """
        data = data if data is not None else {}
        headers = headers if headers is not None else {}
        policy = self.retry_options
        if policy is None:
            return self.request(method, path, data, headers)
        return self.with_retries(
            policy.retryable_errors,
            policy,
            lambda: self.request(method, path, data, headers),
        )

    def with_retries(
        self,
        retryable: RetryableErrors,
        policy: RetryPolicy | Mapping[str, Any] | None,
        operation: Callable[[], T],
    ) -> T:
        """Run an operation, retrying it on the given errors.

        Args:
            retryable: Exception class, or tuple of classes, to retry on.
            policy: Attempt budget and backoff. None falls back to the
                client's retry_options, then to Defaults.retry_policy().
            operation: Zero-argument callable performing one attempt.

        Returns:
            The result of the first successful attempt.
        """
        if policy is None:
            policy = self.retry_options or Defaults.retry_policy()
        return _with_retries(retryable, policy, operation)

    def request(
        self,
        method: HttpMethod,
        path: str,
        data: Any = None,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        """Make a single HTTP request and return the decoded response body.

        Args:
            method: The HTTP method (GET, POST, etc.).
            path: The URL path, appended to address.
            data: Query parameters for GET/DELETE, JSON body otherwise.
            headers: Per-call headers, overriding the configured ones.

        Returns:
            The parsed JSON body, the text body, or None for empty responses.

        Raises:
            HTTPConnectionError: If no response could be obtained.
            HTTPClientError: If the server answered with a 4xx status.
            HTTPServerError: If the server answered with a 5xx status.
        """
        method = method.upper()
        options = self._options
        url = build_url(options.address, method, path, data)
        logger.debug(f"{method} {url}")
        try:
            response = self._connection().request(
                method,
                url,
                headers=build_headers(options, headers),
                timeout=build_timeout(options),
                extensions=build_extensions(options),
                **build_body(method, data),
            )
        except httpx.RequestError as e:
            raise connection_error(options.address, e, options) from e
        logger.debug(f"{method} {url} -> {response.status_code}")
        return handle_response(response, options.address)

    @staticmethod
    def to_query_string(params: Mapping[str, Any] | None) -> str:
        """Encode params as a form-encoded query string (spaces become +)."""
        return to_query_string(params)


class AsyncVaultClient(Configurable):
    """Asynchronous client for the Vault HTTP API.

    Mirrors VaultClient with coroutine methods.

    Attributes:
        transport: Custom httpx transport (e.g., MockTransport for testing).
    """

    def __init__(
        self,
        transport: httpx.AsyncBaseTransport | None = None,
        env_file: str | Path | None = None,
        **options: Any,
    ) -> None:
        super().__init__(env_file=env_file, **options)
        self.transport = transport
        self._http: httpx.AsyncClient | None = None
        self._stale: list[httpx.AsyncClient] = []

    async def __aenter__(self) -> "AsyncVaultClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the underlying connection pool(s)."""
        clients, self._stale = self._stale, []
        if self._http is not None:
            clients.append(self._http)
            self._http = None
        for client in clients:
            await client.aclose()

    def _option_changed(self, name: str) -> None:
        # Assignment is synchronous; the old pool is closed on the next close()
        if name in CONNECTION_OPTIONS and self._http is not None:
            self._stale.append(self._http)
            self._http = None

    def _connection(self) -> httpx.AsyncClient:
        if self._http is None:
            proxy = self.proxy_address if self.transport is None else None
            self._http = httpx.AsyncClient(
                transport=self.transport,
                verify=build_verify(self._options),
                proxy=proxy,
                follow_redirects=True,
            )
        return self._http

    async def get(
        self,
        path: str,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        """Make a GET request, retried according to retry_options.

        Args:
            path: The URL path.
            params: Query parameters.
            headers: Extra headers for this request only.

        Returns:
            The decoded response body.
        """
        return await self._dispatch("GET", path, params if params is not None else {}, headers or {})

    async def delete(
        self,
        path: str,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        """Make a DELETE request, retried according to retry_options.

        Args:
            path: The URL path.
            params: Query parameters.
            headers: Extra headers for this request only.

        Returns:
            The decoded response body.
        """
        return await self._dispatch("DELETE", path, params if params is not None else {}, headers or {})

    async def put(
        self,
        path: str,
        data: Any = None,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        """Make a PUT request, retried according to retry_options.

        Args:
            path: The URL path.
            data: JSON body to send.
            headers: Extra headers for this request only.

        Returns:
            The decoded response body.
        """
        return await self._dispatch("PUT", path, data if data is not None else {}, headers or {})

    async def post(
        self,
        path: str,
        data: Any = None,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        """Make a POST request. Never retried implicitly.

        Args:
            path: The URL path.
            data: JSON body to send.
            headers: Extra headers for this request only.

        Returns:
            The decoded response body.
        """
        return await self._dispatch("POST", path, data if data is not None else {}, headers or {})

    async def patch(
        self,
        path: str,
        data: Any = None,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        """Make a PATCH request. Never retried implicitly.

        Args:
            path: The URL path.
            data: JSON body to send.
            headers: Extra headers for this request only.

        Returns:
            The decoded response body.
        """
        return await self._dispatch("PATCH", path, data if data is not None else {}, headers or {})

    async def _dispatch(self, method: HttpMethod, path: str, data: Any, headers: Mapping[str, str]) -> Any:
        if VERB_ROUTES[method]:
            return await self.request_with_retries(method, path, data, headers)
        return await self.request(method, path, data, headers)

    async def request_with_retries(
        self,
        method: HttpMethod,
        path: str,
        data: Any = None,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        """Make a request, retrying it according to retry_options."""
        data = data if data is not None else {}
        headers = headers if headers is not None else {}
        policy = self.retry_options
        if policy is None:
            return await self.request(method, path, data, headers)
        return await self.with_retries(
            policy.retryable_errors,
            policy,
            lambda: self.request(method, path, data, headers),
        )

    async def with_retries(
        self,
        retryable: RetryableErrors,
        policy: RetryPolicy | Mapping[str, Any] | None,
        operation: Callable[[], Awaitable[T]],
    ) -> T:
        """Run a coroutine-producing operation, retrying it on the given errors."""
        if policy is None:
            policy = self.retry_options or Defaults.retry_policy()
        return await async_with_retries(retryable, policy, operation)

    async def request(
        self,
        method: HttpMethod,
        path: str,
        data: Any = None,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        """Make a single async HTTP request and return the decoded body.

        Raises:
            HTTPConnectionError: If no response could be obtained.
            HTTPClientError: If the server answered with a 4xx status.
            HTTPServerError: If the server answered with a 5xx status.
        """
        method = method.upper()
        options = self._options
        url = build_url(options.address, method, path, data)
        logger.debug(f"{method} {url}")
        try:
            response = await self._connection().request(
                method,
                url,
                headers=build_headers(options, headers),
                timeout=build_timeout(options),
                extensions=build_extensions(options),
                **build_body(method, data),
            )
        except httpx.RequestError as e:
            raise connection_error(options.address, e, options) from e
        logger.debug(f"{method} {url} -> {response.status_code}")
        return handle_response(response, options.address)

    @staticmethod
    def to_query_string(params: Mapping[str, Any] | None) -> str:
        """Encode params as a form-encoded query string (spaces become +)."""
        return to_query_string(params)
