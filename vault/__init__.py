"""Vault HTTP client library.

This module provides a Python client core for the Vault HTTP API: verb-shaped
request methods, classification of failures, and retries with exponential
backoff for idempotent requests.

Example:
    Synchronous usage::

        from vault import VaultClient

        with VaultClient(address="https://vault.example.com", token="s.abc") as client:
            client.retry_options = {"attempts": 3}
            client.get("/v1/sys/health")

    Retrying an arbitrary block::

        from vault import HTTPConnectionError, VaultClient

        client = VaultClient()
        client.with_retries(
            HTTPConnectionError,
            {"attempts": 5, "base": 0.1, "max_wait": 2.0},
            lambda: client.post("/v1/sys/unseal", {"key": key}),
        )

Exports:
    VaultClient: Synchronous client.
    AsyncVaultClient: Asynchronous client.
    ClientOptions, Defaults, Configurable: Configuration.
    RetryPolicy, with_retries, async_with_retries, calculate_backoff: Retries.
    to_query_string: Form-encoded query strings.

    Exceptions:
        VaultError: Base exception for all client errors.
        HTTPConnectionError: No response could be obtained.
        HTTPTimeoutError: The transport timed out.
        HTTPError: The server answered with a failure status.
        HTTPClientError: HTTP 4xx.
        HTTPServerError: HTTP 5xx.
"""

from vault._config import ClientOptions, Configurable, Defaults
from vault._http import RESCUED_EXCEPTIONS, to_query_string
from vault._retry import (
    Attempt,
    RetryPolicy,
    async_with_retries,
    calculate_backoff,
    with_retries,
)
from vault.client import AsyncVaultClient, VaultClient
from vault.exceptions import (
    ErrorKind,
    HTTPClientError,
    HTTPConnectionError,
    HTTPError,
    HTTPServerError,
    HTTPTimeoutError,
    VaultError,
    classify,
)

__version__ = "0.1.0"

__all__ = [
    # Clients
    "VaultClient",
    "AsyncVaultClient",
    # Configuration
    "ClientOptions",
    "Configurable",
    "Defaults",
    # Retries
    "Attempt",
    "RetryPolicy",
    "with_retries",
    "async_with_retries",
    "calculate_backoff",
    # Requests
    "RESCUED_EXCEPTIONS",
    "to_query_string",
    # Exceptions
    "ErrorKind",
    "classify",
    "VaultError",
    "HTTPConnectionError",
    "HTTPTimeoutError",
    "HTTPError",
    "HTTPClientError",
    "HTTPServerError",
]
