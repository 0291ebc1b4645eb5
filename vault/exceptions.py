"""Exception hierarchy for the Vault client.

Every failure the client raises is classified into exactly one error kind,
so callers and the retry machinery can decide what to do with it without
inspecting status codes themselves.

Exception Hierarchy:
    VaultError (base)
    ├── HTTPConnectionError - Network/transport failure (kind: connection)
    │   └── HTTPTimeoutError - The transport gave up waiting
    └── HTTPError - The server answered with a failure status
        ├── HTTPClientError (HTTP 4xx, kind: client)
        └── HTTPServerError (HTTP 5xx, kind: server)

Example:
    Retrying only transient failures::

        try:
            client.get("/v1/sys/health")
        except HTTPClientError as e:
            # Permanent - fix the request
            print(f"Rejected: {e.errors}")
        except (HTTPServerError, HTTPConnectionError):
            # Transient - safe to try again later
            pass
"""

from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """Classification of a failed request."""

    CONNECTION = "connection"
    CLIENT = "client"
    SERVER = "server"
    UNKNOWN = "unknown"


def classify(
    status_code: int | None = None,
    exception: BaseException | None = None,
) -> ErrorKind | None:
    """Map a raw request outcome to its error kind.

    Any exception observed before a response was obtained is a connection
    failure, whatever the status code says. Otherwise the status code
    decides: 2xx and 3xx are successes and classify to ``None``.

    Args:
        status_code: HTTP status code of the response, if one arrived.
        exception: Exception raised by the transport, if any.

    Returns:
        The error kind, or None for a successful outcome.
    """
    if exception is not None:
        if isinstance(exception, VaultError):
            return exception.kind
        return ErrorKind.CONNECTION
    if status_code is None:
        return ErrorKind.CONNECTION
    if 200 <= status_code < 400:
        return None
    if 400 <= status_code < 500:
        return ErrorKind.CLIENT
    if 500 <= status_code < 600:
        return ErrorKind.SERVER
    return ErrorKind.UNKNOWN


class VaultError(Exception):
    """Base exception for all Vault client errors.

    Attributes:
        message: Human-readable error description.
        kind: The classified error kind.
    """

    kind: ErrorKind = ErrorKind.UNKNOWN

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def __str__(self) -> str:
        return self.message


class HTTPConnectionError(VaultError):
    """Failed to talk to the Vault server.

    Raised when no response could be obtained: DNS failure, refused or
    reset connection, TLS handshake failure, or a malformed response.

    Attributes:
        message: Human-readable error description.
        address: The server address the client was talking to.
        cause: The underlying transport exception.
    """

    kind = ErrorKind.CONNECTION

    def __init__(
        self,
        address: str,
        cause: BaseException | None = None,
        message: str | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            address: The server address the client was talking to.
            cause: The underlying transport exception.
            message: Override for the generated message.
        """
        self.address = address
        self.cause = cause
        if message is None:
            message = f"The Vault server at `{address}' is not currently accepting connections."
            if cause is not None:
                message = f"{message} ({type(cause).__name__}: {cause})"
        super().__init__(message)


class HTTPTimeoutError(HTTPConnectionError):
    """The transport timed out before the server answered.

    Attributes:
        timeout: The timeout value in seconds, when known.
    """

    def __init__(
        self,
        address: str,
        cause: BaseException | None = None,
        timeout: float | None = None,
    ) -> None:
        self.timeout = timeout
        message = f"Request to `{address}' timed out"
        if timeout is not None:
            message = f"{message} after {timeout}s"
        super().__init__(address, cause=cause, message=message)


class HTTPError(VaultError):
    """Server returned a failure status.

    Base class for HTTP-level failures. Instances of this class itself are
    only raised for statuses outside the 4xx/5xx ranges.

    Attributes:
        address: The server address the request was sent to.
        status_code: HTTP status code from the server.
        errors: Error messages parsed from the response body.
        response_body: Raw (decoded) response body for debugging.
    """

    def __init__(
        self,
        address: str,
        status_code: int,
        errors: list[str] | None = None,
        response_body: Any = None,
    ) -> None:
        """Initialize the exception.

        Args:
            address: The server address the request was sent to.
            status_code: HTTP status code from the server.
            errors: Error messages parsed from the response body.
            response_body: Raw response body for debugging.
        """
        self.address = address
        self.status_code = status_code
        self.errors = list(errors or [])
        self.response_body = response_body
        super().__init__(self._build_message())

    def _build_message(self) -> str:
        message = f"The Vault server at `{self.address}' responded with a {self.status_code}."
        if self.errors:
            details = "\n".join(f"  * {error}" for error in self.errors)
            message = f"{message} Any additional information the server supplied is shown below:\n\n{details}"
        else:
            message = f"{message} The server did not supply any additional information."
        return message

    def __str__(self) -> str:
        return f"[HTTP {self.status_code}] {self.message}"


class HTTPClientError(HTTPError):
    """The request was rejected (HTTP 4xx).

    The request is malformed, unauthorized or refers to something that
    does not exist. Repeating it unchanged will not help, so the default
    retry policy never retries these.
    """

    kind = ErrorKind.CLIENT


class HTTPServerError(HTTPError):
    """The server failed to handle the request (HTTP 5xx).

    The server is (possibly transiently) unhealthy, sealed or in standby.
    The default retry policy retries these.
    """

    kind = ErrorKind.SERVER
