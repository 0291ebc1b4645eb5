"""Client configuration.

This module provides the configuration layer shared by the sync and async
clients:
- ClientOptions: the validated set of options a client reads on every request
- EnvironmentSettings: VAULT_* environment variables (and optionally a .env
  file), loaded with pydantic-settings
- Defaults: process-wide defaults built from EnvironmentSettings
- Configurable: base class exposing every option as a plain attribute

Precedence, lowest to highest: Defaults, constructor keywords, attribute
assignment after construction, per-call arguments.

Options are shared mutable state. Changing them while requests are in
flight on another thread is not synchronized by the client.

This is an internal module. Import from `vault` instead.
"""

from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from vault._retry import (
    DEFAULT_RETRY_ATTEMPTS,
    DEFAULT_RETRY_BASE,
    DEFAULT_RETRY_MAX_WAIT,
    DEFAULT_RETRYABLE_ERRORS,
    RetryPolicy,
)

DEFAULT_ADDRESS = "https://127.0.0.1:8200"
DEFAULT_TIMEOUT = 30.0


class ClientOptions(BaseModel):
    """Options read by the client on every request.

    Attributes:
        address: Base URL of the Vault server.
        token: Token sent as X-Vault-Token, if any.
        namespace: Namespace sent as X-Vault-Namespace, if any.
        hostname: Server name to use for TLS SNI, if it differs from address.
        timeout: Overall per-attempt timeout in seconds (None disables it).
        open_timeout: Connect timeout in seconds, overriding timeout.
        read_timeout: Read timeout in seconds, overriding timeout.
        ssl_verify: Whether to verify the server certificate.
        ssl_ca_cert: Path to a CA bundle used for verification.
        proxy_address: Proxy URL for all requests.
        headers: Extra headers sent with every request.
        retry_options: Policy for request_with_retries; None disables retries.
    """

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    address: str = DEFAULT_ADDRESS
    token: str | None = None
    namespace: str | None = None
    hostname: str | None = None
    timeout: float | None = Field(default=DEFAULT_TIMEOUT, ge=0)
    open_timeout: float | None = Field(default=None, ge=0)
    read_timeout: float | None = Field(default=None, ge=0)
    ssl_verify: bool = True
    ssl_ca_cert: str | None = None
    proxy_address: str | None = None
    headers: dict[str, str] = Field(default_factory=dict)
    retry_options: RetryPolicy | None = None

    @field_validator("address")
    @classmethod
    def validate_address(cls, v: str) -> str:
        """Validate that address is an http(s) URL and strip trailing slashes.

        Raises:
            ValueError: If the address has no http:// or https:// scheme.
        """
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"address must start with http:// or https://, got {v!r}")
        return v.rstrip("/")


# Options whose change requires a new connection pool
CONNECTION_OPTIONS = frozenset({"ssl_verify", "ssl_ca_cert", "proxy_address"})


class EnvironmentSettings(BaseSettings):
    """Defaults read from VAULT_* environment variables and an optional .env file.

    Values set in the process environment win over the .env file. Empty
    variables are treated as unset.
    """

    model_config = SettingsConfigDict(case_sensitive=False, env_ignore_empty=True, extra="ignore")

    address: str = Field(default=DEFAULT_ADDRESS, validation_alias="VAULT_ADDR")
    token: str | None = Field(default=None, validation_alias="VAULT_TOKEN")
    namespace: str | None = Field(default=None, validation_alias="VAULT_NAMESPACE")
    hostname: str | None = Field(default=None, validation_alias="VAULT_TLS_SERVER_NAME")
    timeout: float | None = Field(default=DEFAULT_TIMEOUT, validation_alias="VAULT_CLIENT_TIMEOUT")
    open_timeout: float | None = Field(default=None, validation_alias="VAULT_OPEN_TIMEOUT")
    read_timeout: float | None = Field(default=None, validation_alias="VAULT_READ_TIMEOUT")
    ssl_verify: bool = Field(default=True, validation_alias="VAULT_SSL_VERIFY")
    skip_verify: bool = Field(default=False, validation_alias="VAULT_SKIP_VERIFY")
    ssl_ca_cert: str | None = Field(default=None, validation_alias="VAULT_CACERT")
    proxy_address: str | None = Field(default=None, validation_alias="VAULT_PROXY_ADDRESS")

    @model_validator(mode="after")
    def apply_skip_verify(self) -> "EnvironmentSettings":
        """VAULT_SKIP_VERIFY=true turns verification off whatever VAULT_SSL_VERIFY says."""
        if self.skip_verify:
            self.ssl_verify = False
        return self


class Defaults:
    """Process-wide default options.

    Values come from EnvironmentSettings, falling back to the built-in
    defaults below.
    """

    ADDRESS = DEFAULT_ADDRESS
    TIMEOUT = DEFAULT_TIMEOUT

    RETRY_ATTEMPTS = DEFAULT_RETRY_ATTEMPTS
    RETRY_BASE = DEFAULT_RETRY_BASE
    RETRY_MAX_WAIT = DEFAULT_RETRY_MAX_WAIT
    RETRIED_EXCEPTIONS = DEFAULT_RETRYABLE_ERRORS

    @classmethod
    def options(cls, env_file: str | Path | None = None) -> dict[str, Any]:
        """Return the default options as keyword arguments for ClientOptions.

        Args:
            env_file: Optional path to a .env file.

        Returns:
            A dict with one entry per ClientOptions field.

        Raises:
            pydantic.ValidationError: If a variable cannot be parsed. The
                error names the offending variable.
        """
        settings = EnvironmentSettings(_env_file=env_file)
        return {
            **settings.model_dump(exclude={"skip_verify"}),
            "headers": {},
            "retry_options": None,
        }

    @classmethod
    def retry_policy(cls) -> RetryPolicy:
        """Return the policy used when a caller asks for retries without one."""
        return RetryPolicy(
            retryable_errors=cls.RETRIED_EXCEPTIONS,
            attempts=cls.RETRY_ATTEMPTS,
            base=cls.RETRY_BASE,
            max_wait=cls.RETRY_MAX_WAIT,
        )


class _Option:
    """Attribute proxying one ClientOptions field on a Configurable."""

    def __set_name__(self, owner: type, name: str) -> None:
        self.name = name

    def __get__(self, obj: "Configurable | None", objtype: type | None = None) -> Any:
        if obj is None:
            return self
        return getattr(obj._options, self.name)

    def __set__(self, obj: "Configurable", value: Any) -> None:
        setattr(obj._options, self.name, value)
        obj._option_changed(self.name)


class Configurable:
    """Base class for objects configured by ClientOptions.

    Every ClientOptions field is readable and assignable as an attribute;
    assignments are validated.

    Example:
        client = VaultClient(address="https://vault.example.com")
        client.token = "s.abc123"
        client.retry_options = {"attempts": 3}
    """

    address = _Option()
    token = _Option()
    namespace = _Option()
    hostname = _Option()
    timeout = _Option()
    open_timeout = _Option()
    read_timeout = _Option()
    ssl_verify = _Option()
    ssl_ca_cert = _Option()
    proxy_address = _Option()
    headers = _Option()
    retry_options = _Option()

    KEYS = tuple(ClientOptions.model_fields)

    def __init__(self, env_file: str | Path | None = None, **overrides: Any) -> None:
        """Initialize from the defaults, overridden by keyword arguments.

        Args:
            env_file: Optional .env file consulted for the defaults.
            **overrides: Values for any ClientOptions field.
        """
        self._options = ClientOptions(**{**Defaults.options(env_file), **overrides})

    @property
    def options(self) -> ClientOptions:
        """A copy of the current options."""
        return self._options.model_copy(deep=True)

    def configure(self, **overrides: Any) -> None:
        """Assign several options at once.

        Raises:
            TypeError: If a keyword is not an option name.
        """
        unknown = set(overrides) - set(self.KEYS)
        if unknown:
            raise TypeError(f"Unknown option(s): {', '.join(sorted(unknown))}")
        for key, value in overrides.items():
            setattr(self, key, value)

    def _option_changed(self, name: str) -> None:
        """Hook called after an option has been assigned."""
