"""Retry orchestration with exponential backoff.

This module wraps a single logical operation in a bounded retry loop. It
provides:
- RetryPolicy: which errors are retried and how long to wait between attempts
- calculate_backoff: the jittered exponential delay before the next attempt
- with_retries / async_with_retries: the retry loop itself

Attempts are strictly sequential. The loop only ever suspends between
attempts, never while an attempt is in flight.

This is an internal module. Import from `vault` instead.
"""

import asyncio
import logging
import random
import time
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator

from vault.exceptions import HTTPConnectionError, HTTPServerError

logger = logging.getLogger(__name__)

T = TypeVar("T")

RetryableErrors = type[BaseException] | tuple[type[BaseException], ...]

# Errors retried when no explicit set is given
DEFAULT_RETRYABLE_ERRORS: tuple[type[BaseException], ...] = (
    HTTPConnectionError,
    HTTPServerError,
)

DEFAULT_RETRY_ATTEMPTS = 2
DEFAULT_RETRY_BASE = 0.05  # seconds
DEFAULT_RETRY_MAX_WAIT = 2.0  # seconds

# Largest doubling applied by calculate_backoff
MAX_BACKOFF_EXPONENT = 64


class RetryPolicy(BaseModel):
    """How a failing operation is retried.

    Attributes:
        retryable_errors: Exception classes that may be retried.
        attempts: Total number of calls allowed, including the first one.
        base: Delay before the second attempt, in seconds.
        max_wait: Upper bound for any single delay, in seconds.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    retryable_errors: tuple[type[BaseException], ...] = Field(
        default=DEFAULT_RETRYABLE_ERRORS,
        description="Exception classes that may be retried",
    )
    attempts: int = Field(default=DEFAULT_RETRY_ATTEMPTS, ge=1)
    base: float = Field(default=DEFAULT_RETRY_BASE, ge=0)
    max_wait: float = Field(default=DEFAULT_RETRY_MAX_WAIT, gt=0)

    @field_validator("retryable_errors", mode="before")
    @classmethod
    def validate_retryable_errors(cls, v: Any) -> tuple[type[BaseException], ...]:
        """Accept a single exception class or any iterable of them.

        Raises:
            ValueError: If the set is empty or holds something that is not
                an exception class.
        """
        errors = _normalize_retryable(v)
        if not errors:
            raise ValueError("retryable_errors cannot be empty")
        return errors


@dataclass(frozen=True)
class Attempt:
    """Outcome of one failed attempt inside a retry loop.

    Attributes:
        index: 1-based attempt number.
        error: The exception the attempt raised.
        delay: Seconds waited before the next attempt (None when terminal).
    """

    index: int
    error: BaseException
    delay: float | None = None


def _normalize_retryable(retryable: Any) -> tuple[type[BaseException], ...]:
    if isinstance(retryable, type):
        retryable = (retryable,)
    errors = tuple(retryable)
    for error in errors:
        if not (isinstance(error, type) and issubclass(error, BaseException)):
            raise ValueError(f"{error!r} is not an exception class")
    return errors


def _coerce_policy(policy: RetryPolicy | Mapping[str, Any] | None) -> RetryPolicy:
    if policy is None:
        return RetryPolicy()
    if isinstance(policy, RetryPolicy):
        return policy
    return RetryPolicy(**dict(policy))


def calculate_backoff(
    attempt: int,
    base: float = DEFAULT_RETRY_BASE,
    max_wait: float = DEFAULT_RETRY_MAX_WAIT,
    rand: Callable[[], float] = random.random,
) -> float:
    """Calculate the delay to wait after a failed attempt.

    The delay doubles with every attempt (base * 2^(attempt-1)) and is
    capped at max_wait. Jitter then scales it into [delay/2, delay], and
    the result is kept at or above base, but never above max_wait.

    Args:
        attempt: The failed attempt number (1-indexed).
        base: Base delay in seconds.
        max_wait: Cap for the delay in seconds.
        rand: Source of uniform randomness in [0, 1).

    Returns:
        The delay in seconds before the next attempt.
    """
    if base <= 0:
        return 0.0
    delay = min(max_wait, base * 2.0 ** min(attempt - 1, MAX_BACKOFF_EXPONENT))
    delay *= 0.5 * (1 + rand())
    return min(max_wait, max(base, delay))


def _next_attempt(
    index: int,
    error: BaseException,
    policy: RetryPolicy,
) -> Attempt | None:
    """Decide whether a failed attempt is followed by another one.

    Returns the attempt record carrying the delay when the loop should go
    on, or None when the error must propagate.
    """
    if index >= policy.attempts:
        logger.error(f"Giving up after {index} attempt(s): {error}")
        return None
    delay = calculate_backoff(index, policy.base, policy.max_wait)
    logger.warning(
        f"Attempt {index}/{policy.attempts} failed with {type(error).__name__}: {error}; "
        f"retrying in {delay:.2f}s"
    )
    return Attempt(index=index, error=error, delay=delay)


def with_retries(
    retryable: RetryableErrors,
    policy: RetryPolicy | Mapping[str, Any] | None,
    operation: Callable[[], T],
) -> T:
    """Run an operation, retrying it on the given errors.

    Args:
        retryable: Exception class, or tuple of classes, that may be retried.
        policy: Attempt budget and backoff settings. A mapping is accepted
            in place of a RetryPolicy; None means the default policy.
        operation: Zero-argument callable performing one attempt.

    Returns:
        Whatever the first successful attempt returned.

    Raises:
        BaseException: The error of the final attempt, unchanged, when it is
            not retryable or the attempt budget is spent.
    """
    errors = _normalize_retryable(retryable)
    if not errors:
        raise ValueError("retryable cannot be empty")
    policy = _coerce_policy(policy)

    index = 1
    while True:
        try:
            return operation()
        except errors as e:
            attempt = _next_attempt(index, e, policy)
            if attempt is None:
                raise
        if attempt.delay:
            time.sleep(attempt.delay)
        index += 1


async def async_with_retries(
    retryable: RetryableErrors,
    policy: RetryPolicy | Mapping[str, Any] | None,
    operation: Callable[[], Awaitable[T]],
) -> T:
    """Async variant of with_retries.

    The operation is a zero-argument callable returning a fresh awaitable
    for every attempt.
    """
    errors = _normalize_retryable(retryable)
    if not errors:
        raise ValueError("retryable cannot be empty")
    policy = _coerce_policy(policy)

    index = 1
    while True:
        try:
            return await operation()
        except errors as e:
            attempt = _next_attempt(index, e, policy)
            if attempt is None:
                raise
        if attempt.delay:
            await asyncio.sleep(attempt.delay)
        index += 1
