"""Retry utility with exponential backoff.

Every remote call in the pipeline goes through retry(). Failures are
retried only while attempts remain and the predicate classifies the
error as transient; the last error is always re-raised unchanged.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from functools import wraps
from typing import Any, TypeVar

import anthropic
import httpx

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_INITIAL_DELAY = 1.0
DEFAULT_MAX_DELAY = 30.0
DEFAULT_BACKOFF_MULTIPLIER = 2.0

_RATE_LIMIT_PATTERNS = ("rate limit", "429", "too many requests")
_TRANSIENT_PATTERNS = (
    "timeout",
    "econnreset",
    "econnrefused",
    "connection refused",
    "connection reset",
    "503",
    "502",
)
_TRANSIENT_TYPES = (
    httpx.TimeoutException,
    httpx.NetworkError,
    httpx.RemoteProtocolError,
    anthropic.APIConnectionError,
    ConnectionError,
    TimeoutError,
)
_DATABASE_NOT_FOUND_PATTERNS = ("could not find database", "object_not_found")


def _error_text(exc: BaseException) -> str:
    # Class name included: httpx timeouts often carry an empty message
    return f"{type(exc).__name__}: {exc}".lower()


def is_rate_limit_error(exc: BaseException) -> bool:
    """Return True if the error looks like provider rate limiting."""
    text = _error_text(exc)
    return any(pattern in text for pattern in _RATE_LIMIT_PATTERNS)


def is_transient_error(exc: BaseException) -> bool:
    """Return True if the error is likely to succeed on retry."""
    if isinstance(exc, _TRANSIENT_TYPES) or is_rate_limit_error(exc):
        return True
    text = _error_text(exc)
    return any(pattern in text for pattern in _TRANSIENT_PATTERNS)


def is_database_not_found(exc: BaseException) -> bool:
    """Return True if Notion reported a missing or unshared database."""
    text = _error_text(exc)
    return any(pattern in text for pattern in _DATABASE_NOT_FOUND_PATTERNS)


async def retry(
    operation: Callable[[], Awaitable[T]],
    *,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    initial_delay: float = DEFAULT_INITIAL_DELAY,
    max_delay: float = DEFAULT_MAX_DELAY,
    backoff_multiplier: float = DEFAULT_BACKOFF_MULTIPLIER,
    is_retryable: Callable[[BaseException], bool] | None = None,
    description: str | None = None,
) -> T:
    """Await operation() with exponential backoff between attempts.

    The delay starts at initial_delay and is multiplied by
    backoff_multiplier after each failure, capped at max_delay.

    Args:
        operation: Zero-argument callable returning an awaitable.
        max_attempts: Total attempts including the first (minimum 1).
        initial_delay: Seconds to wait after the first failure.
        max_delay: Upper bound on any single delay, in seconds.
        backoff_multiplier: Growth factor applied to the delay.
        is_retryable: Predicate deciding whether an error is retried.
            None retries every error.
        description: Label used in log lines. Defaults to the
            operation's __name__.

    Returns:
        The operation's result.

    Raises:
        Exception: The last error raised by the operation, with the
            number of attempts made attached as _attempts.
    """
    attempts = max(max_attempts, 1)
    label = description or getattr(operation, "__name__", "operation")
    delay = initial_delay

    for attempt in range(1, attempts + 1):
        try:
            logger.debug("Attempt %d/%d for %s", attempt, attempts, label)
            return await operation()
        except Exception as exc:
            exc._attempts = attempt  # type: ignore[attr-defined]
            if attempt == attempts:
                raise
            if is_retryable is not None and not is_retryable(exc):
                logger.debug("Error not retryable for %s: %s", label, exc)
                raise
            logger.warning(
                "Attempt %d/%d for %s failed: %s. Retrying in %.1fs",
                attempt,
                attempts,
                label,
                exc,
                delay,
                extra={"attempt": attempt, "delay_seconds": delay},
            )
            await asyncio.sleep(delay)
            delay = min(delay * backoff_multiplier, max_delay)

    raise AssertionError("unreachable")  # pragma: no cover


def retry_with_backoff(
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    initial_delay: float = DEFAULT_INITIAL_DELAY,
    max_delay: float = DEFAULT_MAX_DELAY,
    backoff_multiplier: float = DEFAULT_BACKOFF_MULTIPLIER,
    is_retryable: Callable[[BaseException], bool] | None = None,
) -> Callable:
    """Decorator form of retry() for async functions."""

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            return await retry(
                lambda: func(*args, **kwargs),
                max_attempts=max_attempts,
                initial_delay=initial_delay,
                max_delay=max_delay,
                backoff_multiplier=backoff_multiplier,
                is_retryable=is_retryable,
                description=func.__name__,
            )

        return wrapper

    return decorator
