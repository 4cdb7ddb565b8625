"""Retry logic with exponential backoff for database reads.

This module provides a decorator for automatic retry of transient failures
with exponential backoff and jitter to prevent thundering herd problems.
"""

import asyncio
import functools
import inspect
import logging
import random
import time
from typing import Any, Callable, Set, Type, TypeVar, cast

logger = logging.getLogger(__name__)

# Type variable for generic function decoration
F = TypeVar("F", bound=Callable[..., Any])

# HTTP status codes that should trigger retry
RETRYABLE_STATUS_CODES: Set[int] = {
    429,  # Rate limit
    500,  # Server error
    502,  # Bad gateway
    503,  # Service unavailable
}

# HTTP status codes that should NOT trigger retry
NON_RETRYABLE_STATUS_CODES: Set[int] = {
    400,  # Bad request
    401,  # Unauthorized
    403,  # Forbidden
    404,  # Not found
    422,  # Unprocessable entity
}

NETWORK_ERROR_MARKERS = (
    "timeout",
    "timed out",
    "connection",
    "network",
    "temporarily unavailable",
)

# Retry configuration
MAX_RETRIES = 3
BASE_DELAY = 0.5  # seconds
MAX_JITTER = 0.5  # seconds


def _backoff_delay(attempt: int, base_delay: float, max_jitter: float) -> float:
    return (base_delay * (2**attempt)) + (random.random() * max_jitter)


def retry_with_backoff(
    max_retries: int = MAX_RETRIES,
    base_delay: float = BASE_DELAY,
    max_jitter: float = MAX_JITTER,
    retryable_exceptions: tuple[Type[Exception], ...] = (ConnectionError, TimeoutError),
) -> Callable[[F], F]:
    """Decorator that retries a function with exponential backoff.

    Retries on 429/500/502/503 status codes, network timeouts and connection
    errors. Never retries 400/401/403/404/422. Coroutine functions sleep with
    ``asyncio.sleep`` so the event loop is not blocked.

    Args:
        max_retries: Maximum number of retry attempts
        base_delay: Base delay in seconds for exponential backoff
        max_jitter: Maximum random jitter in seconds
        retryable_exceptions: Exception types retried even without a status code

    Returns:
        Decorated function with retry logic
    """

    def decorator(func: F) -> F:
        def _on_failure(attempt: int, e: Exception) -> float:
            """Re-raise when the failure is final, else return the delay to wait."""
            if not _should_retry_exception(e, retryable_exceptions):
                raise e
            if attempt >= max_retries:
                logger.error(f"{func.__name__} failed after {max_retries} retries: {e}")
                raise e
            delay = _backoff_delay(attempt, base_delay, max_jitter)
            logger.warning(
                f"{func.__name__} attempt {attempt + 1}/{max_retries} failed: {e}. "
                f"Retrying in {delay:.2f}s..."
            )
            return delay

        @functools.wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            attempt = 0
            while True:
                try:
                    return await func(*args, **kwargs)
                except Exception as e:
                    delay = _on_failure(attempt, e)
                await asyncio.sleep(delay)
                attempt += 1

        @functools.wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            attempt = 0
            while True:
                try:
                    return func(*args, **kwargs)
                except Exception as e:
                    delay = _on_failure(attempt, e)
                time.sleep(delay)
                attempt += 1

        if inspect.iscoroutinefunction(func):
            return cast(F, async_wrapper)
        return cast(F, sync_wrapper)

    return decorator


def _should_retry_exception(
    exception: Exception, retryable_exceptions: tuple[Type[Exception], ...]
) -> bool:
    """Determine if an exception should trigger a retry.

    Args:
        exception: The exception that was raised
        retryable_exceptions: Tuple of exception types to retry

    Returns:
        True if the exception should trigger retry, False otherwise
    """
    status_code = _extract_status_code(exception)

    if status_code:
        if status_code in NON_RETRYABLE_STATUS_CODES:
            return False
        if status_code in RETRYABLE_STATUS_CODES:
            return True

    if isinstance(exception, retryable_exceptions):
        return True

    exception_str = str(exception).lower()
    return any(marker in exception_str for marker in NETWORK_ERROR_MARKERS)


def _extract_status_code(exception: Exception) -> int | None:
    """Extract HTTP status code from exception.

    Args:
        exception: Exception that may contain status code

    Returns:
        HTTP status code if found, None otherwise
    """
    # httpx / postgrest style attribute
    if hasattr(exception, "status_code"):
        try:
            return int(getattr(exception, "status_code"))
        except (TypeError, ValueError):
            return None

    # postgrest APIError carries the code as a string, sometimes numeric
    code = getattr(exception, "code", None)
    if isinstance(code, int):
        return code
    if isinstance(code, str) and code.isdigit():
        return int(code)

    response = getattr(exception, "response", None)
    if response is not None and hasattr(response, "status_code"):
        return int(getattr(response, "status_code"))

    return None
