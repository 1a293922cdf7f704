"""Retry logic with exponential backoff for transient failures.

This module provides a decorator for retrying operations that may fail due to
transient errors (subprocess timeouts, dropped connections).

Usage:
    @retry_with_exponential_backoff(max_attempts=3)
    def list_instances():
        return subprocess.run([...], timeout=30, check=True)
"""

import functools
import logging
import random
import subprocess
import time
from typing import Any, Callable, TypeVar

from rig.log_sanitizer import LogSanitizer

logger = logging.getLogger(__name__)

# Type variable for generic function wrapping
F = TypeVar("F", bound=Callable[..., Any])

# Error messages longer than this are truncated in retry logs
MAX_LOGGED_ERROR_LENGTH = 200


def retry_with_exponential_backoff(
    max_attempts: int = 3,
    initial_delay: float = 1.0,
    max_delay: float = 30.0,
    jitter: bool = True,
    retryable_exceptions: tuple[type[Exception], ...] | None = None,
) -> Callable[[F], F]:
    """Decorator for retrying operations with exponential backoff.

    Args:
        max_attempts: Maximum number of attempts (default: 3)
        initial_delay: Initial delay in seconds (default: 1.0)
        max_delay: Maximum delay between retries in seconds (default: 30.0)
        jitter: Add random jitter to delays (default: True)
        retryable_exceptions: Tuple of exception types to retry
            (default: timeouts and connection errors)

    Returns:
        Decorated function that will retry on transient failures
    """
    if retryable_exceptions is None:
        retryable_exceptions = _get_default_retryable_exceptions()

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            delay = initial_delay

            for attempt in range(1, max_attempts + 1):
                try:
                    result = func(*args, **kwargs)

                    if attempt > 1:
                        logger.info(
                            f"{func.__name__} succeeded on attempt {attempt}/{max_attempts}"
                        )

                    return result

                except retryable_exceptions as e:
                    if attempt >= max_attempts:
                        logger.debug(
                            f"{func.__name__} failed after {max_attempts} attempts: "
                            f"{_safe_error_message(e)}"
                        )
                        raise

                    actual_delay = delay
                    if jitter:
                        # ±25% of delay
                        jitter_amount = delay * 0.25
                        actual_delay = delay + random.uniform(-jitter_amount, jitter_amount)

                    actual_delay = min(actual_delay, max_delay)

                    logger.warning(
                        f"{func.__name__} failed on attempt {attempt}/{max_attempts}, "
                        f"retrying in {actual_delay:.2f}s: {_safe_error_message(e)}"
                    )

                    time.sleep(actual_delay)
                    delay *= 2

            raise RuntimeError(f"{func.__name__} failed with unknown error")

        return wrapper  # type: ignore

    return decorator


def _get_default_retryable_exceptions() -> tuple[type[Exception], ...]:
    """Get tuple of default retryable exception types."""
    return (
        TimeoutError,
        ConnectionError,
        subprocess.TimeoutExpired,
    )


def _safe_error_message(exception: Exception) -> str:
    """Create a truncated, sanitized error message safe for logging."""
    error_str = LogSanitizer.sanitize(str(exception))
    if len(error_str) > MAX_LOGGED_ERROR_LENGTH:
        error_str = error_str[:MAX_LOGGED_ERROR_LENGTH] + "..."
    return error_str


__all__ = ["retry_with_exponential_backoff"]
