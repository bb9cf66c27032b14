"""Retry utilities for completion calls."""

import logging
import time
from typing import Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

RATE_LIMIT_INDICATORS = (
    "ratelimiterror",
    "rate limit",
    "rate_limit",
    "quota",
    "exceeded your current quota",
    "insufficient credits",
    "402",  # Payment required
    "429",  # Too many requests
)


def is_rate_limit_error(exception: Exception) -> bool:
    """
    Check if an exception is a rate limit/quota error.

    Retrying the same model after one of these only burns time, so callers
    move on to the next model instead.
    """
    error_str = str(exception).lower()
    error_type = type(exception).__name__.lower()
    return any(
        indicator in error_str or indicator in error_type
        for indicator in RATE_LIMIT_INDICATORS
    )


def linear_delay(attempt: int, base_delay: float) -> float:
    """Delay before the retry that follows `attempt` (0-based): base * (attempt + 1)."""
    return base_delay * (attempt + 1)


def call_with_retry(
    func: Callable[[], T],
    max_attempts: int = 2,
    base_delay: float = 1.0,
    sleep: Optional[Callable[[float], None]] = None,
    label: str = "call",
) -> T:
    """
    Call `func` up to `max_attempts` times with linear backoff.

    Rate limit errors are re-raised immediately without retrying.

    Raises:
        The last exception raised by `func`
    """
    sleep = sleep or time.sleep
    last_exception: Optional[Exception] = None

    for attempt in range(max_attempts):
        try:
            return func()
        except Exception as e:
            last_exception = e
            if is_rate_limit_error(e):
                logger.warning(f"{label} hit rate limit/quota error (not retrying): {e}")
                raise
            if attempt < max_attempts - 1:
                delay = linear_delay(attempt, base_delay)
                logger.warning(
                    f"{label} failed (attempt {attempt + 1}/{max_attempts}): {e}. "
                    f"Retrying in {delay:.2f}s..."
                )
                sleep(delay)
            else:
                logger.error(f"{label} failed after {max_attempts} attempts: {e}")

    raise last_exception
