"""
Retry utilities with exponential backoff for transient API errors.
"""

import time
import logging
from typing import Callable, TypeVar
from functools import wraps

from core.errors import CanceledError, NetworkError, ServerError

logger = logging.getLogger(__name__)

T = TypeVar('T')

RETRYABLE_ERRORS = (ServerError, NetworkError)


def _sleep(instance, delay: float) -> None:
    """Sleep for delay seconds, waking early if the instance is canceled."""
    cancel_event = getattr(instance, "cancel_event", None)
    if cancel_event is None:
        time.sleep(delay)
        return
    if cancel_event.wait(delay):
        raise CanceledError("request canceled")


def exponential_backoff(
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    exponential_base: float = 2.0,
    retry_on: tuple = RETRYABLE_ERRORS,
) -> Callable:
    """
    Decorator for exponential backoff retry logic on client methods.

    Only the errors listed in retry_on are retried; everything else
    (not found, forbidden, rate limits, cancellation) propagates at once.
    When the decorated method's instance has a cancel_event, the delay
    between attempts is interrupted by cancellation.

    Args:
        max_retries: Maximum number of retry attempts
        base_delay: Initial delay in seconds
        max_delay: Maximum delay between retries
        exponential_base: Multiplier for exponential growth
        retry_on: Exception types that trigger a retry
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(self, *args, **kwargs) -> T:
            for attempt in range(max_retries + 1):
                try:
                    return func(self, *args, **kwargs)
                except retry_on as e:
                    if attempt == max_retries:
                        logger.error(
                            f"Max retries ({max_retries}) reached for {func.__name__}"
                        )
                        raise

                    # Calculate delay with exponential backoff
                    delay = min(
                        base_delay * (exponential_base ** attempt),
                        max_delay
                    )

                    logger.warning(
                        f"Attempt {attempt + 1}/{max_retries} failed for "
                        f"{func.__name__}: {str(e)}. Retrying in {delay:.1f}s..."
                    )
                    _sleep(self, delay)

            raise AssertionError("unreachable")

        return wrapper
    return decorator
