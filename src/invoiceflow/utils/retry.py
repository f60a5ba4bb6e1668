"""Retry decorator with exponential backoff."""
import functools
import time
from typing import Callable, Tuple, Type

from .exceptions import RetryableError
from .logger import get_logger

logger = get_logger()


def retry_with_backoff(
    max_retries: int = 2,
    initial_delay: float = 1.0,
    backoff_factor: float = 2.0,
    retryable_exceptions: Tuple[Type[Exception], ...] = (RetryableError,)
):
    """
    Decorator for retrying functions with exponential backoff.

    Only for calls without remote side effects: a retried copy or send could
    run twice.

    Args:
        max_retries: Number of retries after the first attempt
        initial_delay: Seconds to wait before the first retry
        backoff_factor: Multiplier for wait time between retries
        retryable_exceptions: Tuple of exception types that trigger retry
    """
    def decorator(func: Callable):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            for attempt in range(max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except retryable_exceptions as e:
                    if attempt == max_retries:
                        logger.error(
                            f"Giving up on {func.__name__} after {max_retries + 1} attempt(s): {e}"
                        )
                        raise

                    wait_time = initial_delay * (backoff_factor ** attempt)
                    logger.warning(
                        f"Retry {attempt + 1}/{max_retries} for {func.__name__} "
                        f"after {wait_time:.1f}s: {e}"
                    )
                    time.sleep(wait_time)

        return wrapper
    return decorator
