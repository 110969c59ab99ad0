"""Retry logic with exponential backoff for transient Webflow errors.

This module provides retry functionality for errors the client classifies as
transient (rate limiting, 5xx responses, unreachable API). It implements
exponential backoff (1s, 2s, 4s by default), honours a server supplied
Retry-After when it is longer, and fails fast for every other error.
"""

import logging
import time
from functools import wraps
from typing import Callable, Optional, TypeVar

from .errors import RateLimitedError, TransientStoreError

logger = logging.getLogger(__name__)

T = TypeVar('T')

DEFAULT_MAX_RETRIES = 3
DEFAULT_BASE_DELAY = 1.0


def backoff_delay(
    retry_num: int,
    base_delay: float = DEFAULT_BASE_DELAY,
    error: Optional[Exception] = None,
) -> float:
    """Compute how long to wait before retry number ``retry_num`` (0-based).

    Args:
        retry_num: Index of the retry about to happen
        base_delay: Delay before the first retry
        error: The error that triggered the retry (used for Retry-After)

    Returns:
        Delay in seconds
    """
    delay = base_delay * (2 ** retry_num)
    if isinstance(error, RateLimitedError) and error.retry_after:
        delay = max(delay, error.retry_after)
    return delay


def retry_on_transient(
    func: Callable[..., T],
    *args,
    max_retries: int = DEFAULT_MAX_RETRIES,
    base_delay: float = DEFAULT_BASE_DELAY,
    sleep: Optional[Callable[[float], None]] = None,
    **kwargs,
) -> T:
    """Retry function on transient store errors with exponential backoff.

    Executes the given function, retrying up to ``max_retries`` times when it
    raises a TransientStoreError. Any other exception propagates immediately.

    Args:
        func: The function to execute with retry logic
        *args: Positional arguments to pass to the function
        max_retries: Number of retries after the first attempt
        base_delay: Delay before the first retry, doubled on each retry
        sleep: Sleep function (defaults to time.sleep)
        **kwargs: Keyword arguments to pass to the function

    Returns:
        The return value of the function

    Raises:
        TransientStoreError: The last transient error once retries are exhausted
        Other exceptions: Passed through immediately without retry

    Example:
        >>> result = retry_on_transient(client.update_record, item_id, payload)
    """
    for retry_num in range(max_retries):
        try:
            return func(*args, **kwargs)
        except TransientStoreError as e:
            wait_time = backoff_delay(retry_num, base_delay, e)
            logger.info(
                f"{e}; retrying in {wait_time:g}s "
                f"(retry {retry_num + 1}/{max_retries})"
            )
            (sleep or time.sleep)(wait_time)

    # Last attempt
    try:
        return func(*args, **kwargs)
    except TransientStoreError as e:
        logger.error(f"{type(e).__name__} persisted after {max_retries} retries, giving up")
        raise


def as_decorator(
    max_retries: int = DEFAULT_MAX_RETRIES,
    base_delay: float = DEFAULT_BASE_DELAY,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Decorator version of retry_on_transient.

    Example:
        >>> @as_decorator(max_retries=2)
        ... def fetch_item(item_id: str):
        ...     return client.get_record(item_id)
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args, **kwargs) -> T:
            return retry_on_transient(
                func, *args, max_retries=max_retries, base_delay=base_delay, **kwargs
            )
        return wrapper

    return decorator
