"""Sliding-window rate limiter shared by everything that calls Webflow.

Webflow enforces a per-token request budget (60 requests per minute on most
plans). The limiter is an explicit object handed to the client rather than
module state, so tests can inject a fake clock and concurrent runs in one
process can each own their own window.
"""

import logging
import threading
import time
from collections import deque
from typing import Callable, Deque

logger = logging.getLogger(__name__)


class RateLimiter:
    """Blocks callers until a request permit is available.

    The check for a free slot and the recording of the new call happen under
    the same lock, so concurrent callers can never both observe a free slot
    and overshoot the window.

    Example:
        >>> limiter = RateLimiter(max_calls=60, period=60.0)
        >>> limiter.acquire()  # returns immediately while under budget
    """

    def __init__(
        self,
        max_calls: int = 60,
        period: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if max_calls < 1:
            raise ValueError(f"max_calls must be at least 1, got {max_calls}")
        if period <= 0:
            raise ValueError(f"period must be positive, got {period}")

        self.max_calls = max_calls
        self.period = period
        self._clock = clock
        self._sleep = sleep
        self._calls: Deque[float] = deque()
        self._lock = threading.Lock()

    def _prune(self, now: float) -> None:
        while self._calls and now - self._calls[0] >= self.period:
            self._calls.popleft()

    def try_acquire(self) -> float:
        """Take a permit if one is free.

        Returns:
            0.0 if a permit was taken, otherwise the number of seconds until
            the oldest call leaves the window.
        """
        with self._lock:
            now = self._clock()
            self._prune(now)
            if len(self._calls) < self.max_calls:
                self._calls.append(now)
                return 0.0
            return self.period - (now - self._calls[0])

    def acquire(self) -> None:
        """Block until a permit is taken."""
        while True:
            wait = self.try_acquire()
            if wait <= 0:
                return
            logger.debug(f"Rate limit window full, waiting {wait:.2f}s")
            # Sleep outside the lock so other threads can still prune
            self._sleep(wait)

    @property
    def in_window(self) -> int:
        """Number of calls recorded in the current window."""
        with self._lock:
            self._prune(self._clock())
            return len(self._calls)
