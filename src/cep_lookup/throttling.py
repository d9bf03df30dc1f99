"""
Rate limiting implementations for lookup admission control.

Limiters here never sleep: a request over the limit fails immediately
with RateLimitError. State is owned by a single lookup instance and is
only touched between await points, so no locking is needed.
"""

from __future__ import annotations

import time
from collections import deque
from typing import Any, Callable, Mapping, Optional, Union

from .base import RateLimiter
from .errors import RateLimitError
from .models import RateLimitOptions


class SlidingWindowRateLimiter(RateLimiter):
    """
    Sliding window counter.

    Keeps the timestamps of admitted requests. On each attempt the ones
    older than `per` seconds are dropped; if `requests` remain the
    attempt is rejected and not recorded.
    """

    def __init__(
        self,
        requests: int,
        per: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the limiter.

        Args:
            requests: Requests admitted per window
            per: Window width in seconds
            clock: Monotonic time source, injectable for tests
        """
        if requests <= 0:
            raise ValueError("requests must be > 0")
        if per <= 0:
            raise ValueError("per must be > 0")

        self.requests = int(requests)
        self.per = float(per)
        self._clock = clock
        self._timestamps: deque[float] = deque()

    def _prune(self, now: float) -> None:
        window_start = now - self.per
        while self._timestamps and self._timestamps[0] <= window_start:
            self._timestamps.popleft()

    def acquire(self) -> None:
        now = self._clock()
        self._prune(now)
        if len(self._timestamps) >= self.requests:
            raise RateLimitError(self.requests, self.per)
        self._timestamps.append(now)

    def remaining(self) -> int:
        """Permits left in the current window."""
        self._prune(self._clock())
        return self.requests - len(self._timestamps)

    def reset(self) -> None:
        self._timestamps.clear()


class NoOpRateLimiter(RateLimiter):
    """
    Rate limiter that admits everything.

    Used when no rate limit is configured.
    """

    def acquire(self) -> None:
        """Do nothing."""
        pass


def build_rate_limiter(
    rate_limit: Union[None, RateLimiter, RateLimitOptions, Mapping[str, Any]],
    clock: Optional[Callable[[], float]] = None,
) -> RateLimiter:
    """Turn the accepted `rate_limit` option shapes into a RateLimiter."""
    if rate_limit is None:
        return NoOpRateLimiter()
    if isinstance(rate_limit, RateLimiter):
        return rate_limit
    if isinstance(rate_limit, Mapping):
        rate_limit = RateLimitOptions(**rate_limit)
    if not isinstance(rate_limit, RateLimitOptions):
        raise TypeError(f"Unsupported rate_limit option: {rate_limit!r}")
    if clock is None:
        return SlidingWindowRateLimiter(rate_limit.requests, rate_limit.per)
    return SlidingWindowRateLimiter(rate_limit.requests, rate_limit.per, clock=clock)
