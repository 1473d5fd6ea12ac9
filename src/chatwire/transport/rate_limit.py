"""Outbound rate limiting for chatwire connections.

This module provides:
    - **SlidingWindowRateLimiter**: per-connection admission control that counts
      admitted sends over a trailing window. Bursts up to ``limit`` are allowed
      inside any window; there is no smoothing or refill rate.

Admission is two-phase: ``allow()`` prunes and tests without consuming,
``record()`` counts a send that actually went out. A limit of 0 denies every
send, which is how a paused channel is modelled.

Public exports:
    SlidingWindowRateLimiter: Sliding-window counter over send timestamps.
"""

from __future__ import annotations

import collections
import time
from collections.abc import Callable

from chatwire.observability import get_logger

logger = get_logger(__name__)

TimeFn = Callable[[], float]


class SlidingWindowRateLimiter:
    """Track admitted sends over a rolling time window. Not thread-safe.

    Timestamps are kept oldest first; every admission check drops entries
    older than ``now - window`` so the deque never outgrows the window.

    Example:
        >>> limiter = SlidingWindowRateLimiter(limit=2, window=30.0, now_fn=lambda: 0.0)
        >>> limiter.try_acquire(), limiter.try_acquire(), limiter.try_acquire()
        (True, True, False)
    """

    __slots__ = ("_limit", "_window", "_now", "_timestamps")

    def __init__(
        self,
        limit: int,
        window: float,
        *,
        now_fn: TimeFn | None = None,
    ) -> None:
        if limit < 0:
            raise ValueError("limit must not be negative")
        if window <= 0:
            raise ValueError("window must be positive")
        self._limit = int(limit)
        self._window = float(window)
        self._now = now_fn or time.monotonic
        self._timestamps: collections.deque[float] = collections.deque()

    def _prune(self, now: float) -> None:
        cutoff = now - self._window
        timestamps = self._timestamps
        while timestamps and timestamps[0] < cutoff:
            timestamps.popleft()

    def allow(self, now: float | None = None) -> bool:
        """Return True if one more send fits in the window ending at *now*."""
        if now is None:
            now = self._now()
        self._prune(now)
        return len(self._timestamps) < self._limit

    def record(self, now: float | None = None) -> None:
        """Count a send at *now*. Call only after ``allow()`` returned True."""
        self._timestamps.append(self._now() if now is None else now)

    def try_acquire(self, now: float | None = None) -> bool:
        """``allow()`` and, if admitted, ``record()`` in one step."""
        if now is None:
            now = self._now()
        if not self.allow(now):
            logger.debug(
                "chatwire.rate_limit.denied",
                limit=self._limit,
                window=self._window,
                occupancy=len(self._timestamps),
            )
            return False
        self.record(now)
        return True

    def retry_after(self, now: float | None = None) -> float:
        """Seconds until a send would be admitted (0.0 if one is admitted now).

        With a limit of 0 nothing is ever admitted and ``inf`` is returned.
        """
        if now is None:
            now = self._now()
        if self._limit == 0:
            return float("inf")
        if self.allow(now):
            return 0.0
        return max(0.0, self._timestamps[0] + self._window - now)

    def count(self, now: float | None = None) -> int:
        """Sends counted in the window ending at *now*. Read-only: nothing is pruned."""
        if now is None:
            now = self._now()
        cutoff = now - self._window
        return sum(1 for t in self._timestamps if t >= cutoff)

    def reset(self) -> None:
        self._timestamps.clear()

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def window(self) -> float:
        return self._window

    @property
    def occupancy(self) -> int:
        """Sends inside the current window, same as ``count()``."""
        return self.count()


__all__ = ["SlidingWindowRateLimiter", "TimeFn"]
