"""Hiring Notifier — Async Rate Limiter.

Sliding-window limiter shared by every Jobs API attempt, so retries
from several fetch tasks cannot push the outbound request rate above
the configured requests-per-second.
"""

from __future__ import annotations

import asyncio
import time

from hiring_notifier.utils.logger import get_logger

logger = get_logger(__name__)


class AsyncRateLimiter:
    """Async rate limiter using a sliding window of call timestamps.

    Attributes:
        max_calls: Maximum number of calls allowed within the time window.
        period: Time window in seconds.
    """

    def __init__(self, max_calls: int, period_seconds: float) -> None:
        """Initialize the rate limiter.

        Args:
            max_calls: Maximum number of calls allowed per time period.
            period_seconds: Length of the sliding window in seconds.

        Raises:
            ValueError: If max_calls is below 1 or the period is not positive.
        """
        if max_calls < 1:
            raise ValueError(f"max_calls must be >= 1, got {max_calls}")
        if period_seconds <= 0:
            raise ValueError(f"period_seconds must be > 0, got {period_seconds}")

        self.max_calls = max_calls
        self.period = period_seconds
        self._timestamps: list[float] = []
        self._lock = asyncio.Lock()

        logger.debug(
            "Rate limiter initialized: %d calls / %.1f seconds",
            max_calls, period_seconds,
        )

    def _cleanup_expired(self) -> None:
        """Drop timestamps that have fallen outside the current window."""
        cutoff = time.monotonic() - self.period
        self._timestamps = [ts for ts in self._timestamps if ts > cutoff]

    async def acquire(self) -> None:
        """Take a slot, sleeping until the oldest call leaves the window.

        The lock is only held while inspecting the window, never while
        sleeping, so waiters do not serialize behind one another's sleeps.
        """
        while True:
            async with self._lock:
                self._cleanup_expired()
                if len(self._timestamps) < self.max_calls:
                    self._timestamps.append(time.monotonic())
                    return
                wait_time = self._timestamps[0] + self.period - time.monotonic()

            logger.debug(
                "Rate limit reached (%d/%d). Waiting %.3f seconds...",
                len(self._timestamps), self.max_calls, wait_time,
            )
            await asyncio.sleep(max(wait_time, 0.0))

    def __repr__(self) -> str:
        return f"AsyncRateLimiter(max_calls={self.max_calls}, period={self.period}s)"
