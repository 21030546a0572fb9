"""Hiring Notifier — Resilience Utilities.

Exponential backoff for retried Jobs API calls, plus the exception
types shared by the fetch, dispatch, and notification layers.

Usage:
    delay = compute_backoff(attempt, base_ms=500, max_ms=10_000)
    await asyncio.sleep(delay)
"""

from __future__ import annotations

# Doubling past this many times already exceeds any sane cap
_MAX_EXPONENT = 63


class JobsApiError(Exception):
    """Raised when the Jobs API answers with a bad status or body."""


class RetriesExhaustedError(Exception):
    """Raised when every fetch attempt failed."""

    def __init__(self, attempts: int) -> None:
        self.attempts = attempts
        super().__init__(f"All {attempts} retry attempts exhausted")


class QueueClosedError(Exception):
    """Raised when a batch is sent after the notification queue closed."""


def compute_backoff(attempt: int, base_ms: int, max_ms: int) -> float:
    """Delay before retry number `attempt`, in seconds.

    delay = min(base_ms * 2^attempt, max_ms). The exponent is capped so
    huge attempt counts clamp to max_ms instead of building an enormous
    integer.

    Args:
        attempt: Zero-based retry count.
        base_ms: Delay for the first retry, in milliseconds.
        max_ms: Upper bound for any delay, in milliseconds.

    Returns:
        Delay in seconds.

    Raises:
        ValueError: If attempt is negative.
    """
    if attempt < 0:
        raise ValueError(f"attempt must be >= 0, got {attempt}")
    if base_ms <= 0 or max_ms <= 0:
        return 0.0

    exponent = min(attempt, _MAX_EXPONENT)
    delay_ms = min(base_ms * (1 << exponent), max_ms)
    return delay_ms / 1000.0
