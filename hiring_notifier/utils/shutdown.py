"""Hiring Notifier — Shutdown Coordination.

A single cancellation token handed to every long-running task at spawn
time. It flips from "running" to "shutting down" exactly once, on
SIGINT/SIGTERM, and loops observe it at their next iteration or retry.
Nothing is force-cancelled.
"""

from __future__ import annotations

import asyncio
import signal
from typing import Optional

from hiring_notifier.utils.logger import get_logger

logger = get_logger(__name__)


class ShutdownToken:
    """One-way shutdown flag that can also be awaited."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def is_set(self) -> bool:
        """Whether shutdown has been requested."""
        return self._event.is_set()

    def trigger(self, reason: str = "requested") -> bool:
        """Request shutdown.

        Args:
            reason: Short description for the log line.

        Returns:
            True on the first call, False if shutdown was already set.
        """
        if self._event.is_set():
            logger.info("Shutdown already in progress (%s)", reason)
            return False
        logger.info("Shutdown signal received (%s)", reason)
        self._event.set()
        return True

    async def wait(self, timeout: Optional[float] = None) -> bool:
        """Wait for shutdown, at most `timeout` seconds.

        Args:
            timeout: Seconds to wait, or None to wait indefinitely.

        Returns:
            True if shutdown is set, False if the timeout elapsed first.
        """
        if self._event.is_set():
            return True
        try:
            await asyncio.wait_for(self._event.wait(), timeout)
        except asyncio.TimeoutError:
            return False
        return True


def install_signal_handlers(
    token: ShutdownToken,
    loop: Optional[asyncio.AbstractEventLoop] = None,
) -> None:
    """Route SIGINT and SIGTERM to `token.trigger`.

    Args:
        token: The token to trigger.
        loop: Event loop to register on. Defaults to the running loop.
    """
    loop = loop or asyncio.get_running_loop()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, token.trigger, sig.name)
        except NotImplementedError:
            # Windows event loops have no add_signal_handler
            def _handler(signum: int, frame: object) -> None:
                loop.call_soon_threadsafe(
                    token.trigger, signal.Signals(signum).name,
                )

            signal.signal(sig, _handler)

    logger.debug("Signal handlers installed")
