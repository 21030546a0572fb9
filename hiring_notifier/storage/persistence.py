"""Hiring Notifier — Persistence Loop.

Background task that writes the seen-jobs set to disk every
`persist_interval_seconds`, and once more after shutdown so the
latest dedup state survives a clean exit. An abrupt kill between
ticks can still lose up to one interval of newly seen ids.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Optional

from hiring_notifier.config import PersistenceConfig
from hiring_notifier.storage.seen_store import SeenJobStore, save_seen_jobs
from hiring_notifier.utils.logger import get_logger
from hiring_notifier.utils.shutdown import ShutdownToken

logger = get_logger(__name__)


class PersistenceService:
    """Periodic snapshot-and-save of a SeenJobStore.

    Attributes:
        saves: Number of successful writes so far.
        failures: Number of failed writes so far.
    """

    def __init__(
        self,
        store: SeenJobStore,
        config: PersistenceConfig,
        shutdown: ShutdownToken,
        wait_before_final: Optional[Callable[[], Awaitable[None]]] = None,
    ) -> None:
        """Initialize the service.

        Args:
            store: The shared seen-jobs store.
            config: File path and interval.
            shutdown: Token that ends the loop.
            wait_before_final: Awaited after shutdown and before the
                final flush, e.g. until the last fetch tick completes.
        """
        self.store = store
        self.config = config
        self._shutdown = shutdown
        self._wait_before_final = wait_before_final
        self.saves = 0
        self.failures = 0

    async def flush(self) -> bool:
        """Snapshot the store and write it to disk from a worker thread.

        Returns:
            True if the file was written. Failures are logged, not raised.
        """
        jobs = await self.store.snapshot()
        try:
            await asyncio.to_thread(save_seen_jobs, self.config.seen_jobs_file, jobs)
        except OSError as e:
            self.failures += 1
            logger.warning("Failed to persist jobs: %s", e)
            return False

        self.saves += 1
        logger.info("Persisted %d seen jobs to disk", len(jobs))
        return True

    async def run(self) -> None:
        """Flush every interval until shutdown, then flush one final time."""
        interval = self.config.persist_interval_seconds
        logger.info(
            "Persistence loop started (every %.0fs -> %s)",
            interval, self.config.seen_jobs_file,
        )

        while not self._shutdown.is_set:
            if await self._shutdown.wait(timeout=interval):
                break
            await self.flush()

        if self._wait_before_final is not None:
            await self._wait_before_final()

        if await self.flush():
            logger.info("Final persistence complete")
        else:
            logger.warning("Final persistence failed")
