"""Hiring Notifier — Job Monitor.

Drives the fetch pipeline on a fixed one-second cadence with
APScheduler. A tick that fires while the previous cycle is still
running is dropped rather than queued, so at most one cycle (and at
most `requests_per_second` fetch tasks) is in flight at any time.

On shutdown the scheduler is paused, the in-flight cycle is allowed to
finish on its own, and only then is the scheduler shut down.
"""

from __future__ import annotations

import asyncio
import time
from datetime import datetime
from typing import Optional

from apscheduler.events import EVENT_JOB_MAX_INSTANCES, JobSubmissionEvent
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from hiring_notifier.fetcher.pipeline import FetchPipeline
from hiring_notifier.utils.logger import get_logger
from hiring_notifier.utils.shutdown import ShutdownToken

logger = get_logger(__name__)


class JobMonitor:
    """Fixed-interval scheduler for FetchPipeline ticks.

    Attributes:
        pipeline: The pipeline run once per tick.
        tick_seconds: Interval between ticks.
        cycle_count: Cycles actually run.
        skipped_ticks: Ticks dropped because a cycle was still running.
    """

    def __init__(
        self,
        pipeline: FetchPipeline,
        shutdown: ShutdownToken,
        tick_seconds: float = 1.0,
    ) -> None:
        self.pipeline = pipeline
        self.tick_seconds = tick_seconds
        self._shutdown = shutdown
        self._scheduler: Optional[AsyncIOScheduler] = None
        self._cycle_lock = asyncio.Lock()
        self._stopped = asyncio.Event()
        self.cycle_count = 0
        self.skipped_ticks = 0

    async def run_cycle(self) -> None:
        """Run one tick unless shutting down."""
        if self._shutdown.is_set:
            return

        async with self._cycle_lock:
            self.cycle_count += 1
            cycle_num = self.cycle_count
            cycle_start = time.monotonic()

            try:
                new_jobs = await self.pipeline.run_tick()
            except Exception as e:
                logger.error("Cycle #%d error: %s", cycle_num, e)
                return

            elapsed = time.monotonic() - cycle_start
            logger.debug(
                "Cycle #%d complete: %d new jobs in %.2fs",
                cycle_num, new_jobs, elapsed,
            )

    def _on_tick_skipped(self, event: JobSubmissionEvent) -> None:
        self.skipped_ticks += 1
        logger.debug("Previous cycle still running, skipping tick")

    async def run(self) -> None:
        """Tick until shutdown, then wait for the in-flight cycle to finish."""
        self._scheduler = AsyncIOScheduler()
        self._scheduler.add_job(
            self.run_cycle,
            IntervalTrigger(seconds=self.tick_seconds),
            id="fetch_tick",
            max_instances=1,
            coalesce=True,
            next_run_time=datetime.now(),
            name=f"Fetch tick (every {self.tick_seconds}s)",
        )
        self._scheduler.add_listener(self._on_tick_skipped, EVENT_JOB_MAX_INSTANCES)

        try:
            self._scheduler.start()
            logger.info("Job monitor started (tick every %.1fs)", self.tick_seconds)
            await self._shutdown.wait()
        finally:
            logger.info("Shutting down job monitor")
            if self._scheduler.running:
                self._scheduler.pause()
            async with self._cycle_lock:
                pass
            if self._scheduler.running:
                self._scheduler.shutdown(wait=False)
            self._stopped.set()
            logger.info(
                "Job monitor stopped (%d cycles, %d skipped ticks)",
                self.cycle_count, self.skipped_ticks,
            )

    async def wait_idle(self) -> None:
        """Wait until run() has returned and no cycle is in flight."""
        await self._stopped.wait()
