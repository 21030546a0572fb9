"""Hiring Notifier — Fetch Pipeline.

One dispatcher tick: launch `requests_per_second` staggered fetch
tasks, dedup each result against the seen-jobs store, group the new
jobs by location, and queue one notification batch per location.
Tasks only contend with each other inside the store's lock.
"""

from __future__ import annotations

import asyncio
from typing import Any

from hiring_notifier.config import RateLimitingConfig
from hiring_notifier.fetcher.client import JobsApiClient
from hiring_notifier.models import JobRecord, NotificationBatch
from hiring_notifier.notifier.dispatcher import NotificationDispatcher
from hiring_notifier.storage.seen_store import SeenJobStore
from hiring_notifier.utils.logger import get_logger
from hiring_notifier.utils.resilience import QueueClosedError
from hiring_notifier.utils.shutdown import ShutdownToken

logger = get_logger(__name__)


class FetchPipeline:
    """Fetch → dedup → group → enqueue, fanned out per tick.

    Attributes:
        client: Jobs API client (anything with async fetch_jobs(shutdown)).
        store: Shared seen-jobs store.
        dispatcher: Notification queue producer side.
        config: Fan-out settings.
    """

    def __init__(
        self,
        client: JobsApiClient,
        store: SeenJobStore,
        dispatcher: NotificationDispatcher,
        config: RateLimitingConfig,
        shutdown: ShutdownToken,
    ) -> None:
        self.client = client
        self.store = store
        self.dispatcher = dispatcher
        self.config = config
        self._shutdown = shutdown
        self.stats: dict[str, int] = {
            "ticks": 0, "requests": 0, "failures": 0, "new_jobs": 0,
        }

    async def run_tick(self) -> int:
        """Run one tick's worth of staggered requests and wait for all of them.

        Task i sleeps i * delay_between_requests_ms before fetching. A
        failing task is logged and does not affect its siblings.

        Returns:
            Number of new jobs found during this tick.
        """
        self.stats["ticks"] += 1
        count = self.config.requests_per_second
        if count <= 0:
            return 0

        delay = self.config.delay_between_requests_ms / 1000.0
        results = await asyncio.gather(
            *(self._staggered_request(i * delay) for i in range(count))
        )
        return sum(results)

    async def _staggered_request(self, delay: float) -> int:
        if delay > 0:
            await asyncio.sleep(delay)
        self.stats["requests"] += 1
        try:
            return await self.process_request()
        except Exception as e:
            self.stats["failures"] += 1
            logger.warning("Request processing failed: %s", e)
            return 0

    async def process_request(self) -> int:
        """Fetch once, then dedup, group, and enqueue the new jobs.

        Returns:
            Number of new jobs found.

        Raises:
            RetriesExhaustedError: If the fetch gave up.
        """
        jobs = await self.client.fetch_jobs(self._shutdown)
        if not jobs:
            return 0

        batches = await self.group_new_jobs(jobs)
        if not batches:
            return 0

        new_count = sum(len(batch.jobs) for batch in batches)
        self.stats["new_jobs"] += new_count
        logger.info("Found %d new jobs", new_count)

        for batch in batches:
            try:
                await self.dispatcher.send(batch)
            except QueueClosedError as e:
                logger.error("Failed to send notification batch: %s", e)

        return new_count

    async def group_new_jobs(self, jobs: list[JobRecord]) -> list[NotificationBatch]:
        """Claim unseen jobs and group them by location.

        Each job goes through the store's insert_if_new; only jobs this
        call inserted are kept. Within a location, jobs keep response order.

        Args:
            jobs: Jobs from one fetch, in response order.

        Returns:
            One batch per location that has new jobs.
        """
        by_location: dict[str, list[JobRecord]] = {}

        for job in jobs:
            if not await self.store.insert_if_new(job.id):
                continue

            by_location.setdefault(job.location, []).append(job)
            logger.info(
                "- %s @ %s @ %s ($%.2f-$%.2f/hr)",
                job.title, job.location, job.job_type, job.pay_min, job.pay_max,
            )

        return [
            NotificationBatch(location=location, jobs=location_jobs)
            for location, location_jobs in by_location.items()
        ]

    def summary(self) -> dict[str, Any]:
        """Counters for the shutdown log line."""
        return dict(self.stats, seen=len(self.store))
