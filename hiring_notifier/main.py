"""Hiring Notifier — Main Orchestrator.

Ties all components together: config, seen-jobs store, Jobs API
client, fetch pipeline, notification worker, persistence loop, and
shutdown handling.

Runs until SIGINT/SIGTERM:
  - Fetch tick (every second, APScheduler)
  - Notification worker (background task)
  - Seen-jobs persistence (every N seconds, plus a final flush)

Usage:
    python -m hiring_notifier.main
    python scripts/run.py
"""

from __future__ import annotations

import asyncio
import sys
import time
from typing import Optional

import yaml

from hiring_notifier.config import AppConfig, load_config
from hiring_notifier.fetcher.client import JobsApiClient
from hiring_notifier.fetcher.pipeline import FetchPipeline
from hiring_notifier.monitor import JobMonitor
from hiring_notifier.notifier.dispatcher import BatchNotifier, NotificationDispatcher
from hiring_notifier.notifier.telegram_bot import TelegramNotifier
from hiring_notifier.storage.persistence import PersistenceService
from hiring_notifier.storage.seen_store import SeenJobStore, load_seen_jobs
from hiring_notifier.utils.logger import get_logger, set_log_level
from hiring_notifier.utils.shutdown import ShutdownToken, install_signal_handlers

logger = get_logger(__name__)

# Configuration problems that stop the process before anything starts
CONFIG_ERRORS = (FileNotFoundError, ValueError, TypeError, OSError, yaml.YAMLError)


class HiringNotifier:
    """Main application orchestrator.

    Owns the component graph and the startup/shutdown sequence. The
    fetch pipeline, notification worker and persistence loop all share
    one ShutdownToken and exit on their own once it is set.

    Attributes:
        config: Full application configuration.
        shutdown: Shared shutdown token.
    """

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        shutdown: Optional[ShutdownToken] = None,
        notifier: Optional[BatchNotifier] = None,
        client: Optional[JobsApiClient] = None,
        tick_seconds: float = 1.0,
    ) -> None:
        """Initialize with optional pre-built collaborators.

        Args:
            config: Configuration; loaded from config/settings.yaml if omitted.
            shutdown: Shutdown token; a new one is created if omitted.
            notifier: Delivery collaborator; a TelegramNotifier if omitted.
            client: Jobs API client; built from config if omitted.
            tick_seconds: Fetch cadence.
        """
        self.config = config
        self.shutdown = shutdown or ShutdownToken()
        self._notifier = notifier
        self._client = client
        self._tick_seconds = tick_seconds

        self.store: Optional[SeenJobStore] = None
        self.dispatcher: Optional[NotificationDispatcher] = None
        self.pipeline: Optional[FetchPipeline] = None
        self.monitor: Optional[JobMonitor] = None
        self.persistence: Optional[PersistenceService] = None
        self._start_time: float = 0.0

    async def start(self) -> None:
        """Full application lifecycle.

        1. Load config and apply the log level
        2. Load the seen-jobs file
        3. Build client, notifier, queue, pipeline, monitor
        4. Start the notification worker and persistence loop
        5. Run the monitor until shutdown
        6. Drain notifications, wait for the final flush, close clients
        """
        self._start_time = time.monotonic()

        # ── 1. Config ────────────────────────────────────
        if self.config is None:
            logger.info("═══ Loading configuration ═══")
            self.config = load_config()
        set_log_level(self.config.log_level)
        config = self.config

        # ── 2. Seen jobs ─────────────────────────────────
        initial_jobs = load_seen_jobs(config.persistence.seen_jobs_file)
        logger.info("Loaded %d seen jobs", len(initial_jobs))
        self.store = SeenJobStore(initial_jobs)

        # ── 3. Components ────────────────────────────────
        logger.info("═══ Initializing components ═══")
        if self._notifier is None:
            telegram = TelegramNotifier(config.telegram)
            if not await telegram.initialize():
                logger.error("Telegram bot connection failed! Continuing anyway...")
            self._notifier = telegram
        if self._client is None:
            self._client = JobsApiClient(config.jobs_api, config.rate_limiting)

        self.dispatcher = NotificationDispatcher(
            self._notifier, capacity=config.notifications.queue_capacity,
        )
        self.pipeline = FetchPipeline(
            self._client, self.store, self.dispatcher,
            config.rate_limiting, self.shutdown,
        )
        self.monitor = JobMonitor(self.pipeline, self.shutdown, self._tick_seconds)
        self.persistence = PersistenceService(
            self.store, config.persistence, self.shutdown,
            wait_before_final=self.monitor.wait_idle,
        )

        # ── 4. Background tasks ──────────────────────────
        worker_task = asyncio.create_task(
            self.dispatcher.run(), name="notification-worker",
        )
        persistence_task = asyncio.create_task(
            self.persistence.run(), name="persistence-loop",
        )

        # ── 5. Main loop ─────────────────────────────────
        logger.info("═══ Entering main loop ═══")
        try:
            await self.monitor.run()
        finally:
            # ── 6. Shutdown ──────────────────────────────
            self.shutdown.trigger("monitor stopped")
            await self._shutdown(worker_task, persistence_task)

    async def _shutdown(
        self,
        worker_task: asyncio.Task,
        persistence_task: asyncio.Task,
    ) -> None:
        """Drain the queue, wait for the final flush, release clients."""
        logger.info("═══ Shutting down ═══")

        await self.dispatcher.close()
        await worker_task
        await persistence_task

        if self._client is not None:
            await self._client.close()
        close = getattr(self._notifier, "close", None)
        if close is not None:
            await close()

        stats = self.pipeline.summary()
        logger.info(
            "Ticks: %d | Requests: %d | Failures: %d | New: %d | "
            "Seen: %d | Notified: %d | Uptime: %s",
            stats["ticks"], stats["requests"], stats["failures"],
            stats["new_jobs"], stats["seen"], self.dispatcher.sent, self.uptime,
        )
        logger.info("Shutdown complete")

    @property
    def uptime(self) -> str:
        """Human-readable uptime string."""
        if not self._start_time:
            return "0m"
        s = time.monotonic() - self._start_time
        hours = int(s // 3600)
        mins = int((s % 3600) // 60)
        if hours:
            return f"{hours}h {mins}m"
        return f"{mins}m"


async def _run() -> int:
    try:
        config = load_config()
    except CONFIG_ERRORS as e:
        logger.critical("Configuration error: %s", e)
        return 1

    app = HiringNotifier(config)
    install_signal_handlers(app.shutdown)
    await app.start()
    return 0


def main() -> None:
    """Application entry point."""
    try:
        exit_code = asyncio.run(_run())
    except KeyboardInterrupt:
        exit_code = 0
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
