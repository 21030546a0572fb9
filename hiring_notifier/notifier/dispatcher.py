"""Hiring Notifier — Notification Dispatcher.

Bounded queue between the fetch tasks (many producers) and Telegram
delivery (one consumer). A full queue suspends the producer instead of
dropping the batch. Delivery is at-most-once: a failed send is logged
and the batch is dropped, never retried.
"""

from __future__ import annotations

import asyncio
from typing import Protocol

from hiring_notifier.models import NotificationBatch
from hiring_notifier.utils.logger import get_logger
from hiring_notifier.utils.resilience import QueueClosedError

logger = get_logger(__name__)

# Queued after the last batch; tells the consumer to stop
_CLOSED = object()


class BatchNotifier(Protocol):
    """Anything that can deliver a NotificationBatch."""

    async def send_batch(self, batch: NotificationBatch) -> None: ...


class NotificationDispatcher:
    """Multi-producer, single-consumer notification queue.

    Attributes:
        notifier: Delivery collaborator, usually a TelegramNotifier.
        sent: Batches delivered successfully.
        failed: Batches whose delivery raised.
    """

    def __init__(self, notifier: BatchNotifier, capacity: int = 100) -> None:
        """Initialize the dispatcher.

        Args:
            notifier: Object with an async send_batch(batch) method.
            capacity: Maximum number of queued batches.
        """
        self.notifier = notifier
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=capacity)
        self._closed = False
        self.sent = 0
        self.failed = 0

    @property
    def pending(self) -> int:
        """Batches waiting for the consumer."""
        return self._queue.qsize()

    @property
    def closed(self) -> bool:
        return self._closed

    async def send(self, batch: NotificationBatch) -> None:
        """Queue a batch, waiting for space if the queue is full.

        Args:
            batch: The batch to deliver.

        Raises:
            QueueClosedError: If close() has already been called.
        """
        if self._closed:
            raise QueueClosedError(
                f"Notification queue closed, dropping batch for {batch.location}"
            )
        await self._queue.put(batch)

    async def close(self) -> None:
        """Stop accepting batches. The consumer drains what is queued, then exits."""
        if self._closed:
            return
        self._closed = True
        await self._queue.put(_CLOSED)

    async def run(self) -> None:
        """Consumer loop: deliver each batch until the queue is closed."""
        logger.info("Notification worker started")

        while True:
            batch = await self._queue.get()
            if batch is _CLOSED:
                break

            try:
                await self.notifier.send_batch(batch)
            except Exception as e:
                self.failed += 1
                logger.error(
                    "Failed to send notification for %s: %s", batch.location, e,
                )
            else:
                self.sent += 1
                logger.info(
                    "Sent notification for %d jobs in %s",
                    len(batch.jobs), batch.location,
                )

        logger.info(
            "Notification worker stopped (sent=%d, failed=%d)",
            self.sent, self.failed,
        )
