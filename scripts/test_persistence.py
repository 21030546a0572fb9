"""Hiring Notifier — Persistence & Lifecycle Tests.

Tests the persistence loop and the full application lifecycle:
  1. flush writes a snapshot
  2. Shutdown triggers exactly one final flush
  3. The final flush waits for in-flight work
  4. Write failures are not fatal, writes run off the event loop
  5. End-to-end run with fake API and Telegram

Run: python scripts/test_persistence.py   (or: pytest scripts/)
"""

from __future__ import annotations

import asyncio
import sys
import tempfile
import threading
import time
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from hiring_notifier.config import (
    AppConfig,
    JobsApiConfig,
    NotificationConfig,
    PersistenceConfig,
    RateLimitingConfig,
    TelegramConfig,
)
from hiring_notifier.main import HiringNotifier
from hiring_notifier.models import JobRecord, NotificationBatch
from hiring_notifier.storage.persistence import PersistenceService
from hiring_notifier.storage.seen_store import SeenJobStore, load_seen_jobs
from hiring_notifier.utils.logger import get_logger
from hiring_notifier.utils.shutdown import ShutdownToken

logger = get_logger(__name__)

_passed = 0
_failed = 0


def check(label: str, condition: bool) -> None:
    """Track test pass/fail and fail the current test on a false condition."""
    global _passed, _failed
    if condition:
        _passed += 1
        logger.info("  ✅ %s", label)
    else:
        _failed += 1
        logger.error("  ❌ FAILED: %s", label)
    assert condition, label


def _persistence(path: Path, interval: float = 60) -> PersistenceConfig:
    return PersistenceConfig(seen_jobs_file=str(path), persist_interval_seconds=interval)


# ── Persistence loop ──────────────────────────────────────


async def test_flush() -> None:
    """flush writes the current snapshot."""
    logger.info("═══ Test 1: Flush ═══")

    with tempfile.TemporaryDirectory() as tmp:
        path = Path(tmp) / "data" / "seen.txt"
        store = SeenJobStore({"A", "B"})
        service = PersistenceService(store, _persistence(path), ShutdownToken())

        check("flush reports success", await service.flush() is True)
        check("File holds the snapshot", load_seen_jobs(path) == {"A", "B"})
        check("Save counted", service.saves == 1)


async def test_periodic_and_final_flush() -> None:
    """The loop saves every interval and once more after shutdown."""
    logger.info("═══ Test 2: Periodic & Final Flush ═══")

    with tempfile.TemporaryDirectory() as tmp:
        path = Path(tmp) / "seen.txt"
        store = SeenJobStore({"A"})
        token = ShutdownToken()
        service = PersistenceService(store, _persistence(path, interval=0.05), token)

        task = asyncio.create_task(service.run())
        await asyncio.sleep(0.18)
        periodic = service.saves
        check(f"Periodic saves happened ({periodic})", periodic >= 2)

        await store.insert_if_new("B")
        token.trigger("test")
        await asyncio.wait_for(task, timeout=2)

        check("Exactly one final save", service.saves == periodic + 1)
        check("Final save includes the latest insert", load_seen_jobs(path) == {"A", "B"})


async def test_prompt_shutdown() -> None:
    """A long interval does not delay shutdown."""
    logger.info("═══ Test 3: Prompt Shutdown ═══")

    with tempfile.TemporaryDirectory() as tmp:
        path = Path(tmp) / "seen.txt"
        token = ShutdownToken()
        service = PersistenceService(SeenJobStore({"X"}), _persistence(path, 60), token)

        task = asyncio.create_task(service.run())
        await asyncio.sleep(0.05)
        start = time.monotonic()
        token.trigger("test")
        await asyncio.wait_for(task, timeout=2)

        check("Returned quickly", time.monotonic() - start < 1.0)
        check("Only the final save ran", service.saves == 1)
        check("File written", load_seen_jobs(path) == {"X"})


async def test_final_flush_waits() -> None:
    """wait_before_final runs before the last save."""
    logger.info("═══ Test 4: Final Flush Ordering ═══")

    with tempfile.TemporaryDirectory() as tmp:
        path = Path(tmp) / "seen.txt"
        store = SeenJobStore()
        token = ShutdownToken()

        async def last_tick() -> None:
            await asyncio.sleep(0.05)
            await store.insert_if_new("LATE")

        service = PersistenceService(
            store, _persistence(path), token, wait_before_final=last_tick,
        )
        token.trigger("test")
        await asyncio.wait_for(service.run(), timeout=2)

        check("Late insert persisted", load_seen_jobs(path) == {"LATE"})


async def test_write_failure_not_fatal() -> None:
    """An unwritable path is logged and the loop keeps its contract."""
    logger.info("═══ Test 5: Write Failure ═══")

    with tempfile.TemporaryDirectory() as tmp:
        blocker = Path(tmp) / "not-a-dir"
        blocker.write_text("file", encoding="utf-8")
        path = blocker / "seen.txt"

        token = ShutdownToken()
        service = PersistenceService(SeenJobStore({"A"}), _persistence(path, 0.02), token)

        task = asyncio.create_task(service.run())
        await asyncio.sleep(0.08)
        token.trigger("test")
        await asyncio.wait_for(task, timeout=2)

        check("Failures counted", service.failures >= 2)
        check("No successful saves", service.saves == 0)
        check("Loop exited normally", task.exception() is None)


async def test_flush_keeps_loop_responsive() -> None:
    """A slow disk write does not block other tasks."""
    logger.info("═══ Test 6: Flush Off The Event Loop ═══")

    import hiring_notifier.storage.persistence as persistence_module

    writer_threads: list[int] = []

    def slow_save(path: str, ids: set[str]) -> None:
        writer_threads.append(threading.get_ident())
        time.sleep(0.2)

    ticks = 0

    async def ticker() -> None:
        nonlocal ticks
        while True:
            await asyncio.sleep(0.01)
            ticks += 1

    original = persistence_module.save_seen_jobs
    persistence_module.save_seen_jobs = slow_save
    ticker_task = asyncio.create_task(ticker())
    try:
        service = PersistenceService(
            SeenJobStore({"A"}), _persistence(Path("unused.txt")), ShutdownToken(),
        )
        check("flush succeeds", await service.flush() is True)
    finally:
        persistence_module.save_seen_jobs = original
        ticker_task.cancel()

    check("Write ran off the event loop thread", writer_threads[0] != threading.get_ident())
    check(f"Other tasks kept running ({ticks} ticks)", ticks >= 5)


# ── Application lifecycle ─────────────────────────────────


def _job(job_id: str, location: str) -> JobRecord:
    return JobRecord(
        id=job_id,
        title=f"Associate {job_id}",
        location=location,
        job_type="FULL_TIME",
        pay_min=18.0,
        pay_max=20.0,
        shift_count=2,
    )


class FakeClient:
    def __init__(self, first: list[JobRecord]) -> None:
        self.first = first
        self.calls = 0
        self.closed = False

    async def fetch_jobs(self, shutdown: ShutdownToken) -> list[JobRecord]:
        self.calls += 1
        if self.calls == 1:
            return list(self.first)
        return []

    async def close(self) -> None:
        self.closed = True


class RecordingNotifier:
    def __init__(self) -> None:
        self.batches: list[NotificationBatch] = []
        self.closed = False

    async def send_batch(self, batch: NotificationBatch) -> None:
        self.batches.append(batch)

    async def close(self) -> None:
        self.closed = True


def _app_config(seen_file: Path) -> AppConfig:
    return AppConfig(
        jobs_api=JobsApiConfig(
            api_url="https://jobs.example.test/graphql",
            api_token="token",
            country="Canada",
            locale="en-US",
            page_size=10,
            timeout_seconds=5,
            user_agents=["UA"],
        ),
        telegram=TelegramConfig(bot_token="bot", chat_id="1"),
        persistence=_persistence(seen_file, interval=60),
        rate_limiting=RateLimitingConfig(
            requests_per_second=2,
            delay_between_requests_ms=10,
            retry_base_ms=1,
            retry_max_delay_ms=5,
            max_retries=2,
        ),
        notifications=NotificationConfig(queue_capacity=5),
        log_level="INFO",
    )


async def test_application_lifecycle() -> None:
    """Seen {J1}; API returns J1, J2@NY, J3@NY → one NY batch, file has all three."""
    logger.info("═══ Test 7: Application Lifecycle ═══")

    with tempfile.TemporaryDirectory() as tmp:
        seen_file = Path(tmp) / "seen_jobs.txt"
        seen_file.write_text("J1\n", encoding="utf-8")

        client = FakeClient([_job("J1", "LA"), _job("J2", "NY"), _job("J3", "NY")])
        notifier = RecordingNotifier()
        app = HiringNotifier(
            _app_config(seen_file), notifier=notifier, client=client, tick_seconds=0.05,
        )

        task = asyncio.create_task(app.start())
        await asyncio.sleep(0.4)
        app.shutdown.trigger("test")
        await asyncio.wait_for(task, timeout=5)

        check("API polled repeatedly", client.calls >= 2)
        check("Exactly one batch", len(notifier.batches) == 1)
        batch = notifier.batches[0]
        check("Batch for NY with J2, J3", batch.location == "NY" and [j.id for j in batch.jobs] == ["J2", "J3"])
        check("Seen file has all ids", load_seen_jobs(seen_file) == {"J1", "J2", "J3"})
        check("Final flush ran once", app.persistence.saves == 1)
        check("Client closed", client.closed)
        check("Notifier closed", notifier.closed)
        check("Queue closed", app.dispatcher.closed)


async def run_all_tests() -> None:
    """Run all persistence and lifecycle tests."""
    logger.info("╔══════════════════════════════════════════╗")
    logger.info("║  Hiring Notifier — Persistence Tests     ║")
    logger.info("╚══════════════════════════════════════════╝")

    for test in (
        test_flush,
        test_periodic_and_final_flush,
        test_prompt_shutdown,
        test_final_flush_waits,
        test_write_failure_not_fatal,
        test_flush_keeps_loop_responsive,
        test_application_lifecycle,
    ):
        try:
            await test()
        except AssertionError:
            pass

    logger.info("  Results: %d passed, %d failed", _passed, _failed)
    if _failed > 0:
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(run_all_tests())
