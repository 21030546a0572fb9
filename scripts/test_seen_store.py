"""Hiring Notifier — Seen-Jobs Store Tests.

Verifies the dedup gate and its file format:
  1. Loading a missing file
  2. Save/load round trip and line trimming
  3. insert_if_new under concurrent callers
  4. Snapshot isolation

Run: python scripts/test_seen_store.py   (or: pytest scripts/)
"""

from __future__ import annotations

import asyncio
import sys
import tempfile
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from hiring_notifier.storage.seen_store import (
    SeenJobStore,
    load_seen_jobs,
    save_seen_jobs,
)
from hiring_notifier.utils.logger import get_logger

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


async def test_load_missing_file() -> None:
    """A missing file yields an empty set, not an error."""
    logger.info("═══ Test 1: Missing File ═══")

    with tempfile.TemporaryDirectory() as tmp:
        seen = load_seen_jobs(Path(tmp) / "does-not-exist.txt")

    check("Empty set returned", seen == set())


async def test_round_trip() -> None:
    """save followed by load returns the same set."""
    logger.info("═══ Test 2: Round Trip ═══")

    ids = {"JOB-1", "JOB-2", "JOB-3", "JOB-äöü"}
    with tempfile.TemporaryDirectory() as tmp:
        path = Path(tmp) / "nested" / "dir" / "seen_jobs.txt"
        save_seen_jobs(path, ids)
        check("Parent directories created", path.exists())
        check("One id per line", len(path.read_text(encoding="utf-8").splitlines()) == 4)
        check("Loaded set equals saved set", load_seen_jobs(path) == ids)

        save_seen_jobs(path, {"ONLY"})
        check("Save overwrites the file", load_seen_jobs(path) == {"ONLY"})

        save_seen_jobs(path, set())
        check("Empty set round-trips", load_seen_jobs(path) == set())


async def test_load_trims_lines() -> None:
    """Whitespace is trimmed and blank lines dropped."""
    logger.info("═══ Test 3: Trimming ═══")

    with tempfile.TemporaryDirectory() as tmp:
        path = Path(tmp) / "seen.txt"
        path.write_text("  J1  \n\n\tJ2\n   \nJ1\n", encoding="utf-8")
        check("Trimmed, deduplicated ids", load_seen_jobs(path) == {"J1", "J2"})


async def test_insert_if_new() -> None:
    """insert_if_new returns True exactly once per id."""
    logger.info("═══ Test 4: insert_if_new ═══")

    store = SeenJobStore({"J1"})
    check("Preloaded id is not new", await store.insert_if_new("J1") is False)
    check("Unknown id is new", await store.insert_if_new("J2") is True)
    check("Second insert is not new", await store.insert_if_new("J2") is False)
    check("Size reflects inserts", len(store) == 2)
    check("Membership check", "J2" in store and "J3" not in store)


async def test_concurrent_inserts() -> None:
    """Concurrent callers never both claim the same id."""
    logger.info("═══ Test 5: Concurrent Inserts ═══")

    store = SeenJobStore()

    async def claim(job_id: str) -> bool:
        await asyncio.sleep(0)
        return await store.insert_if_new(job_id)

    results = await asyncio.gather(*(claim("SAME") for _ in range(50)))
    check("Exactly one caller wins", sum(results) == 1)

    ids = [f"J{i % 20}" for i in range(200)]
    results = await asyncio.gather(*(claim(job_id) for job_id in ids))
    check("One win per distinct id", sum(results) == 20)
    check("Store holds every id", len(store) == 21)


async def test_snapshot() -> None:
    """Snapshots are independent copies that include earlier inserts."""
    logger.info("═══ Test 6: Snapshot ═══")

    store = SeenJobStore(["A"])
    await store.insert_if_new("B")
    snap = await store.snapshot()
    check("Snapshot includes prior insert", snap == {"A", "B"})

    snap.add("C")
    check("Mutating snapshot leaves store alone", "C" not in store)

    await store.insert_if_new("D")
    check("Old snapshot unaffected by later insert", "D" not in snap)


async def run_all_tests() -> None:
    """Run all seen-store tests."""
    logger.info("╔══════════════════════════════════════════╗")
    logger.info("║  Hiring Notifier — Seen Store Tests      ║")
    logger.info("╚══════════════════════════════════════════╝")

    for test in (
        test_load_missing_file,
        test_round_trip,
        test_load_trims_lines,
        test_insert_if_new,
        test_concurrent_inserts,
        test_snapshot,
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
