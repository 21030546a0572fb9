"""Hiring Notifier — Seen-Jobs Store.

The set of job ids that have already been notified, shared by every
fetch task. All access goes through one asyncio.Lock: the
check-and-insert is a single critical section, so two concurrent tasks
can never both claim the same new job.

On disk the set is a plain text file, one id per line, overwritten
wholesale on each save.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Iterable, Optional

from hiring_notifier.utils.logger import get_logger

logger = get_logger(__name__)


def load_seen_jobs(path: str | Path) -> set[str]:
    """Read newline-delimited job ids from `path`.

    Lines are trimmed and blank lines dropped. A missing or unreadable
    file is not an error: it yields an empty set and a warning.

    Args:
        path: The seen-jobs file.

    Returns:
        The set of ids found in the file.
    """
    path = Path(path)
    try:
        contents = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        logger.warning("No seen jobs file found at %s, starting fresh", path)
        return set()
    except OSError as e:
        logger.warning("Could not read seen jobs file %s (%s), starting fresh", path, e)
        return set()

    return {line.strip() for line in contents.splitlines() if line.strip()}


def save_seen_jobs(path: str | Path, seen_jobs: Iterable[str]) -> None:
    """Overwrite `path` with one id per line.

    The write is a plain overwrite, not temp-file-plus-rename: a kill
    mid-write can leave a truncated file.

    Args:
        path: The seen-jobs file.
        seen_jobs: Ids to write.

    Raises:
        OSError: If the file cannot be written.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("\n".join(seen_jobs), encoding="utf-8")


class SeenJobStore:
    """Lock-guarded set of already-notified job ids.

    Only `insert_if_new` and `snapshot` touch the set; callers never
    iterate it directly while other tasks may be inserting.
    """

    def __init__(self, initial: Optional[Iterable[str]] = None) -> None:
        self._seen: set[str] = set(initial or ())
        self._lock = asyncio.Lock()

    async def insert_if_new(self, job_id: str) -> bool:
        """Atomically add `job_id` unless it is already present.

        Args:
            job_id: External job key.

        Returns:
            True iff the id was absent before this call, meaning the
            caller owns notifying about it.
        """
        async with self._lock:
            if job_id in self._seen:
                return False
            self._seen.add(job_id)
            return True

    async def snapshot(self) -> set[str]:
        """A point-in-time copy of the set, safe to write to disk."""
        async with self._lock:
            return set(self._seen)

    def __len__(self) -> int:
        return len(self._seen)

    def __contains__(self, job_id: object) -> bool:
        return job_id in self._seen

    def __repr__(self) -> str:
        return f"SeenJobStore(size={len(self._seen)})"
