"""Per-lineage mutual exclusion within one conductor process.

Two snapshot or prune runs against the same lineage would race on the
retention re-query and could delete each other's snapshots. Locks are
non-blocking: a second caller fails fast instead of queueing behind a
multi-minute wait. Exclusion does not extend across processes.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator

from core.errors import ConductorLineageBusyError


class LineageLocks:
    """Registry of one lock per lineage name."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}

    @contextmanager
    def hold(self, lineage: str) -> Iterator[None]:
        """Hold the lineage lock for the duration of the block.

        Raises:
            ConductorLineageBusyError: If another caller holds the lock.
        """
        lock = self._lock_for(lineage)
        if not lock.acquire(blocking=False):
            raise ConductorLineageBusyError(
                f"Lineage '{lineage}' is already being snapshotted or pruned. Retry later."
            )
        try:
            yield
        finally:
            lock.release()

    def _lock_for(self, lineage: str) -> threading.Lock:
        with self._guard:
            return self._locks.setdefault(lineage, threading.Lock())
