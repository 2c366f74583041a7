"""Periodic removal of expired entries from in-process storage."""

import asyncio
import logging
import time
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .entry import Entry

logger = logging.getLogger(__name__)

SWEEP_INTERVAL = 1.0

Storage = dict[str, dict[str, "Entry"]]


def sweep_storage(storage: Storage, now: float | None = None) -> int:
    """Remove expired entries from storage. Returns number of removed entries."""
    now = time.time() if now is None else now
    removed = 0
    for bucket in list(storage.values()):
        expired = [
            key
            for key, entry in bucket.items()
            if entry.expires_at is not None and entry.expires_at <= now
        ]
        for key in expired:
            del bucket[key]
        removed += len(expired)
    return removed


class ExpiryReaper:
    """Sweeps one storage mapping on a fixed tick.

    ``start`` must be called from a running event loop; the sweep runs on an
    asyncio task until ``stop`` cancels it.
    """

    def __init__(self, storage: Storage, interval: float = SWEEP_INTERVAL):
        self._storage = storage
        self.interval = interval
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None

    def sweep(self) -> int:
        removed = sweep_storage(self._storage)
        if removed:
            logger.debug(f"Reaped {removed} expired entries")
        return removed

    def start(self) -> bool:
        """Sweep now and then on every tick. Returns False if already running."""
        if self._task is not None:
            return False
        loop = asyncio.get_running_loop()
        self.sweep()
        self._task = loop.create_task(self._run())
        return True

    def stop(self) -> bool:
        """Cancel the tick. Returns False if not running."""
        if self._task is None:
            return False
        self._task.cancel()
        self._task = None
        return True

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            self.sweep()
