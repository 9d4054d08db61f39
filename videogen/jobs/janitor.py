"""Periodic cleanup of expired jobs, stale quota records and local files."""

import asyncio
import logging
from datetime import timedelta
from typing import Dict, Optional

from videogen.jobs.store import JobStore
from videogen.limits.quota import QuotaLedger
from videogen.storage.base import ObjectStorage

logger = logging.getLogger(__name__)


class Janitor:
    """Sweeps the in-memory ledgers on a fixed interval.

    Note: jobs still PROCESSING when they pass the retention window are
    evicted too. Their task finds the record gone and drops its result.
    """

    def __init__(
        self,
        jobs: JobStore,
        quota: QuotaLedger,
        storage: Optional[ObjectStorage] = None,
        retention: timedelta = timedelta(hours=24),
        interval_seconds: float = 3600,
    ):
        self._jobs = jobs
        self._quota = quota
        self._storage = storage
        self._retention = retention
        self._interval = interval_seconds
        self._task: Optional[asyncio.Task] = None
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def sweep(self) -> Dict[str, int]:
        removed = {
            "jobs": self._jobs.sweep(self._retention),
            "quota": self._quota.sweep(),
            "files": self._storage.cleanup_expired(self._retention) if self._storage else 0,
        }
        logger.info(
            "Cleanup sweep removed jobs=%d quota=%d files=%d",
            removed["jobs"], removed["quota"], removed["files"],
        )
        return removed

    async def start(self) -> None:
        self._running = True
        self._task = asyncio.create_task(self._loop(), name="janitor")

    async def stop(self) -> None:
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    async def _loop(self) -> None:
        loop = asyncio.get_running_loop()
        while self._running:
            await asyncio.sleep(self._interval)
            try:
                await loop.run_in_executor(None, self.sweep)
            except Exception:
                logger.exception("Cleanup sweep failed")
