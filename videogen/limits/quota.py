"""Per-identity daily generation quota.

Counts are kept per UTC calendar day. A record whose day is not today
counts as zero; stale records are only removed by sweep().
"""

import logging
import threading
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Callable, Dict

from pydantic import BaseModel

from videogen.errors import QuotaExceeded

logger = logging.getLogger(__name__)


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


class QuotaUsage(BaseModel):
    used: int
    limit: int
    remaining: int


@dataclass
class QuotaRecord:
    owner_id: str
    day: date
    count: int = 0


class QuotaLedger:
    """In-memory quota store. consume() is an atomic check-and-increment."""

    def __init__(self, daily_limit: int, today: Callable[[], date] = utc_today):
        self._limit = daily_limit
        self._today = today
        self._records: Dict[str, QuotaRecord] = {}
        self._lock = threading.Lock()

    @property
    def limit(self) -> int:
        return self._limit

    def _used(self, owner_id: str, today: date) -> int:
        record = self._records.get(owner_id)
        if record is None or record.day != today:
            return 0
        return record.count

    def _snapshot(self, used: int) -> QuotaUsage:
        return QuotaUsage(used=used, limit=self._limit, remaining=max(0, self._limit - used))

    def usage(self, owner_id: str) -> QuotaUsage:
        with self._lock:
            used = self._used(owner_id, self._today())
        return self._snapshot(used)

    def consume(self, owner_id: str) -> QuotaUsage:
        """Take one unit of today's quota, or raise QuotaExceeded."""
        with self._lock:
            today = self._today()
            used = self._used(owner_id, today)
            if used >= self._limit:
                logger.warning("Quota exceeded uid=%s used=%d limit=%d", owner_id, used, self._limit)
                raise QuotaExceeded(owner_id, self._limit)
            self._records[owner_id] = QuotaRecord(owner_id=owner_id, day=today, count=used + 1)
            used += 1

        logger.info("Quota consumed uid=%s used=%d limit=%d", owner_id, used, self._limit)
        return self._snapshot(used)

    def reset(self, owner_id: str) -> None:
        with self._lock:
            self._records.pop(owner_id, None)
        logger.info("Quota reset uid=%s", owner_id)

    def sweep(self) -> int:
        """Drop records from previous days. Returns the number removed."""
        with self._lock:
            today = self._today()
            stale = [uid for uid, record in self._records.items() if record.day != today]
            for uid in stale:
                del self._records[uid]
        if stale:
            logger.info("Cleaned up old quota entries count=%d", len(stale))
        return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
