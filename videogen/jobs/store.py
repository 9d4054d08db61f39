"""In-memory job ledger.

Records are replaced wholesale on every transition (copy-on-write), so a
polling reader holding a Job always sees a consistent snapshot. Each job
has exactly one writer: the orchestrator task that owns it.
"""

import logging
import threading
from datetime import datetime, timedelta
from typing import Callable, Dict, Optional

from videogen.jobs.models import GenerationMode, Job, JobStatus, utc_now

logger = logging.getLogger(__name__)

_TRANSITIONS = {
    JobStatus.PENDING: {JobStatus.PROCESSING},
    JobStatus.PROCESSING: {JobStatus.COMPLETED, JobStatus.FAILED},
    JobStatus.COMPLETED: set(),
    JobStatus.FAILED: set(),
}


class JobNotFound(KeyError):
    pass


class InvalidTransition(ValueError):
    pass


class JobStore:
    def __init__(self, clock: Callable[[], datetime] = utc_now):
        self._jobs: Dict[str, Job] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def create(self, mode: GenerationMode, owner_id: str) -> str:
        """Insert a PENDING job and return its id."""
        job = Job(owner_id=owner_id, mode=mode, created_at=self._clock())
        with self._lock:
            self._jobs[job.job_id] = job
        return job.job_id

    def transition(self, job_id: str, **fields) -> Job:
        """Merge fields into a job. Status moves must follow the state machine."""
        with self._lock:
            current = self._jobs.get(job_id)
            if current is None:
                raise JobNotFound(job_id)

            new_status = fields.get("status")
            if new_status is not None and new_status != current.status:
                if JobStatus(new_status) not in _TRANSITIONS[current.status]:
                    raise InvalidTransition(
                        f"job {job_id}: {current.status.value} -> {JobStatus(new_status).value}"
                    )
            elif current.status.is_terminal:
                raise InvalidTransition(f"job {job_id} is already {current.status.value}")

            updated = Job.model_validate({**current.model_dump(), **fields})
            self._jobs[job_id] = updated
        return updated

    def get(self, job_id: str, owner_id: str) -> Optional[Job]:
        """Return the job only if owner_id owns it; otherwise behave as missing."""
        with self._lock:
            job = self._jobs.get(job_id)
        if job is None or job.owner_id != owner_id:
            return None
        return job

    def sweep(self, max_age: timedelta) -> int:
        """Delete jobs older than max_age, whatever their status."""
        cutoff = self._clock() - max_age
        with self._lock:
            expired = [job_id for job_id, job in self._jobs.items() if job.created_at < cutoff]
            in_flight = sum(1 for job_id in expired if not self._jobs[job_id].status.is_terminal)
            for job_id in expired:
                del self._jobs[job_id]
        if in_flight:
            logger.warning("Evicted %d job(s) that had not finished", in_flight)
        if expired:
            logger.info("Cleaned up old jobs count=%d", len(expired))
        return len(expired)

    def count_by_status(self) -> Dict[str, int]:
        with self._lock:
            jobs = list(self._jobs.values())
        counts = {status.value: 0 for status in JobStatus}
        for job in jobs:
            counts[job.status.value] += 1
        return counts

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)
