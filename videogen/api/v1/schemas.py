"""Response bodies. Serialized with camelCase keys inside the envelope."""

from datetime import datetime
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from videogen.jobs.models import GenerationMode, Job, JobStatus
from videogen.limits.quota import QuotaUsage

T = TypeVar("T")


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Envelope(ApiModel, Generic[T]):
    success: bool = True
    data: T


class JobAccepted(ApiModel):
    job_id: str
    status: JobStatus = JobStatus.PENDING
    mode: GenerationMode
    message: str
    quota: QuotaUsage


class ResultView(ApiModel):
    video_uri: str
    signed_url: str
    expires_at: datetime


class JobStatusView(ApiModel):
    job_id: str
    status: JobStatus
    mode: GenerationMode
    created_at: datetime
    completed_at: Optional[datetime] = None
    result: Optional[ResultView] = None
    error: Optional[str] = None

    @classmethod
    def from_job(cls, job: Job) -> "JobStatusView":
        """Caller-facing view of a job; never includes the owner."""
        view = cls(
            job_id=job.job_id,
            status=job.status,
            mode=job.mode,
            created_at=job.created_at,
        )
        if job.status == JobStatus.COMPLETED and job.result:
            view.result = ResultView(**job.result.model_dump())
            view.completed_at = job.completed_at
        if job.status == JobStatus.FAILED:
            view.error = job.error
            view.completed_at = job.completed_at
        return view
