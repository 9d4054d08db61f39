"""Job record data model for async video generation."""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field, model_validator
import uuid


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class JobStatus(str, Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


class GenerationMode(str, Enum):
    TEXT_TO_VIDEO = "TEXT_TO_VIDEO"
    IMAGE_TO_VIDEO = "IMAGE_TO_VIDEO"
    VIDEO_TO_VIDEO = "VIDEO_TO_VIDEO"


class JobResult(BaseModel):
    video_uri: str
    signed_url: str
    expires_at: datetime


class Job(BaseModel):
    """Tracks the lifecycle of one generation request."""
    job_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    owner_id: str
    mode: GenerationMode
    status: JobStatus = JobStatus.PENDING
    created_at: datetime = Field(default_factory=utc_now)
    completed_at: Optional[datetime] = None
    result: Optional[JobResult] = None
    error: Optional[str] = None

    @model_validator(mode="after")
    def _check_outcome(self) -> "Job":
        if self.status == JobStatus.COMPLETED and (self.result is None or self.error is not None):
            raise ValueError("a completed job carries a result and no error")
        if self.status == JobStatus.FAILED and (self.error is None or self.result is not None):
            raise ValueError("a failed job carries an error and no result")
        if not self.status.is_terminal and (self.result is not None or self.error is not None):
            raise ValueError(f"a {self.status.value} job has no result or error yet")
        return self
