"""Read-only views of job records for polling and listing."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from notag.jobs.models import (
    JobRecord,
    JobStatus,
    ProcessingProgress,
    VideoMetadata,
)


class ResultView(BaseModel):
    model_config = ConfigDict(frozen=True)

    download_url: str
    metadata: VideoMetadata


class JobStatusView(BaseModel):
    """Immutable point-in-time projection of a job.

    ``result`` is only populated for completed jobs and ``error`` only for
    failed ones, whatever the underlying record holds.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    status: JobStatus
    progress: ProcessingProgress
    created_at: datetime
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    result: Optional[ResultView] = None
    error: Optional[str] = None

    @classmethod
    def from_job(cls, job: JobRecord) -> "JobStatusView":
        # progress and result are frozen values, sharing them is safe
        result = None
        if job.status == JobStatus.COMPLETED and job.result is not None:
            result = ResultView(
                download_url=job.result.download_url,
                metadata=job.result.metadata,
            )
        return cls(
            id=job.id,
            status=job.status,
            progress=job.progress,
            created_at=job.created_at,
            started_at=job.started_at,
            completed_at=job.completed_at,
            result=result,
            error=job.error if job.status == JobStatus.FAILED else None,
        )


class JobSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    url: str
    status: JobStatus
    progress: ProcessingProgress
    created_at: datetime
    completed_at: Optional[datetime] = None

    @classmethod
    def from_job(cls, job: JobRecord) -> "JobSummary":
        return cls(
            id=job.id,
            url=job.request.url,
            status=job.status,
            progress=job.progress,
            created_at=job.created_at,
            completed_at=job.completed_at,
        )
