"""Job record data model for async download processing."""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field
import uuid


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_job_id() -> str:
    return f"job_{uuid.uuid4().hex}"


class JobStatus(str, Enum):
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.FAILED})


class ProcessingStage(str, Enum):
    ANALYZING = "analyzing"
    DOWNLOADING = "downloading"
    PROCESSING = "processing"
    CONVERTING = "converting"
    FINALIZING = "finalizing"


class InvalidTransitionError(ValueError):
    """Raised when a job is moved along an edge its state machine does not have."""


class DownloadOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    quality: str = "best"
    format: str = "mp4"
    audio_only: bool = False
    remove_watermark: bool = False


class DownloadRequest(BaseModel):
    """Pre-validated work descriptor handed to the queue."""
    model_config = ConfigDict(frozen=True)

    url: str
    options: DownloadOptions = Field(default_factory=DownloadOptions)


class ProcessingProgress(BaseModel):
    """Point-in-time progress snapshot. Replaced wholesale, never patched."""
    model_config = ConfigDict(frozen=True)

    stage: ProcessingStage
    percent: float = Field(ge=0, le=100)
    message: str = ""
    estimated_time_remaining: Optional[float] = None


class VideoMetadata(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    description: Optional[str] = None
    duration: int
    thumbnail: str
    uploader: str
    upload_date: str
    platform: str
    view_count: Optional[int] = None
    like_count: Optional[int] = None


class JobResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    file_path: str
    download_url: str
    metadata: VideoMetadata


class JobRecord(BaseModel):
    """Tracks the lifecycle of one download job.

    queued -> processing -> completed | failed. Terminal states are final,
    and exactly one of ``result``/``error`` is set once terminal.
    """
    id: str = Field(default_factory=new_job_id)
    request: DownloadRequest
    status: JobStatus = JobStatus.QUEUED
    progress: ProcessingProgress = Field(
        default_factory=lambda: ProcessingProgress(
            stage=ProcessingStage.ANALYZING,
            percent=0,
            message="Job queued for processing",
        )
    )
    result: Optional[JobResult] = None
    error: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def mark_processing(self) -> None:
        if self.status != JobStatus.QUEUED:
            raise InvalidTransitionError(
                f"job {self.id} cannot start from {self.status.value}"
            )
        self.status = JobStatus.PROCESSING
        self.started_at = utcnow()

    def update_progress(self, progress: ProcessingProgress) -> None:
        if self.status != JobStatus.PROCESSING:
            raise InvalidTransitionError(
                f"job {self.id} is {self.status.value}, progress is frozen"
            )
        if progress.percent < self.progress.percent:
            raise ValueError(
                f"progress for job {self.id} cannot go back from "
                f"{self.progress.percent} to {progress.percent}"
            )
        self.progress = progress

    def mark_completed(self, result: JobResult) -> None:
        if self.status != JobStatus.PROCESSING:
            raise InvalidTransitionError(
                f"job {self.id} cannot complete from {self.status.value}"
            )
        self.result = result
        self.status = JobStatus.COMPLETED
        self.completed_at = utcnow()

    def mark_failed(self, error: str) -> None:
        if self.status != JobStatus.PROCESSING:
            raise InvalidTransitionError(
                f"job {self.id} cannot fail from {self.status.value}"
            )
        self.error = error or "Unknown error occurred"
        self.status = JobStatus.FAILED
        self.completed_at = utcnow()
