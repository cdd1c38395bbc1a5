"""Job dispatcher interface."""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from notag.jobs.models import DownloadRequest, JobRecord


class JobDispatcher(ABC):
    """Abstract interface for job dispatching."""

    @abstractmethod
    async def submit(self, request: DownloadRequest) -> str:
        """Register a new job for the request. Returns job_id without waiting."""
        ...

    @abstractmethod
    async def get_status(self, job_id: str) -> Optional[JobRecord]:
        """Get current state of a job, or None if the id is unknown."""
        ...

    @abstractmethod
    async def list_jobs(self) -> List[JobRecord]:
        """All known jobs, most recently created first."""
        ...

    @abstractmethod
    def snapshot(self) -> Dict[str, Any]:
        """Queue depth and worker utilisation."""
        ...

    @abstractmethod
    async def start(self) -> None:
        """Start the dispatcher (e.g., start worker loop)."""
        ...

    @abstractmethod
    async def stop(self) -> None:
        """Stop the dispatcher gracefully."""
        ...
