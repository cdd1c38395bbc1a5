"""Temporary storage for finished download artifacts with TTL cleanup."""

import logging
import os
import shutil
import time
from typing import Optional, Union

from notag.config import settings

logger = logging.getLogger(__name__)


class TempResultStore:
    """Manages per-job output files under a base directory."""

    def __init__(self, base_dir: Optional[str] = None, ttl_hours: int = 24):
        self._base_dir = base_dir or settings.downloads_dir
        os.makedirs(self._base_dir, exist_ok=True)
        self._ttl_seconds = ttl_hours * 3600

    @property
    def base_dir(self) -> str:
        return self._base_dir

    def get_job_dir(self, job_id: str) -> str:
        """Get or create directory for a job's output files."""
        job_dir = os.path.join(self._base_dir, job_id)
        os.makedirs(job_dir, exist_ok=True)
        return job_dir

    def get_output_path(self, job_id: str, filename: str) -> str:
        """Get full path for a specific output file."""
        # basename keeps callers from escaping the job directory
        return os.path.join(self.get_job_dir(job_id), os.path.basename(filename))

    def write_artifact(self, job_id: str, filename: str, content: Union[str, bytes]) -> str:
        path = self.get_output_path(job_id, filename)
        data = content.encode("utf-8") if isinstance(content, str) else content
        with open(path, "wb") as dst:
            dst.write(data)
        return path

    def file_exists(self, job_id: str, filename: str) -> bool:
        return os.path.isfile(
            os.path.join(self._base_dir, job_id, os.path.basename(filename))
        )

    def cleanup_expired(self) -> int:
        """Remove job directories older than TTL. Returns count of removed dirs."""
        now = time.time()
        removed = 0
        if not os.path.exists(self._base_dir):
            return 0
        for entry in os.listdir(self._base_dir):
            job_dir = os.path.join(self._base_dir, entry)
            if not os.path.isdir(job_dir):
                continue
            mtime = os.path.getmtime(job_dir)
            if now - mtime > self._ttl_seconds:
                shutil.rmtree(job_dir, ignore_errors=True)
                removed += 1
        if removed:
            logger.info("removed %d expired download dirs", removed)
        return removed
