"""In-process job queue using asyncio.

A fixed pool of worker tasks pulls job ids from a FIFO queue, so at most
``max_concurrent_jobs`` jobs are processing at once and jobs are admitted in
submission order. No external dependencies (Redis, Celery) needed.
"""

import asyncio
import logging
from collections import Counter
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

from notag.jobs.dispatcher import JobDispatcher
from notag.jobs.models import DownloadRequest, JobRecord, JobStatus

logger = logging.getLogger(__name__)

WorkerFn = Callable[[JobRecord], Awaitable[None]]


class InProcessQueue(JobDispatcher):
    """Local async job queue with bounded concurrency."""

    def __init__(self, worker_fn: WorkerFn, max_concurrent_jobs: int = 3):
        """
        worker_fn: async callable(job: JobRecord) -> None
            Drives an admitted job to a terminal state (see StageExecutor.run).
        """
        if max_concurrent_jobs < 1:
            raise ValueError("max_concurrent_jobs must be at least 1")
        self._queue: asyncio.Queue[str] = asyncio.Queue()
        self._jobs: Dict[str, JobRecord] = {}
        self._active: Set[str] = set()
        self._worker_fn = worker_fn
        self._max_concurrent = max_concurrent_jobs
        self._workers: List[asyncio.Task] = []
        self._running = False

    @property
    def max_concurrent_jobs(self) -> int:
        return self._max_concurrent

    @property
    def running(self) -> bool:
        return self._running

    async def submit(self, request: DownloadRequest) -> str:
        job = JobRecord(request=request)
        self._jobs[job.id] = job
        self._queue.put_nowait(job.id)
        logger.info("job queued %s (%s)", job.id, request.url)
        return job.id

    async def get_status(self, job_id: str) -> Optional[JobRecord]:
        return self._jobs.get(job_id)

    async def list_jobs(self) -> List[JobRecord]:
        # dict preserves insertion order, which is creation order
        return list(reversed(self._jobs.values()))

    def snapshot(self) -> Dict[str, Any]:
        counts = Counter(job.status for job in self._jobs.values())
        return {
            "running": self._running,
            "queue_depth": self._queue.qsize(),
            "workers": {
                "total": self._max_concurrent,
                "active": len(self._active),
                "idle": max(self._max_concurrent - len(self._active), 0),
            },
            "jobs": {status.value: counts.get(status, 0) for status in JobStatus},
        }

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._workers = [
            asyncio.create_task(self._worker_loop(worker_id))
            for worker_id in range(self._max_concurrent)
        ]
        logger.info("job queue started with %d workers", self._max_concurrent)

    async def stop(self) -> None:
        self._running = False
        for task in self._workers:
            task.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []
        logger.info("job queue stopped")

    async def drain(self) -> None:
        """Wait until every submitted job has been taken off the queue and run."""
        await self._queue.join()

    async def _worker_loop(self, worker_id: int) -> None:
        logger.debug("worker %d ready", worker_id)
        while True:
            job_id = await self._queue.get()
            try:
                await self._dispatch(job_id)
            finally:
                self._queue.task_done()

    async def _dispatch(self, job_id: str) -> None:
        job = self._jobs.get(job_id)
        if job is None or job.status != JobStatus.QUEUED:
            return

        job.mark_processing()
        self._active.add(job_id)
        logger.info(
            "job admitted %s (%d/%d active)",
            job_id, len(self._active), self._max_concurrent,
        )
        try:
            await self._worker_fn(job)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            # A crash in one job must not take the worker down with it
            logger.exception("job %s crashed outside its stages", job_id)
            if not job.is_terminal:
                job.mark_failed(f"{type(e).__name__}: {e}")
        finally:
            self._active.discard(job_id)
