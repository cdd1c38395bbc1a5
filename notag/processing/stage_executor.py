"""Drives one admitted job through the download pipeline.

Stages and the percent each one reports:

    analyzing    10        metadata lookup, aborts the job if nothing comes back
    downloading  30 -> 57  ``download_steps`` equal sub-steps with an ETA
    processing   65        only when watermark removal was requested
    converting   80        format conversion or audio extraction
    finalizing   95, 100   artifact written, result attached
"""

import asyncio
import logging
from typing import Callable, Optional

from notag.jobs.models import (
    JobRecord,
    JobResult,
    ProcessingProgress,
    ProcessingStage,
)
from notag.processing.video_processor import ProcessingError, VideoProcessor

logger = logging.getLogger(__name__)

DOWNLOAD_START = 30.0
DOWNLOAD_END = 60.0

# Called with every snapshot right after it is stored on the job
ProgressCallback = Callable[[JobRecord, ProcessingProgress], None]


class StageExecutor:
    """Runs the stage sequence for a job and records its terminal state.

    The executor is the only writer of a job's progress, result, error and
    terminal status while it runs; the queue only moves jobs into processing.
    """

    def __init__(
        self,
        processor: VideoProcessor,
        download_steps: int = 10,
        download_step_seconds: float = 0.5,
        timeout_seconds: Optional[float] = None,
        progress_cb: Optional[ProgressCallback] = None,
    ):
        if download_steps < 1:
            raise ValueError("download_steps must be at least 1")
        self._processor = processor
        self._download_steps = download_steps
        self._download_step_seconds = download_step_seconds
        self._timeout = timeout_seconds
        self._progress_cb = progress_cb

    async def run(self, job: JobRecord) -> None:
        try:
            if self._timeout is None:
                await self._run_stages(job)
            elif not await self._run_with_timeout(job):
                return
        except ProcessingError as e:
            logger.warning("job %s failed: %s", job.id, e)
            job.mark_failed(str(e))
        except Exception as e:
            logger.exception("job %s failed in stage %s", job.id, job.progress.stage.value)
            job.mark_failed(str(e) or type(e).__name__)
        else:
            logger.info("job completed %s -> %s", job.id, job.result.file_path)

    async def _run_with_timeout(self, job: JobRecord) -> bool:
        """Run the stages under the time limit. False if the limit was hit.

        A TimeoutError raised by a stage itself propagates unchanged.
        """
        stages = asyncio.ensure_future(self._run_stages(job))
        try:
            done, _ = await asyncio.wait({stages}, timeout=self._timeout)
        except asyncio.CancelledError:
            stages.cancel()
            raise
        if stages in done:
            stages.result()
            return True

        stages.cancel()
        try:
            await stages
        except asyncio.CancelledError:
            pass
        if not job.is_terminal:
            logger.warning("job %s timed out after %gs", job.id, self._timeout)
            job.mark_failed(f"Job timed out after {self._timeout:g} seconds")
        return False

    def _report(
        self,
        job: JobRecord,
        stage: ProcessingStage,
        percent: float,
        message: str,
        eta: Optional[float] = None,
    ) -> None:
        progress = ProcessingProgress(
            stage=stage,
            percent=percent,
            message=message,
            estimated_time_remaining=eta,
        )
        job.update_progress(progress)
        logger.debug("job %s %s %.0f%% %s", job.id, stage.value, percent, message)
        if self._progress_cb is not None:
            self._progress_cb(job, progress)

    async def _run_stages(self, job: JobRecord) -> None:
        url = job.request.url
        options = job.request.options
        processor = self._processor

        self._report(
            job, ProcessingStage.ANALYZING, 10,
            "Analyzing video URL and extracting metadata...",
        )
        await processor.pause(1.0)
        metadata = await processor.extract_metadata(url)
        if metadata is None:
            raise ProcessingError("Failed to extract video metadata")

        self._report(job, ProcessingStage.DOWNLOADING, DOWNLOAD_START, "Downloading video content...")
        await self._download_progress(job, DOWNLOAD_START, DOWNLOAD_END)
        path = await processor.download_video(job.id, url, options)

        if options.remove_watermark:
            self._report(job, ProcessingStage.PROCESSING, 65, "Removing watermarks...")
            path = await processor.remove_watermark(path, metadata.platform)

        self._report(
            job, ProcessingStage.CONVERTING, 80,
            f"Converting to {options.format.upper()}...",
        )
        if options.audio_only:
            path = await processor.extract_audio(path, options.format)
        else:
            path = await processor.process_video(path, options)

        self._report(job, ProcessingStage.FINALIZING, 95, "Finalizing download...")
        await processor.pause(0.5)
        file_path = processor.finalize(job.id, path, url, options.format)

        self._report(job, ProcessingStage.FINALIZING, 100, "Download completed successfully!")
        job.mark_completed(
            JobResult(
                file_path=file_path,
                download_url=f"/api/v1/downloads/{job.id}/file",
                metadata=metadata,
            )
        )

    async def _download_progress(self, job: JobRecord, start: float, end: float) -> None:
        steps = self._download_steps
        increment = (end - start) / steps
        for i in range(steps):
            percent = start + increment * i
            remaining = steps - i
            self._report(
                job,
                ProcessingStage.DOWNLOADING,
                percent,
                f"Downloading... {percent:.0f}%",
                eta=self._processor.scaled(remaining * self._download_step_seconds),
            )
            await self._processor.pause(self._download_step_seconds)
