"""Download job API: submit jobs, poll status, fetch the finished file."""

import logging
import os
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import FileResponse
from pydantic import BaseModel, Field

from notag.api.deps import get_dispatcher, get_result_store
from notag.jobs.dispatcher import JobDispatcher
from notag.jobs.models import DownloadOptions, DownloadRequest, JobRecord, JobStatus
from notag.jobs.status import JobStatusView, JobSummary
from notag.storage.temp_results import TempResultStore
from notag.validation.platforms import (
    check_audio_support,
    resolve_quality,
    supported_formats,
    supported_qualities,
    validate_url,
)

logger = logging.getLogger(__name__)

router = APIRouter()


class DownloadSettings(BaseModel):
    quality: str = "best"
    format: str = "mp4"
    remove_watermark: bool = False
    extract_audio: bool = False


class DownloadSubmitRequest(BaseModel):
    url: str = ""
    settings: DownloadSettings = Field(default_factory=DownloadSettings)


class DownloadSubmitResponse(BaseModel):
    success: bool
    message: str
    job_id: str
    status_url: str


def _reject(message: str, suggestions: Optional[List[str]] = None) -> HTTPException:
    return HTTPException(
        status_code=400,
        detail={"message": message, "suggestions": suggestions or []},
    )


def build_request(body: DownloadSubmitRequest) -> DownloadRequest:
    """Validate a submission and turn it into a queue request.

    Raises HTTPException(400) for anything the queue must never see. The
    detail carries the message and suggestions for fixing the request.
    """
    validation = validate_url(body.url)
    if not validation.is_valid:
        logger.info("rejected %s: %s", body.url, validation.error)
        raise _reject(validation.error, validation.suggestions)
    platform = validation.platform

    opts = body.settings
    if opts.extract_audio:
        error = check_audio_support(platform)
        if error:
            raise _reject(error)
    else:
        formats = supported_formats(platform.key)
        if opts.format not in formats:
            raise _reject(
                f"Format '{opts.format}' is not supported for {platform.name}.",
                [f"Supported formats: {', '.join(formats)}"],
            )

    return DownloadRequest(
        url=body.url,
        options=DownloadOptions(
            quality=resolve_quality(opts.quality, supported_qualities(platform.key)),
            format="mp3" if opts.extract_audio else opts.format,
            audio_only=opts.extract_audio,
            remove_watermark=opts.remove_watermark,
        ),
    )


def artifact_response(job: JobRecord, store: TempResultStore) -> FileResponse:
    """Stream a completed job's output file as an attachment."""
    if job.status != JobStatus.COMPLETED or job.result is None:
        raise HTTPException(status_code=404, detail="Results not available yet")

    filename = os.path.basename(job.result.file_path)
    if not store.file_exists(job.id, filename):
        raise HTTPException(status_code=404, detail="Output file not found")

    fmt = job.request.options.format
    media_type = "audio/mpeg" if fmt == "mp3" else f"video/{fmt}"
    return FileResponse(
        store.get_output_path(job.id, filename),
        media_type=media_type,
        filename=f"video.{fmt}",
    )


@router.post("/downloads", response_model=DownloadSubmitResponse)
async def submit_download(
    body: DownloadSubmitRequest,
    dispatcher: JobDispatcher = Depends(get_dispatcher),
):
    """Validate a video URL and queue it for processing."""
    request = build_request(body)
    job_id = await dispatcher.submit(request)
    return DownloadSubmitResponse(
        success=True,
        message="Video added to processing queue",
        job_id=job_id,
        status_url=f"/api/v1/downloads/{job_id}",
    )


@router.get("/downloads")
async def list_downloads(dispatcher: JobDispatcher = Depends(get_dispatcher)) -> Dict[str, Any]:
    jobs: List[JobRecord] = await dispatcher.list_jobs()
    return {
        "jobs": [JobSummary.from_job(job) for job in jobs],
        "count": len(jobs),
    }


@router.get("/downloads/{job_id}", response_model=JobStatusView)
async def get_download_status(
    job_id: str,
    dispatcher: JobDispatcher = Depends(get_dispatcher),
):
    job = await dispatcher.get_status(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found")
    return JobStatusView.from_job(job)


@router.get("/downloads/{job_id}/file")
async def get_download_file(
    job_id: str,
    dispatcher: JobDispatcher = Depends(get_dispatcher),
    store: TempResultStore = Depends(get_result_store),
):
    job = await dispatcher.get_status(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found")
    return artifact_response(job, store)
