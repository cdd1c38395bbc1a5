"""Browser-facing compatibility API.

Serves the paths the web frontend already uses:
  GET  /api/download                         service info
  POST /api/download                         validate a URL, start a job
  GET  /api/download/status?id=...           poll one job
  POST /api/download/status?action=list      list all jobs
  GET  /api/download/file?id=...&format=...  stream the finished file

This is a thin layer over the /api/v1/downloads endpoints. File ids are the
job id encoded as unpadded base64url.
"""

import base64
import binascii
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from notag.api.deps import get_dispatcher, get_result_store
from notag.api.v1.downloads import (
    DownloadSubmitRequest,
    DownloadSubmitResponse,
    artifact_response,
    build_request,
)
from notag.api.v1.platforms import service_info
from notag.jobs.dispatcher import JobDispatcher
from notag.jobs.status import JobStatusView, JobSummary
from notag.storage.temp_results import TempResultStore

router = APIRouter(prefix="/api/download")


def encode_file_id(job_id: str) -> str:
    return base64.urlsafe_b64encode(job_id.encode()).decode().rstrip("=")


def decode_file_id(file_id: str) -> str:
    padded = file_id + "=" * (-len(file_id) % 4)
    try:
        return base64.urlsafe_b64decode(padded.encode()).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError, ValueError):
        raise HTTPException(status_code=400, detail="Invalid download ID")


@router.get("")
async def get_service_info():
    return service_info()


@router.post("", response_model=DownloadSubmitResponse)
async def submit_download(
    body: DownloadSubmitRequest,
    dispatcher: JobDispatcher = Depends(get_dispatcher),
):
    request = build_request(body)
    job_id = await dispatcher.submit(request)
    return DownloadSubmitResponse(
        success=True,
        message="Video added to processing queue",
        job_id=job_id,
        status_url=f"/api/download/status?id={job_id}",
    )


@router.get("/status")
async def get_status(
    id: Optional[str] = None,
    dispatcher: JobDispatcher = Depends(get_dispatcher),
):
    if not id:
        raise HTTPException(status_code=400, detail="Job ID is required")

    job = await dispatcher.get_status(id)
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found")

    view = JobStatusView.from_job(job).model_dump(mode="json")
    if view["result"] is not None:
        # the frontend fetches files through this router
        view["result"]["download_url"] = (
            f"/api/download/file?id={encode_file_id(job.id)}"
            f"&format={job.request.options.format}"
        )
    return view


@router.post("/status")
async def list_status(
    action: Optional[str] = None,
    dispatcher: JobDispatcher = Depends(get_dispatcher),
):
    if action != "list":
        raise HTTPException(status_code=400, detail="Invalid action")
    jobs = await dispatcher.list_jobs()
    return {"jobs": [JobSummary.from_job(job) for job in jobs]}


@router.get("/file")
async def download_file(
    id: Optional[str] = None,
    format: Optional[str] = None,
    dispatcher: JobDispatcher = Depends(get_dispatcher),
    store: TempResultStore = Depends(get_result_store),
):
    if not id:
        raise HTTPException(status_code=400, detail="Download ID is required")

    job = await dispatcher.get_status(decode_file_id(id))
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found")
    if format and format != job.request.options.format:
        raise HTTPException(
            status_code=400,
            detail=f"Job output is {job.request.options.format}, not {format}",
        )
    return artifact_response(job, store)
