"""Health check endpoint."""

import platform
import sys

from fastapi import APIRouter, Depends

from notag.api.deps import get_dispatcher
from notag.jobs.dispatcher import JobDispatcher

router = APIRouter()


@router.get("/health")
async def health_check(dispatcher: JobDispatcher = Depends(get_dispatcher)):
    """Service health and job queue utilisation."""
    queue = dispatcher.snapshot()
    return {
        "status": "healthy" if queue["running"] else "degraded",
        "queue": queue,
        "python_version": sys.version,
        "platform": platform.platform(),
    }
