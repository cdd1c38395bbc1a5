"""Platforms API: what the downloader accepts."""

from typing import Any, Dict

from fastapi import APIRouter

from notag.validation.platforms import PLATFORMS, example_urls

router = APIRouter()

SERVICE_NAME = "NoTag Downloader API"
SERVICE_VERSION = "1.0.0"


def service_info() -> Dict[str, Any]:
    return {
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "supported_platforms": [
            {
                "key": p.key,
                "name": p.name,
                "domains": list(p.domains),
                "examples": example_urls(p.key),
                "features": {
                    "watermark_removal": p.has_watermark,
                    "audio_extraction": p.audio_extraction,
                    "supported_qualities": list(p.supported_qualities),
                    "supported_formats": list(p.supported_formats),
                },
            }
            for p in PLATFORMS.values()
        ],
        "endpoints": {
            "download": "POST /api/v1/downloads",
            "status": "GET /api/v1/downloads/{job_id}",
            "list": "GET /api/v1/downloads",
            "file": "GET /api/v1/downloads/{job_id}/file",
        },
    }


@router.get("/platforms")
async def list_platforms():
    """Supported platforms, their features and the download endpoints."""
    return service_info()
