"""Aggregate all v1 API routers."""

from fastapi import APIRouter
from notag.api.v1.health import router as health_router
from notag.api.v1.platforms import router as platforms_router
from notag.api.v1.downloads import router as downloads_router
from notag.api.v1.compat import router as compat_router

v1_router = APIRouter(prefix="/api/v1")
v1_router.include_router(health_router, tags=["health"])
v1_router.include_router(platforms_router, tags=["platforms"])
v1_router.include_router(downloads_router, tags=["downloads"])

# Compatibility shim: mounts /api/download, /api/download/status, /api/download/file
download_router_compat = APIRouter()
download_router_compat.include_router(compat_router, tags=["compat"])
