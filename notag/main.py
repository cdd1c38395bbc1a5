"""NoTag Downloader Backend - FastAPI application."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from notag.config import Settings, settings as default_settings
from notag.api.v1.router import v1_router, download_router_compat
from notag.api.v1.health import router as health_root_router
from notag.jobs.in_process_queue import InProcessQueue
from notag.processing.stage_executor import StageExecutor
from notag.processing.video_processor import VideoProcessor
from notag.storage.temp_results import TempResultStore

logger = logging.getLogger("notag")


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def build_dispatcher(cfg: Settings, store: TempResultStore) -> InProcessQueue:
    """Wire the processor, stage executor and queue for one process."""
    processor = VideoProcessor(store, delay_scale=cfg.processing_delay_scale)
    executor = StageExecutor(
        processor,
        download_steps=cfg.download_steps,
        download_step_seconds=cfg.download_step_seconds,
        timeout_seconds=cfg.job_timeout_seconds,
    )
    return InProcessQueue(worker_fn=executor.run, max_concurrent_jobs=cfg.max_concurrent_jobs)


def create_app(cfg: Optional[Settings] = None) -> FastAPI:
    cfg = cfg or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup and shutdown logic."""
        logger.info("Starting NoTag Downloader on %s:%d", cfg.host, cfg.port)
        logger.info("Downloads dir: %s", cfg.downloads_dir)

        store = TempResultStore(cfg.downloads_dir, ttl_hours=cfg.result_ttl_hours)
        dispatcher = build_dispatcher(cfg, store)
        await dispatcher.start()

        # One dispatcher per process, handed to routes through app.state
        app.state.result_store = store
        app.state.dispatcher = dispatcher

        yield

        logger.info("Shutting down NoTag Downloader")
        await dispatcher.stop()
        app.state.dispatcher = None
        store.cleanup_expired()

    app = FastAPI(
        title="NoTag Downloader",
        description="Queue-backed video download and watermark removal service",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = cfg

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Mount routers
    app.include_router(health_root_router, tags=["health"])  # GET /health at root
    app.include_router(v1_router)  # All /api/v1/* endpoints
    app.include_router(download_router_compat)  # /api/download* compat layer
    return app


configure_logging(default_settings.log_level)
app = create_app()


def run() -> None:
    import uvicorn

    uvicorn.run(
        "notag.main:app",
        host=default_settings.host,
        port=default_settings.port,
        log_level=default_settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
