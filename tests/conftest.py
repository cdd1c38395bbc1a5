"""Shared fixtures: zero-delay processing stack rooted in a temp directory."""

import random
from typing import Callable, List, Tuple

import pytest

from notag.config import Settings
from notag.jobs.models import (
    DownloadOptions,
    DownloadRequest,
    JobRecord,
    JobResult,
    ProcessingProgress,
    VideoMetadata,
)
from notag.processing.stage_executor import StageExecutor
from notag.processing.video_processor import VideoProcessor
from notag.storage.temp_results import TempResultStore

YOUTUBE_URL = "https://www.youtube.com/watch?v=dQw4w9WgXcQ"
TIKTOK_URL = "https://www.tiktok.com/@someone/video/1234567890"


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    return Settings(
        downloads_dir=str(tmp_path / "downloads"),
        processing_delay_scale=0,
        max_concurrent_jobs=3,
        cors_origins=["*"],
    )


@pytest.fixture
def store(tmp_path) -> TempResultStore:
    return TempResultStore(str(tmp_path / "downloads"))


@pytest.fixture
def processor(store) -> VideoProcessor:
    return VideoProcessor(store, delay_scale=0, rng=random.Random(42))


@pytest.fixture
def progress_log() -> List[Tuple[str, ProcessingProgress]]:
    return []


@pytest.fixture
def executor(processor, progress_log) -> StageExecutor:
    return StageExecutor(
        processor,
        progress_cb=lambda job, progress: progress_log.append((job.id, progress)),
    )


@pytest.fixture
def make_request() -> Callable[..., DownloadRequest]:
    def _make(url: str = YOUTUBE_URL, **options) -> DownloadRequest:
        return DownloadRequest(url=url, options=DownloadOptions(**options))

    return _make


def sample_result(job: JobRecord) -> JobResult:
    return JobResult(
        file_path=f"/tmp/{job.id}/video.mp4",
        download_url=f"/api/v1/downloads/{job.id}/file",
        metadata=VideoMetadata(
            title="How to Code Tutorial",
            duration=120,
            thumbnail="/placeholder.svg",
            uploader="Youtube Creator",
            upload_date="2026-01-01T00:00:00+00:00",
            platform="youtube",
        ),
    )


@pytest.fixture
def finish_job() -> Callable[[JobRecord], None]:
    """Complete a processing job with a canned result."""
    def _finish(job: JobRecord) -> None:
        job.mark_completed(sample_result(job))

    return _finish
