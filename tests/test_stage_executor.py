"""Tests for notag.processing.stage_executor: stage order, progress, failures."""

import asyncio
import os
import random

import pytest

from notag.jobs.models import JobRecord, JobStatus, ProcessingStage
from notag.processing.stage_executor import StageExecutor
from notag.processing.video_processor import VideoProcessor

from conftest import TIKTOK_URL, YOUTUBE_URL


def _admitted(request) -> JobRecord:
    job = JobRecord(request=request)
    job.mark_processing()
    return job


def _stages(progress_log):
    return [progress.stage for _, progress in progress_log]


class NoMetadataProcessor(VideoProcessor):
    async def extract_metadata(self, url):
        return None


class BrokenConverterProcessor(VideoProcessor):
    async def process_video(self, path, options):
        raise RuntimeError("disk full")


class UnresponsiveCodecProcessor(VideoProcessor):
    async def process_video(self, path, options):
        raise TimeoutError("codec server did not answer")


class SlowWatermarkProcessor(VideoProcessor):
    async def remove_watermark(self, path, platform):
        await asyncio.sleep(5)
        return path


class TestSuccessfulRun:
    @pytest.mark.asyncio
    async def test_completes_with_result(self, executor, make_request, store):
        job = _admitted(make_request())
        await executor.run(job)

        assert job.status == JobStatus.COMPLETED
        assert job.error is None
        assert job.completed_at is not None
        assert job.progress.percent == 100
        assert job.progress.stage == ProcessingStage.FINALIZING
        assert job.progress.message == "Download completed successfully!"

        result = job.result
        assert result.download_url == f"/api/v1/downloads/{job.id}/file"
        assert result.metadata.platform == "youtube"
        assert result.file_path.endswith(".processed.mp4")
        assert os.path.isfile(result.file_path)
        with open(result.file_path) as fh:
            assert fh.read() == f"Mock MP4 file content for: {YOUTUBE_URL}"
        assert os.path.dirname(result.file_path) == os.path.join(store.base_dir, job.id)

    @pytest.mark.asyncio
    async def test_stage_order_without_watermark(self, executor, make_request, progress_log):
        job = _admitted(make_request())
        await executor.run(job)

        stages = _stages(progress_log)
        assert ProcessingStage.PROCESSING not in stages
        collapsed = [s for i, s in enumerate(stages) if i == 0 or stages[i - 1] != s]
        assert collapsed == [
            ProcessingStage.ANALYZING,
            ProcessingStage.DOWNLOADING,
            ProcessingStage.CONVERTING,
            ProcessingStage.FINALIZING,
        ]

    @pytest.mark.asyncio
    async def test_watermark_stage_when_requested(self, executor, make_request, progress_log):
        job = _admitted(make_request(TIKTOK_URL, remove_watermark=True))
        await executor.run(job)

        processing = [p for _, p in progress_log if p.stage == ProcessingStage.PROCESSING]
        assert len(processing) == 1
        assert processing[0].percent == 65
        assert processing[0].message == "Removing watermarks..."
        assert job.result.file_path.endswith(".nowatermark.processed.mp4")

    @pytest.mark.asyncio
    async def test_percent_never_decreases(self, executor, make_request, progress_log):
        job = _admitted(make_request(remove_watermark=True))
        await executor.run(job)

        percents = [p.percent for _, p in progress_log]
        assert percents[0] == 10
        assert percents[-1] == 100
        assert percents == sorted(percents)

    @pytest.mark.asyncio
    async def test_download_sub_steps(self, executor, make_request, progress_log):
        job = _admitted(make_request())
        await executor.run(job)

        downloading = [p for _, p in progress_log if p.stage == ProcessingStage.DOWNLOADING]
        # stage entry snapshot plus ten sub-steps
        assert len(downloading) == 11
        assert [p.percent for p in downloading[1:]] == pytest.approx(
            [30 + 3 * i for i in range(10)]
        )
        assert downloading[1].message == "Downloading... 30%"
        assert downloading[-1].message == "Downloading... 57%"

    @pytest.mark.asyncio
    async def test_download_eta_tracks_remaining_steps(self, store, make_request):
        log = []
        processor = VideoProcessor(store, delay_scale=0.001, rng=random.Random(1))
        executor = StageExecutor(
            processor,
            download_step_seconds=0.5,
            progress_cb=lambda job, p: log.append(p),
        )
        job = _admitted(make_request())
        await executor.run(job)

        etas = [
            p.estimated_time_remaining
            for p in log
            if p.stage == ProcessingStage.DOWNLOADING and p.estimated_time_remaining is not None
        ]
        assert len(etas) == 10
        expected = [(10 - i) * 0.5 * 0.001 for i in range(10)]
        assert etas == pytest.approx(expected)

    @pytest.mark.asyncio
    async def test_audio_only_output(self, executor, make_request, store):
        job = _admitted(make_request(format="mp3", audio_only=True))
        await executor.run(job)

        assert job.status == JobStatus.COMPLETED
        assert job.result.file_path.endswith(".mp3")
        with open(job.result.file_path) as fh:
            assert fh.read().startswith("Mock MP3 file content")

    @pytest.mark.asyncio
    async def test_converting_message_names_format(self, executor, make_request, progress_log):
        job = _admitted(make_request(format="webm"))
        await executor.run(job)

        converting = [p for _, p in progress_log if p.stage == ProcessingStage.CONVERTING]
        assert converting[0].percent == 80
        assert converting[0].message == "Converting to WEBM..."


class PauseRecordingProcessor(VideoProcessor):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.pauses = []

    async def pause(self, seconds):
        self.pauses.append(seconds)
        await super().pause(seconds)


class TestSimulatedDelays:
    @pytest.mark.asyncio
    async def test_nominal_stage_delays(self, store, make_request):
        processor = PauseRecordingProcessor(store, delay_scale=0)
        executor = StageExecutor(processor, download_steps=2, download_step_seconds=0.5)
        job = _admitted(make_request(TIKTOK_URL, remove_watermark=True))
        await executor.run(job)

        assert job.status == JobStatus.COMPLETED
        # analyzing, metadata, two download steps, watermark, convert, finalize
        assert processor.pauses == [1.0, 0.8, 0.5, 0.5, 3.0, 1.5, 0.5]


class TestFailures:
    @pytest.mark.asyncio
    async def test_missing_metadata_aborts(self, store, make_request):
        log = []
        executor = StageExecutor(
            NoMetadataProcessor(store, delay_scale=0),
            progress_cb=lambda job, p: log.append(p),
        )
        job = _admitted(make_request())
        await executor.run(job)

        assert job.status == JobStatus.FAILED
        assert job.error == "Failed to extract video metadata"
        assert job.result is None
        assert job.completed_at is not None
        assert [p.stage for p in log] == [ProcessingStage.ANALYZING]

    @pytest.mark.asyncio
    async def test_hostless_url_fails_metadata(self, executor, make_request):
        job = _admitted(make_request("not a url"))
        await executor.run(job)

        assert job.status == JobStatus.FAILED
        assert job.error == "Failed to extract video metadata"

    @pytest.mark.asyncio
    async def test_stage_exception_becomes_error(self, store, make_request):
        log = []
        executor = StageExecutor(
            BrokenConverterProcessor(store, delay_scale=0),
            progress_cb=lambda job, p: log.append(p),
        )
        job = _admitted(make_request())
        await executor.run(job)

        assert job.status == JobStatus.FAILED
        assert job.error == "disk full"
        assert job.result is None
        assert log[-1].stage == ProcessingStage.CONVERTING
        assert ProcessingStage.FINALIZING not in [p.stage for p in log]

    @pytest.mark.asyncio
    async def test_timeout_policy_fails_job(self, store, make_request):
        executor = StageExecutor(
            SlowWatermarkProcessor(store, delay_scale=0),
            timeout_seconds=0.05,
        )
        job = _admitted(make_request(remove_watermark=True))
        await executor.run(job)

        assert job.status == JobStatus.FAILED
        assert job.error == "Job timed out after 0.05 seconds"
        assert job.result is None
        assert job.progress.stage == ProcessingStage.PROCESSING

    @pytest.mark.asyncio
    async def test_stage_timeout_error_without_policy(self, store, make_request):
        executor = StageExecutor(UnresponsiveCodecProcessor(store, delay_scale=0))
        job = _admitted(make_request())
        await executor.run(job)

        assert job.status == JobStatus.FAILED
        assert job.error == "codec server did not answer"
        assert job.result is None

    @pytest.mark.asyncio
    async def test_stage_timeout_error_is_not_the_policy(self, store, make_request):
        executor = StageExecutor(
            UnresponsiveCodecProcessor(store, delay_scale=0),
            timeout_seconds=5,
        )
        job = _admitted(make_request())
        await executor.run(job)

        assert job.status == JobStatus.FAILED
        assert job.error == "codec server did not answer"
        assert job.progress.stage == ProcessingStage.CONVERTING

    @pytest.mark.asyncio
    async def test_timeout_not_hit_by_fast_job(self, store, make_request):
        executor = StageExecutor(VideoProcessor(store, delay_scale=0), timeout_seconds=5)
        job = _admitted(make_request())
        await executor.run(job)
        assert job.status == JobStatus.COMPLETED

    def test_rejects_zero_download_steps(self, processor):
        with pytest.raises(ValueError):
            StageExecutor(processor, download_steps=0)
