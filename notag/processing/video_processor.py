"""Simulated media operations used by the processing stages.

Nothing here touches a real network or codec: every operation waits for a
fixed (scalable) delay and returns the path the real tool would have written.
Only ``finalize`` puts bytes on disk, so the output endpoint has something to
stream.
"""

import asyncio
import logging
import os
import random
import time
from datetime import timedelta
from typing import Optional
from urllib.parse import quote

from notag.jobs.models import DownloadOptions, VideoMetadata, utcnow
from notag.storage.temp_results import TempResultStore
from notag.validation.platforms import detect_platform, hostname_of

logger = logging.getLogger(__name__)

PLATFORM_TITLES = {
    "tiktok": [
        "Amazing Dance Challenge",
        "Funny Pet Compilation",
        "Cooking Life Hack",
        "Viral Trend Video",
    ],
    "instagram": [
        "Beautiful Sunset Timelapse",
        "Workout Motivation",
        "Art Process Video",
        "Travel Adventure",
    ],
    "youtube": [
        "How to Code Tutorial",
        "Music Video Premiere",
        "Gaming Highlights",
        "Educational Content",
    ],
    "linkedin": [
        "Professional Development Tips",
        "Industry Insights",
        "Career Advice",
        "Business Strategy",
    ],
}

# Nominal durations (seconds) before delay_scale is applied
METADATA_DELAY = 0.8
WATERMARK_DELAY = 3.0
CONVERT_DELAY = 1.5
AUDIO_DELAY = 1.5


class ProcessingError(Exception):
    """A processing stage could not produce its output."""


def _replace_ext(path: str, suffix: str) -> str:
    return os.path.splitext(path)[0] + suffix


class VideoProcessor:
    def __init__(
        self,
        store: TempResultStore,
        delay_scale: float = 1.0,
        rng: Optional[random.Random] = None,
    ):
        self._store = store
        self._delay_scale = max(delay_scale, 0.0)
        self._rng = rng or random.Random()

    def scaled(self, seconds: float) -> float:
        return seconds * self._delay_scale

    async def pause(self, seconds: float) -> None:
        # Always yield to the loop, even with delays disabled
        await asyncio.sleep(self.scaled(seconds))

    async def extract_metadata(self, url: str) -> Optional[VideoMetadata]:
        """Resolve descriptive metadata for a URL, or None if it cannot be resolved."""
        await self.pause(METADATA_DELAY)

        if not hostname_of(url):
            logger.warning("cannot extract metadata, no host in %r", url)
            return None

        platform = detect_platform(url)
        key = platform.key if platform else "unknown"
        return self._mock_metadata(key)

    def _mock_metadata(self, platform_key: str) -> VideoMetadata:
        rng = self._rng
        title = rng.choice(PLATFORM_TITLES.get(platform_key, ["Video Content"]))
        duration = rng.randint(30, 629)  # 30 seconds to 10 minutes
        view_count = rng.randint(1000, 10_000_999)
        like_count = int(view_count * rng.uniform(0.02, 0.12))
        uploaded = utcnow() - timedelta(days=rng.uniform(0, 365))
        return VideoMetadata(
            title=title,
            description=(
                f"Sample {platform_key} video description with relevant "
                "content and hashtags."
            ),
            duration=duration,
            thumbnail=f"/placeholder.svg?height=120&width=160&query={quote(title)}",
            uploader=f"{platform_key.capitalize()} Creator",
            upload_date=uploaded.isoformat(),
            platform=platform_key,
            view_count=view_count,
            like_count=like_count,
        )

    async def download_video(self, job_id: str, url: str, options: DownloadOptions) -> str:
        """Path of the fetched source. Transfer time is reported by the caller."""
        filename = f"video_{int(time.time() * 1000)}.{options.format}"
        return self._store.get_output_path(job_id, filename)

    async def remove_watermark(self, path: str, platform: str) -> str:
        await self.pause(WATERMARK_DELAY)
        logger.debug("watermark removed (%s) %s", platform, path)
        return _replace_ext(path, ".nowatermark.mp4")

    async def process_video(self, path: str, options: DownloadOptions) -> str:
        await self.pause(CONVERT_DELAY)
        return _replace_ext(path, f".processed.{options.format}")

    async def extract_audio(self, path: str, output_format: str = "mp3") -> str:
        await self.pause(AUDIO_DELAY)
        return _replace_ext(path, f".{output_format}")

    def finalize(self, job_id: str, path: str, url: str, output_format: str) -> str:
        """Write the output artifact for a job and return its path."""
        content = f"Mock {output_format.upper()} file content for: {url}"
        return self._store.write_artifact(job_id, os.path.basename(path), content)
