"""Supported platforms and URL validation.

Runs at the submission boundary, before anything reaches the job queue.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Pattern, Sequence, Tuple
from urllib.parse import urlparse


@dataclass(frozen=True)
class PlatformConfig:
    """Static description of one supported platform."""
    key: str
    name: str
    domains: Tuple[str, ...]
    supported_qualities: Tuple[str, ...]
    supported_formats: Tuple[str, ...]
    has_watermark: bool
    audio_extraction: bool
    patterns: Tuple[Pattern[str], ...] = field(repr=False)
    examples: Tuple[str, ...] = ()
    hint: str = ""


@dataclass
class ValidationResult:
    is_valid: bool
    platform: Optional[PlatformConfig] = None
    error: Optional[str] = None
    suggestions: List[str] = field(default_factory=list)


PLATFORMS: Dict[str, PlatformConfig] = {
    "tiktok": PlatformConfig(
        key="tiktok",
        name="TikTok",
        domains=("tiktok.com", "vm.tiktok.com"),
        supported_qualities=("720p", "480p"),
        supported_formats=("mp4", "webm"),
        has_watermark=True,
        audio_extraction=True,
        patterns=(
            re.compile(r"^https?://(www\.)?tiktok\.com/@[\w.-]+/video/\d+"),
            re.compile(r"^https?://vm\.tiktok\.com/\w+"),
            re.compile(r"^https?://m\.tiktok\.com/v/\d+"),
        ),
        examples=(
            "https://www.tiktok.com/@username/video/1234567890",
            "https://vm.tiktok.com/ZMxxxxxxxx/",
        ),
        hint="For TikTok: Use direct video links like https://www.tiktok.com/@user/video/123",
    ),
    "instagram": PlatformConfig(
        key="instagram",
        name="Instagram",
        domains=("instagram.com",),
        supported_qualities=("1080p", "720p", "480p"),
        supported_formats=("mp4", "webm"),
        has_watermark=False,
        audio_extraction=True,
        patterns=(
            re.compile(r"^https?://(www\.)?instagram\.com/p/[\w-]+"),
            re.compile(r"^https?://(www\.)?instagram\.com/reel/[\w-]+"),
            re.compile(r"^https?://(www\.)?instagram\.com/tv/[\w-]+"),
            re.compile(r"^https?://(www\.)?instagram\.com/stories/[\w.-]+/\d+"),
        ),
        examples=(
            "https://www.instagram.com/p/ABC123/",
            "https://www.instagram.com/reel/XYZ789/",
        ),
        hint="For Instagram: Use post, reel, or IGTV links like https://www.instagram.com/p/ABC123/",
    ),
    "youtube": PlatformConfig(
        key="youtube",
        name="YouTube",
        domains=("youtube.com", "youtu.be", "m.youtube.com"),
        supported_qualities=("2160p", "1440p", "1080p", "720p", "480p", "360p"),
        supported_formats=("mp4", "webm", "avi", "mkv"),
        has_watermark=False,
        audio_extraction=True,
        patterns=(
            re.compile(r"^https?://(www\.)?youtube\.com/watch\?v=[\w-]+"),
            re.compile(r"^https?://youtu\.be/[\w-]+"),
            re.compile(r"^https?://(www\.)?youtube\.com/shorts/[\w-]+"),
            re.compile(r"^https?://m\.youtube\.com/watch\?v=[\w-]+"),
        ),
        examples=(
            "https://www.youtube.com/watch?v=dQw4w9WgXcQ",
            "https://youtu.be/dQw4w9WgXcQ",
        ),
        hint="For YouTube: Use video links like https://www.youtube.com/watch?v=VIDEO_ID",
    ),
    "linkedin": PlatformConfig(
        key="linkedin",
        name="LinkedIn",
        domains=("linkedin.com",),
        supported_qualities=("1080p", "720p"),
        supported_formats=("mp4",),
        has_watermark=False,
        audio_extraction=False,
        patterns=(
            re.compile(r"^https?://(www\.)?linkedin\.com/posts/[\w-]+_activity-\d+"),
            re.compile(r"^https?://(www\.)?linkedin\.com/videos/[\w-]+/[\w-]+"),
            re.compile(r"^https?://(www\.)?linkedin\.com/feed/update/urn:li:activity:\d+"),
        ),
        examples=(
            "https://www.linkedin.com/posts/username_activity-123456789/",
            "https://www.linkedin.com/videos/username/video-id/",
        ),
        hint="For LinkedIn: Use post or video links from your feed",
    ),
}

QUALITY_HEIGHTS = {
    "2160p": 2160,
    "1440p": 1440,
    "1080p": 1080,
    "720p": 720,
    "480p": 480,
    "360p": 360,
}

# Named presets accepted in place of an explicit resolution
QUALITY_PRESETS = {"high": "1080p", "medium": "720p", "low": "480p"}


def hostname_of(url: str) -> Optional[str]:
    try:
        host = urlparse(url).hostname
    except ValueError:
        return None
    return host.lower() if host else None


def detect_platform(url: str) -> Optional[PlatformConfig]:
    """Match the URL's host against the platform domain table."""
    host = hostname_of(url)
    if not host:
        return None
    for platform in PLATFORMS.values():
        if any(domain in host for domain in platform.domains):
            return platform
    return None


def validate_url(url: Optional[str]) -> ValidationResult:
    """Check that a URL is a direct link to a video on a supported platform."""
    if not url or not isinstance(url, str):
        return ValidationResult(
            is_valid=False,
            error="URL is required",
            suggestions=["Please enter a valid video URL"],
        )

    host = hostname_of(url)
    if not host or urlparse(url).scheme not in ("http", "https"):
        return ValidationResult(
            is_valid=False,
            error="Invalid URL format",
            suggestions=[
                "Make sure the URL starts with http:// or https://",
                "Check for typos in the URL",
            ],
        )

    for platform in PLATFORMS.values():
        if any(pattern.match(url) for pattern in platform.patterns):
            return ValidationResult(is_valid=True, platform=platform)

    platform = detect_platform(url)
    if platform is not None:
        suggestions = [platform.hint]
    else:
        suggestions = [
            "Currently supported: TikTok, Instagram, YouTube, and LinkedIn",
            "Make sure you're using a direct link to the video content",
        ]
    return ValidationResult(
        is_valid=False,
        error=f"Platform not supported or invalid URL format for {host}",
        suggestions=suggestions,
    )


def check_audio_support(platform: PlatformConfig) -> Optional[str]:
    """Error message when the platform cannot extract audio, else None."""
    if platform.audio_extraction:
        return None
    return f"Audio extraction is not supported for {platform.name} videos."


def supported_formats(platform_key: str) -> List[str]:
    platform = PLATFORMS.get(platform_key)
    return list(platform.supported_formats) if platform else ["mp4"]


def supported_qualities(platform_key: str) -> List[str]:
    platform = PLATFORMS.get(platform_key)
    return list(platform.supported_qualities) if platform else ["720p"]


def resolve_quality(preference: str, available: Sequence[str]) -> str:
    """Pick the available quality closest to the requested one.

    ``preference`` is either a preset (best/high/medium/low) or an explicit
    resolution such as ``"720p"``. Unknown values fall back to 1080p.
    """
    if not available:
        raise ValueError("no qualities available")
    if preference == "best":
        return available[0]
    target = QUALITY_PRESETS.get(preference, preference)
    target_height = QUALITY_HEIGHTS.get(target, 1080)
    return min(
        available,
        key=lambda q: abs(QUALITY_HEIGHTS.get(q, 0) - target_height),
    )


def example_urls(platform_key: Optional[str] = None) -> List[str]:
    if platform_key:
        platform = PLATFORMS.get(platform_key.lower())
        return list(platform.examples) if platform else []
    return [example for p in PLATFORMS.values() for example in p.examples]
