"""Application configuration via environment variables."""

import os
import tempfile
from typing import List, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Server
    host: str = "127.0.0.1"
    port: int = 8000
    log_level: str = "INFO"
    cors_origins: List[str] = ["*"]

    # Job processing
    max_concurrent_jobs: int = 3
    download_steps: int = 10
    download_step_seconds: float = 0.5
    processing_delay_scale: float = 1.0  # 0 disables simulated delays
    job_timeout_seconds: Optional[float] = None  # None = jobs run unbounded

    # Output storage
    downloads_dir: str = os.path.join(tempfile.gettempdir(), "notag_downloads")
    result_ttl_hours: int = 24

    model_config = {
        "env_prefix": "NOTAG_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
    }


settings = Settings()
