"""Environment-driven settings for the ytconvert service."""
from __future__ import annotations

import os
import shlex
from dataclasses import dataclass
from typing import Tuple


def _env_float(name: str, default: float, minimum: float) -> float:
    return max(float(os.getenv(name, str(default)) or default), minimum)


def _env_int(name: str, default: int, minimum: int) -> int:
    return max(int(os.getenv(name, str(default)) or default), minimum)


@dataclass(frozen=True)
class Settings:
    downloads_dir: str = os.path.join(os.getcwd(), "downloads")
    ytdlp_command: Tuple[str, ...] = ("yt-dlp",)
    progress_interval: float = 1.0
    job_grace_seconds: float = 300.0
    file_retention_seconds: float = 3600.0
    cleanup_interval_seconds: float = 600.0
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 3000
    cors_origins: Tuple[str, ...] = ("*",)

    @classmethod
    def from_env(cls) -> "Settings":
        """Read settings from the process environment."""
        command = tuple(shlex.split(os.getenv("YTDLP_COMMAND", "yt-dlp") or "yt-dlp"))
        return cls(
            downloads_dir=os.path.abspath(os.getenv("DOWNLOADS_DIR", "downloads") or "downloads"),
            ytdlp_command=command or ("yt-dlp",),
            progress_interval=_env_float("PROGRESS_INTERVAL", 1.0, 0.05),
            job_grace_seconds=_env_float("JOB_GRACE_SECONDS", 300.0, 0.0),
            file_retention_seconds=_env_float("FILE_RETENTION_SECONDS", 3600.0, 1.0),
            cleanup_interval_seconds=_env_float("CLEANUP_INTERVAL_SECONDS", 600.0, 1.0),
            log_level=(os.getenv("LOG_LEVEL", "INFO") or "INFO").upper(),
            host=os.getenv("HOST", "0.0.0.0") or "0.0.0.0",
            port=_env_int("PORT", 3000, 1),
        )
