"""FastAPI backend for ytconvert.

This service exposes:
- POST /download       : starts a conversion job and returns its id immediately
- GET  /progress/{id}  : server-sent events with the job's progress until it finishes
- GET  /files/{name}   : the converted file, for as long as the retention window allows
- GET  /api/health     : service readiness and tool versions

Run with:
    uvicorn server:app --host 0.0.0.0 --port 3000
"""
from __future__ import annotations

import asyncio
import os
import re
import shutil
import subprocess
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional, Tuple
from urllib.parse import urlparse

from yt_dlp.version import __version__ as YTDLP_VERSION
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel

from cleanup import cleanup_loop
from config import Settings
from errors import InvalidRequest, SubscriptionNotFound
from fetcher import YtDlp
from jobs import JobRegistry
from lifecycle import JobRunner
from logger import init_logger
from notifier import SSE_HEADERS, sse_event, watch_job

FORMAT_RE = re.compile(r"^[A-Za-z0-9]+$")


class DownloadRequest(BaseModel):
    url: Optional[str] = None
    format: Optional[str] = "mp4"
    quality: Optional[str] = "best"


def validate_request(body: DownloadRequest) -> Tuple[str, str, str]:
    """Normalize the request body; raises InvalidRequest before any job exists."""
    url = (body.url or "").strip()
    if not url:
        raise InvalidRequest("YouTube URL is required")
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise InvalidRequest("URL must be an absolute http(s) link")

    fmt = (body.format or "mp4").strip().lower()
    if not FORMAT_RE.match(fmt):
        raise InvalidRequest(f"Invalid format '{fmt}'")

    quality = (body.quality or "best").strip() or "best"
    if fmt not in ("mp3", "mp4") and quality != "best" and not (quality.isdigit() and int(quality) > 0):
        raise InvalidRequest("Quality must be 'best' or a maximum video height such as 720")
    return url, fmt, quality


def ffmpeg_version() -> Optional[str]:
    try:
        proc = subprocess.run(["ffmpeg", "-version"], capture_output=True, text=True, timeout=2)
        if proc.returncode == 0:
            return proc.stdout.splitlines()[0]
    except FileNotFoundError:
        return None
    except Exception:
        return "ffmpeg check failed"
    return None


def create_app(settings: Optional[Settings] = None, fetcher: Optional[YtDlp] = None) -> FastAPI:
    """Build the application with its own registry, runner and download directory."""
    settings = settings or Settings.from_env()

    registry = JobRegistry()
    runner = JobRunner(
        registry,
        settings.downloads_dir,
        fetcher=fetcher or YtDlp(settings.ytdlp_command),
        grace_seconds=settings.job_grace_seconds,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger = init_logger(settings.log_level)
        os.makedirs(settings.downloads_dir, exist_ok=True)
        cleaner = asyncio.create_task(
            cleanup_loop(
                settings.downloads_dir,
                settings.file_retention_seconds,
                settings.cleanup_interval_seconds,
            )
        )
        logger.info("Server started, downloads in %s", settings.downloads_dir)
        try:
            yield
        finally:
            cleaner.cancel()
            await asyncio.gather(cleaner, return_exceptions=True)
            await runner.shutdown()
            registry.clear()
            logger.info("Server shutdown")

    app = FastAPI(title="ytconvert API", version="1.0.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.registry = registry
    app.state.runner = runner

    # Allow the frontend to connect from any origin
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/")
    async def root() -> Dict[str, str]:
        return {"status": "ok"}

    @app.get("/api/health")
    async def healthcheck() -> Dict[str, Any]:
        """Return service readiness and tool versions."""
        return {
            "status": "ok",
            "yt_dlp": YTDLP_VERSION,
            "yt_dlp_command": shutil.which(settings.ytdlp_command[0]) or "missing",
            "ffmpeg": ffmpeg_version() or "missing",
            "jobs": len(registry),
            "running": runner.active,
            "job_grace_seconds": settings.job_grace_seconds,
            "file_retention_seconds": settings.file_retention_seconds,
        }

    @app.post("/download")
    async def download(body: DownloadRequest) -> Dict[str, str]:
        """Accept a conversion request; progress is available at /progress/{id}."""
        url, fmt, quality = validate_request(body)
        return {"id": runner.submit(url, fmt, quality)}

    @app.get("/progress/{job_id}")
    async def progress(job_id: str, request: Request):
        """
        Stream job snapshots as server-sent events.

        - One ``data:`` message per sampling interval
        - The stream ends right after the first done/error message
        - Closing the connection stops this stream only, never the conversion
        """
        if job_id not in registry:
            raise SubscriptionNotFound(job_id)

        async def events():
            async for snapshot in watch_job(
                registry,
                job_id,
                interval=settings.progress_interval,
                grace=settings.job_grace_seconds,
                is_disconnected=request.is_disconnected,
            ):
                yield sse_event(snapshot)

        return StreamingResponse(events(), media_type="text/event-stream", headers=SSE_HEADERS)

    app.mount("/files", StaticFiles(directory=settings.downloads_dir, check_dir=False), name="files")
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("server:app", host=app.state.settings.host, port=app.state.settings.port, reload=False)
