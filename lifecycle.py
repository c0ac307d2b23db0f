"""Drive a job from submission to a terminal state.

The runner owns the background tasks. Each task runs yt-dlp once, feeds every
output line through the progress parser into the registry, and finally
resolves the job to ``done`` (output file found) or ``failed``.
"""
from __future__ import annotations

import asyncio
import logging
import os
from typing import Optional, Set

from errors import ConversionFailure, OutputMissing
from fetcher import YtDlp, output_template
from jobs import JobRegistry
from progress import ProgressParser, parse_percent

logger = logging.getLogger(__name__)

# Leftovers yt-dlp writes while a download or merge is still in flight.
PARTIAL_SUFFIXES = (".part", ".ytdl", ".temp")


def find_output(downloads_dir: str, job_id: str) -> Optional[str]:
    """Return the name of the finished file produced for ``job_id``, if any."""
    prefix = f"{job_id}_"
    try:
        names = sorted(os.listdir(downloads_dir))
    except FileNotFoundError:
        return None
    for name in names:
        if not name.startswith(prefix) or name.endswith(PARTIAL_SUFFIXES):
            continue
        if os.path.isfile(os.path.join(downloads_dir, name)):
            return name
    return None


class JobRunner:
    def __init__(
        self,
        registry: JobRegistry,
        downloads_dir: str,
        fetcher: Optional[YtDlp] = None,
        parser: ProgressParser = parse_percent,
        grace_seconds: float = 300.0,
    ) -> None:
        self.registry = registry
        self.downloads_dir = downloads_dir
        self.fetcher = fetcher or YtDlp()
        self.parser = parser
        self.grace_seconds = grace_seconds
        self._tasks: Set[asyncio.Task] = set()

    @property
    def active(self) -> int:
        return len(self._tasks)

    def submit(self, url: str, fmt: str, quality: str) -> str:
        """Create a job and start converting it in the background; returns the job id."""
        job_id = self.registry.create()
        task = asyncio.get_running_loop().create_task(self.run(job_id, url, fmt, quality), name=f"job-{job_id}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        logger.info("job.submitted id=%s format=%s quality=%s", job_id, fmt, quality)
        return job_id

    def _on_line(self, job_id: str, stream: str, line: str) -> None:
        percent = self.parser(line)
        if percent is None:
            return

        def _set_progress(job):
            job.progress = percent

        self.registry.update(job_id, _set_progress)

    async def run(self, job_id: str, url: str, fmt: str, quality: str) -> None:
        try:
            code = await self.fetcher.run(
                url,
                fmt,
                quality,
                output_template(self.downloads_dir, job_id),
                lambda stream, line: self._on_line(job_id, stream, line),
            )
            if code != 0:
                raise ConversionFailure(code)
            name = find_output(self.downloads_dir, job_id)
            if name is None:
                raise OutputMissing()
        except asyncio.CancelledError:
            self.registry.update(job_id, lambda job: job.mark_failed("Download cancelled"))
            raise
        except Exception as exc:
            logger.warning("job.failed id=%s error=%s", job_id, exc)
            message = str(exc) or exc.__class__.__name__
            self.registry.update(job_id, lambda job: job.mark_failed(message))
        else:
            logger.info("job.done id=%s file=%s", job_id, name)
            self.registry.update(job_id, lambda job: job.mark_done(name))
        self.registry.expire(job_id, self.grace_seconds)

    async def shutdown(self) -> None:
        """Cancel conversions still running when the service stops."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
