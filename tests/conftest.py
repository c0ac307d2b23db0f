import asyncio
import json
import os

import pytest

from config import Settings


class FakeFetcher:
    """Stands in for YtDlp: replays output lines, optionally writes the output file."""

    def __init__(self, lines=(), code=0, produce=True, title="Clip", ext="mp4", error=None, gate=None):
        self.lines = list(lines)
        self.code = code
        self.produce = produce
        self.title = title
        self.ext = ext
        self.error = error
        self.gate = gate
        self.calls = []
        self.finished = False

    async def run(self, url, fmt, quality, template, on_line):
        self.calls.append((url, fmt, quality, template))
        if self.error is not None:
            raise self.error
        for line in self.lines:
            on_line("stderr", line)
            await asyncio.sleep(0)
        if self.gate is not None:
            await self.gate.wait()
        if self.produce and self.code == 0:
            path = template.replace("%(title)s", self.title).replace("%(ext)s", self.ext)
            with open(path, "wb") as handle:
                handle.write(b"media")
        self.finished = True
        return self.code


async def wait_for_terminal(registry, job_id, timeout=2.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while loop.time() < deadline:
        job = registry.get(job_id)
        if job is not None and job.terminal:
            return job
        await asyncio.sleep(0.005)
    raise AssertionError(f"job {job_id} did not finish")


def parse_events(body):
    return [json.loads(chunk[len("data: "):]) for chunk in body.split("\n\n") if chunk.startswith("data: ")]


@pytest.fixture
def settings(tmp_path):
    downloads = tmp_path / "downloads"
    os.makedirs(downloads)
    return Settings(
        downloads_dir=str(downloads),
        progress_interval=0.01,
        job_grace_seconds=60.0,
        cleanup_interval_seconds=60.0,
    )
