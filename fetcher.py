"""Launch yt-dlp as a child process and surface its output line by line.

Format selection mirrors what the web form offers:
- mp3   : audio-only extraction, optional ``--audio-quality`` hint
- mp4   : mp4 video + m4a audio, else a single mp4, else anything
- other : best of anything, or a height cap in the requested container
"""
from __future__ import annotations

import asyncio
import codecs
import logging
import os
import re
from typing import Callable, List, Optional, Sequence

from errors import LaunchFailure

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 4
LINE_SPLIT_RE = re.compile(r"[\r\n]+")
MP4_SELECTOR = "bestvideo[ext=mp4]+bestaudio[ext=m4a]/best[ext=mp4]/best"
BEST_SELECTOR = "bestvideo+bestaudio/best"

# Called with ("stdout" | "stderr", line) for every non-empty output line.
LineCallback = Callable[[str, str], None]


def build_format_args(fmt: str, quality: str) -> List[str]:
    """Translate the requested container and quality into yt-dlp selection flags."""
    if fmt == "mp3":
        args = ["-x", "--audio-format", "mp3"]
        if quality != "best":
            args.extend(["--audio-quality", quality])
        return args
    if fmt == "mp4":
        return ["-f", MP4_SELECTOR]
    if quality == "best":
        return ["-f", BEST_SELECTOR]
    capped = f"[ext={fmt}][height<={quality}]"
    return ["-f", f"bestvideo{capped}+bestaudio/best{capped}/best"]


def build_ytdlp_args(url: str, fmt: str, quality: str, output_template: str) -> List[str]:
    return [
        "--newline",
        "--no-playlist",
        "--no-mtime",
        "-o",
        output_template,
        *build_format_args(fmt, quality),
        url,
    ]


def output_template(downloads_dir: str, job_id: str) -> str:
    """Prefix every output file with the job id so it can be found after exit."""
    return os.path.join(downloads_dir, f"{job_id}_%(title)s.%(ext)s")


async def _pump(stream: Optional[asyncio.StreamReader], name: str, on_line: LineCallback) -> None:
    if stream is None:
        return
    decoder = codecs.getincrementaldecoder("utf-8")(errors="ignore")
    pending = ""
    while True:
        chunk = await stream.read(CHUNK_SIZE)
        if not chunk:
            break
        # The last piece has no terminator yet; hold it until the next read
        *lines, pending = LINE_SPLIT_RE.split(pending + decoder.decode(chunk))
        for line in lines:
            line = line.strip()
            if line:
                on_line(name, line)
    pending = (pending + decoder.decode(b"", final=True)).strip()
    if pending:
        on_line(name, pending)


class YtDlp:
    def __init__(self, command: Sequence[str] = ("yt-dlp",)) -> None:
        self.command = tuple(command)

    def argv(self, url: str, fmt: str, quality: str, template: str) -> List[str]:
        return [*self.command, *build_ytdlp_args(url, fmt, quality, template)]

    async def run(self, url: str, fmt: str, quality: str, template: str, on_line: LineCallback) -> int:
        """
        Run yt-dlp to completion and return its exit code.

        - stdout and stderr are drained concurrently so neither pipe can fill up
        - every line goes to ``on_line`` as soon as it is read
        - the child is killed if this coroutine is cancelled
        """
        argv = self.argv(url, fmt, quality, template)
        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except (FileNotFoundError, PermissionError) as exc:
            raise LaunchFailure(f"yt-dlp is not installed or not in PATH ({argv[0]})") from exc

        logger.debug("ytdlp.spawned pid=%s argv=%s", proc.pid, argv)
        try:
            await asyncio.gather(
                _pump(proc.stdout, "stdout", on_line),
                _pump(proc.stderr, "stderr", on_line),
            )
            return await proc.wait()
        finally:
            if proc.returncode is None:
                try:
                    proc.kill()
                except ProcessLookupError:
                    pass
                await proc.wait()
