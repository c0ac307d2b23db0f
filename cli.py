"""One-shot command line download, without the web service.

Usage:
    ytconvert <url> [--format=mp4|mp3|webm...] [--quality=best|worst|height|abr]
"""
from __future__ import annotations

import argparse
import asyncio
import os
import shlex
import sys
from typing import List, Optional

from errors import ConversionError, ConversionFailure
from fetcher import YtDlp
from progress import parse_percent


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ytconvert", description="Download a video or extract its audio with yt-dlp.")
    parser.add_argument("url", help="Video URL")
    parser.add_argument("--format", default="mp4", help="mp4 (default), mp3, or another container such as webm")
    parser.add_argument("--quality", default="best", help="best, an audio quality hint for mp3, or a max height")
    parser.add_argument("--output", default="%(title)s.%(ext)s", help="yt-dlp output template")
    return parser


async def _download(fetcher: YtDlp, url: str, fmt: str, quality: str, template: str) -> int:
    last: List[float] = [-1.0]

    def _show(stream: str, line: str) -> None:
        percent = parse_percent(line)
        if percent is not None and percent != last[0]:
            last[0] = percent
            print(f"\r{percent:5.1f}%", end="", flush=True)
        elif stream == "stderr" and line.startswith("ERROR"):
            print(line, file=sys.stderr)

    code = await fetcher.run(url, fmt, quality, template, _show)
    if last[0] >= 0:
        print()
    return code


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    fetcher = YtDlp(shlex.split(os.getenv("YTDLP_COMMAND", "yt-dlp") or "yt-dlp"))
    try:
        code = asyncio.run(_download(fetcher, args.url, args.format.lower(), args.quality, args.output))
        if code != 0:
            raise ConversionFailure(code)
    except ConversionError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    print("Download complete!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
