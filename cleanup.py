"""Periodic removal of converted files that outlived the retention window."""
from __future__ import annotations

import asyncio
import logging
import os
import time
from typing import List, Optional

logger = logging.getLogger(__name__)


def purge_stale_files(directory: str, max_age: float, now: Optional[float] = None) -> List[str]:
    """Delete regular files in ``directory`` older than ``max_age`` seconds; returns removed names."""
    now = time.time() if now is None else now
    removed: List[str] = []
    try:
        entries = list(os.scandir(directory))
    except FileNotFoundError:
        return removed
    for entry in entries:
        try:
            if not entry.is_file(follow_symlinks=False):
                continue
            if now - entry.stat().st_mtime <= max_age:
                continue
            os.remove(entry.path)
        except FileNotFoundError:
            continue
        removed.append(entry.name)
        logger.info("Cleaned up old file: %s", entry.name)
    return removed


async def cleanup_loop(directory: str, max_age: float, every: float) -> None:
    while True:
        await asyncio.sleep(every)
        try:
            await asyncio.to_thread(purge_stale_files, directory, max_age)
        except OSError as exc:
            logger.error("cleanup.failed dir=%s error=%s", directory, exc)
