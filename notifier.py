"""Sample the job registry and push snapshots to one subscriber."""
from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, Optional

from jobs import JobRegistry

logger = logging.getLogger(__name__)

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def sse_event(payload: Dict[str, Any]) -> str:
    return f"data: {json.dumps(payload)}\n\n"


async def watch_job(
    registry: JobRegistry,
    job_id: str,
    interval: float = 1.0,
    grace: float = 300.0,
    is_disconnected: Optional[Callable[[], Awaitable[bool]]] = None,
) -> AsyncIterator[Dict[str, Any]]:
    """
    Yield one snapshot per ``interval`` until the job is terminal or gone.

    The terminal snapshot is yielded once, after which the job is scheduled for
    removal ``grace`` seconds later. Stopping early (disconnect or cancellation)
    only ends this subscription; the conversion keeps running.
    """
    while True:
        await asyncio.sleep(interval)
        if is_disconnected is not None and await is_disconnected():
            logger.debug("progress.disconnected id=%s", job_id)
            return
        job = registry.get(job_id)
        if job is None:
            return
        yield job.snapshot()
        if job.terminal:
            registry.expire(job_id, grace)
            return
