"""In-memory registry of conversion jobs.

Jobs live for the lifetime of the process only. Every read returns a detached
copy and every write happens under a single lock, so the conversion task and
the progress stream never observe a half-applied update.
"""
from __future__ import annotations

import asyncio
import dataclasses
import logging
import threading
import time
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)


class JobState(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    DONE = "done"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (JobState.DONE, JobState.FAILED)


@dataclass
class Job:
    id: str
    state: JobState = JobState.PENDING
    progress: float = 0.0
    file: Optional[str] = None
    error: Optional[str] = None
    finished_at: Optional[float] = None

    @property
    def terminal(self) -> bool:
        return self.state.terminal

    def mark_done(self, file: str) -> None:
        self.state = JobState.DONE
        self.file = file
        self.progress = 100.0

    def mark_failed(self, error: str) -> None:
        self.state = JobState.FAILED
        self.error = error or "Download failed"

    def snapshot(self) -> Dict[str, Any]:
        """Wire form sent to progress subscribers."""
        return {
            "progress": round(self.progress),
            "done": self.state is JobState.DONE,
            "file": self.file,
            "error": self.error,
        }


class JobRegistry:
    def __init__(self) -> None:
        self._jobs: Dict[str, Job] = {}
        self._lock = threading.Lock()
        self._expiring: Dict[str, asyncio.TimerHandle] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)

    def __contains__(self, job_id: object) -> bool:
        with self._lock:
            return job_id in self._jobs

    def create(self) -> str:
        with self._lock:
            job_id = uuid.uuid4().hex
            while job_id in self._jobs:
                job_id = uuid.uuid4().hex
            self._jobs[job_id] = Job(id=job_id, state=JobState.RUNNING)
        return job_id

    def get(self, job_id: str) -> Optional[Job]:
        with self._lock:
            job = self._jobs.get(job_id)
            return dataclasses.replace(job) if job else None

    def update(self, job_id: str, mutator: Callable[[Job], None]) -> bool:
        """Apply ``mutator`` to a live job. Terminal and unknown jobs are left untouched."""
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None or job.terminal:
                return False
            draft = dataclasses.replace(job)
            mutator(draft)
            if draft.terminal:
                draft.finished_at = time.monotonic()
            self._jobs[job_id] = draft
            return True

    def delete(self, job_id: str) -> bool:
        with self._lock:
            handle = self._expiring.pop(job_id, None)
            if handle is not None:
                handle.cancel()
            return self._jobs.pop(job_id, None) is not None

    def expire(self, job_id: str, delay: float) -> None:
        """Schedule removal of ``job_id`` after ``delay`` seconds; the first schedule wins."""
        loop = asyncio.get_running_loop()
        with self._lock:
            if job_id in self._expiring or job_id not in self._jobs:
                return
            self._expiring[job_id] = loop.call_later(delay, self._drop_expired, job_id)

    def _drop_expired(self, job_id: str) -> None:
        with self._lock:
            self._expiring.pop(job_id, None)
            removed = self._jobs.pop(job_id, None) is not None
        if removed:
            logger.debug("job.expired id=%s", job_id)

    def clear(self) -> None:
        with self._lock:
            for handle in self._expiring.values():
                handle.cancel()
            self._expiring.clear()
            self._jobs.clear()
