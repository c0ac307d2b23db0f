"""Error types for request validation and background conversion.

Request-level errors are HTTPExceptions, so FastAPI renders them as
``{"detail": "<message>"}``. Clients written against the older Express service
read an ``error`` key and must switch to ``detail``. Job-level errors never
reach the HTTP layer: their message ends up in the snapshot's ``error`` field.
"""
from __future__ import annotations

from typing import Optional

from fastapi import HTTPException, status


class InvalidRequest(HTTPException):
    """Raised before a job is created when the request body is unusable."""

    def __init__(self, message: str) -> None:
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=message)


class SubscriptionNotFound(HTTPException):
    def __init__(self, job_id: str) -> None:
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail="Download not found")
        self.job_id = job_id


class ConversionError(Exception):
    """Base class for failures recorded on a job instead of raised to a client."""


class LaunchFailure(ConversionError):
    pass


class ConversionFailure(ConversionError):
    def __init__(self, exit_code: Optional[int]) -> None:
        super().__init__(f"Download failed with code {exit_code}")
        self.exit_code = exit_code


class OutputMissing(ConversionError):
    def __init__(self, message: str = "Downloaded file not found") -> None:
        super().__init__(message)
