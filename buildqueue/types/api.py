"""
API request and response type definitions.
"""

from datetime import datetime

from pydantic import BaseModel, Field


class EnqueueRequest(BaseModel):
    """Request body for adding a package version to the build queue."""

    name: str = Field(..., min_length=1, max_length=255, description="Package name")
    version: str = Field(..., min_length=1, max_length=100, description="Package version")


class QueueEntryResponse(BaseModel):
    """A single queue entry."""

    id: int
    name: str
    version: str
    attempt: int
    stalled: bool
    created_at: datetime | None = None


class QueueListResponse(BaseModel):
    """Page of queue entries in build order."""

    entries: list[QueueEntryResponse]
    eligible: int
    stalled: int
    limit: int
    offset: int


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    database: str
    timestamp: datetime
