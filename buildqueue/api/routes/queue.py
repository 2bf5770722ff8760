"""
Build queue routes.
"""

import logging

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from buildqueue.constants import API_V1_PREFIX
from buildqueue.db import get_async_session
from buildqueue.db.models import QueueEntry
from buildqueue.db.repository import QueueRepository
from buildqueue.observability.metrics import get_metrics
from buildqueue.types.api import EnqueueRequest, QueueEntryResponse, QueueListResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix=f"{API_V1_PREFIX}/queue", tags=["Queue"])


def _entry_to_response(entry: QueueEntry) -> QueueEntryResponse:
    """Convert a QueueEntry model to a QueueEntryResponse."""
    return QueueEntryResponse(
        id=entry.id,
        name=entry.name,
        version=entry.version,
        attempt=entry.attempt,
        stalled=entry.is_stalled,
        created_at=entry.created_at,
    )


@router.get(
    "",
    response_model=QueueListResponse,
    summary="List the build queue",
    description="List queue entries in build order, oldest first.",
)
async def list_queue(
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    include_stalled: bool = Query(default=False),
    session: AsyncSession = Depends(get_async_session),
) -> QueueListResponse:
    """
    List queue entries.

    Stalled entries (past the retry ceiling) are hidden unless requested;
    the totals are always reported.
    """
    repo = QueueRepository(session)

    entries = await repo.list_entries(
        limit=limit,
        offset=offset,
        include_stalled=include_stalled,
    )

    return QueueListResponse(
        entries=[_entry_to_response(entry) for entry in entries],
        eligible=await repo.count_eligible(),
        stalled=await repo.count_stalled(),
        limit=limit,
        offset=offset,
    )


@router.post(
    "",
    response_model=QueueEntryResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Queue a package build",
    description="Add a package version to the end of the build queue.",
)
async def enqueue(
    request: EnqueueRequest,
    session: AsyncSession = Depends(get_async_session),
) -> QueueEntryResponse:
    """
    Add one package version to the build queue.

    Existing entries for the same version are not checked; the new entry is
    built in addition to them.
    """
    repo = QueueRepository(session)

    entry = await repo.insert_entry(request.name, request.version)
    await session.commit()

    get_metrics().record_event_ingested("manual", "inserted")
    logger.info(
        "Package queued manually",
        extra={"entry_id": entry.id, "package": f"{entry.name}-{entry.version}"}
    )

    return _entry_to_response(entry)
