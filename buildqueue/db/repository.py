"""
Queue repository for database operations.
Implements the narrow set of store operations the build queue relies on.
"""

import logging
from typing import Sequence

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from buildqueue.constants import MAX_ATTEMPTS
from buildqueue.db.models import QueueEntry

logger = logging.getLogger(__name__)


class QueueRepository:
    """
    Repository for build queue database operations.

    Every mutation is a single statement on a single row, so callers can
    commit after each one and a crash leaves the queue partially processed
    but valid. The repository never commits on its own.
    """

    def __init__(self, session: AsyncSession):
        """
        Initialize the repository with a database session.

        Args:
            session: The async database session.
        """
        self._session = session

    async def insert_entry(self, name: str, version: str) -> QueueEntry:
        """
        Create a new queue entry with attempt 0.

        No deduplication is done: inserting the same (name, version) twice
        produces two rows.

        Args:
            name: Package name.
            version: Package version.

        Returns:
            The new QueueEntry with its store-assigned id.
        """
        entry = QueueEntry(name=name, version=version, attempt=0)
        self._session.add(entry)
        await self._session.flush()

        logger.debug(
            "Added entry into build queue",
            extra={"entry_id": entry.id, "package": f"{name}-{version}"}
        )
        return entry

    async def get_entry(self, entry_id: int) -> QueueEntry | None:
        """
        Get a queue entry by ID.

        Args:
            entry_id: The entry id.

        Returns:
            The QueueEntry or None if not found.
        """
        stmt = select(QueueEntry).where(QueueEntry.id == entry_id)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def count_eligible(self) -> int:
        """Count entries that a drain pass would still select."""
        stmt = (
            select(func.count())
            .select_from(QueueEntry)
            .where(QueueEntry.attempt < MAX_ATTEMPTS)
        )
        result = await self._session.execute(stmt)
        return result.scalar() or 0

    async def count_stalled(self) -> int:
        """Count entries that exhausted their retries."""
        stmt = (
            select(func.count())
            .select_from(QueueEntry)
            .where(QueueEntry.attempt >= MAX_ATTEMPTS)
        )
        result = await self._session.execute(stmt)
        return result.scalar() or 0

    async def fetch_eligible_ordered(self) -> Sequence[QueueEntry]:
        """
        Fetch all eligible entries, oldest admitted first.

        Returns:
            Entries with attempt < MAX_ATTEMPTS ordered by ascending id.
        """
        stmt = (
            select(QueueEntry)
            .where(QueueEntry.attempt < MAX_ATTEMPTS)
            .order_by(QueueEntry.id.asc())
        )
        result = await self._session.execute(stmt)
        return result.scalars().all()

    async def list_entries(
        self,
        limit: int = 50,
        offset: int = 0,
        include_stalled: bool = False,
    ) -> Sequence[QueueEntry]:
        """
        List queue entries in FIFO order.

        Args:
            limit: Maximum number of entries to return.
            offset: Offset for pagination.
            include_stalled: Whether to include entries past the retry ceiling.

        Returns:
            Entries ordered by ascending id.
        """
        stmt = select(QueueEntry).order_by(QueueEntry.id.asc())
        if not include_stalled:
            stmt = stmt.where(QueueEntry.attempt < MAX_ATTEMPTS)
        stmt = stmt.limit(limit).offset(offset)

        result = await self._session.execute(stmt)
        return result.scalars().all()

    async def delete_entry(self, entry_id: int) -> bool:
        """
        Remove an entry after a successful build.

        Idempotent: deleting a row that is already gone is not an error.

        Args:
            entry_id: The entry id.

        Returns:
            True if a row was deleted, False if it no longer existed.
        """
        stmt = (
            delete(QueueEntry)
            .where(QueueEntry.id == entry_id)
        )
        result = await self._session.execute(stmt)
        return result.rowcount > 0

    async def increment_attempt(self, entry_id: int) -> int | None:
        """
        Record one more failed build attempt for an entry.

        Args:
            entry_id: The entry id.

        Returns:
            The new attempt count, or None if the row no longer exists.
        """
        stmt = (
            update(QueueEntry)
            .where(QueueEntry.id == entry_id)
            .values(attempt=QueueEntry.attempt + 1)
            .execution_options(synchronize_session="fetch")
        )
        result = await self._session.execute(stmt)
        if result.rowcount == 0:
            return None

        attempt_stmt = select(QueueEntry.attempt).where(QueueEntry.id == entry_id)
        result = await self._session.execute(attempt_stmt)
        return result.scalar_one_or_none()
