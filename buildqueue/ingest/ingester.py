"""
Change ingester.

Turns one batch of upstream change events into build queue entries.
"""

import logging
from typing import Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from buildqueue.constants import SPAN_INGEST_CHANGES
from buildqueue.db.repository import QueueRepository
from buildqueue.ingest.feed import ChangeFeed
from buildqueue.observability.metrics import MetricsCollector, get_metrics
from buildqueue.observability.tracing import get_tracer
from buildqueue.types.build import IngestReport
from buildqueue.types.events import ChangeEvent

logger = logging.getLogger(__name__)


class ChangeIngester:
    """
    Admits upstream change events into the build queue.

    The feed delivers batches newest first while the queue is drained in
    ascending id order, so each batch is reversed before insertion. Every
    insert is committed on its own: a failed insert is logged and skipped,
    and a crash mid-batch leaves the earlier inserts in place.
    """

    def __init__(
        self,
        session: AsyncSession,
        feed: ChangeFeed | None = None,
        metrics: MetricsCollector | None = None,
    ):
        """
        Initialize the ingester.

        Args:
            session: The async database session.
            feed: Change feed to pull from. Only needed by ingest().
            metrics: Metrics collector. Defaults to the global one.
        """
        self._session = session
        self._repo = QueueRepository(session)
        self._feed = feed
        self._metrics = metrics or get_metrics()

    async def ingest(self) -> IngestReport:
        """
        Fetch one batch from the feed and admit it.

        Returns:
            IngestReport whose `eligible` sizes the next drain pass.

        Raises:
            FeedError: If the feed cannot be fetched. Nothing is inserted.
        """
        if self._feed is None:
            raise RuntimeError("ChangeIngester.ingest() requires a change feed")

        with get_tracer().start_as_current_span(SPAN_INGEST_CHANGES) as span:
            changes = await self._feed.fetch_changes()
            span.set_attribute("changes", len(changes))
            return await self.admit(changes)

    async def admit(self, changes: Sequence[ChangeEvent]) -> IngestReport:
        """
        Insert a newest-first batch of changes into the queue.

        Args:
            changes: Events as delivered by the feed, most recent first.

        Returns:
            IngestReport with per-batch counters and the eligible count.
        """
        report = IngestReport(received=len(changes))

        for event in reversed(changes):
            if not event.is_admissible:
                report.skipped += 1
                self._metrics.record_event_ingested(str(event.kind), "skipped")
                continue

            try:
                await self._repo.insert_entry(event.name, event.version)
                await self._session.commit()
            except SQLAlchemyError:
                await self._session.rollback()
                report.failed += 1
                self._metrics.record_event_ingested(str(event.kind), "failed")
                logger.exception(
                    "Failed to add package into build queue",
                    extra={"package": str(event)}
                )
                continue

            report.inserted += 1
            self._metrics.record_event_ingested(str(event.kind), "inserted")

        report.eligible = await self._repo.count_eligible()
        self._metrics.update_queue_sizes(report.eligible)

        logger.info(
            "Change batch admitted",
            extra={
                "received": report.received,
                "inserted": report.inserted,
                "skipped": report.skipped,
                "failed": report.failed,
                "eligible": report.eligible,
            }
        )
        return report
