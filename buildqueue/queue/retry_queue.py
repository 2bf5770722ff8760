"""
Retry queue.

Drains the build queue oldest-first, invoking a builder per entry and
resolving each outcome with a single-row store operation.
"""

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from buildqueue.builder.handlers import Builder, execute_build
from buildqueue.constants import (
    MAX_ATTEMPTS,
    SPAN_BUILD_PACKAGE,
    SPAN_DRAIN_QUEUE,
    EntryOutcome,
)
from buildqueue.db.repository import QueueRepository
from buildqueue.observability.metrics import MetricsCollector, get_metrics
from buildqueue.observability.tracing import get_tracer
from buildqueue.types.build import BuildContext, BuildResult, DrainReport, EntryResult

logger = logging.getLogger(__name__)


class RetryQueue:
    """
    Drains eligible queue entries through a builder.

    Per entry:
    - success deletes the row
    - failure increments its attempt counter; at MAX_ATTEMPTS the row stalls
      and is never selected again, but stays in the table
    - store errors while resolving are logged and the pass moves on

    One pass must finish before the next one starts; two overlapping passes
    can build the same entry twice.
    """

    def __init__(
        self,
        session: AsyncSession,
        builder: str | Builder,
        metrics: MetricsCollector | None = None,
    ):
        """
        Initialize the queue.

        Args:
            session: The async database session.
            builder: Registered builder name or builder callable.
            metrics: Metrics collector. Defaults to the global one.
        """
        self._session = session
        self._repo = QueueRepository(session)
        self._builder = builder
        self._metrics = metrics or get_metrics()

    async def count_eligible(self) -> int:
        """Count entries the next drain pass would select."""
        return await self._repo.count_eligible()

    async def drain(self) -> DrainReport:
        """
        Run one drain pass over every eligible entry.

        Returns:
            DrainReport; `built` is the number of successful builds.
        """
        report = DrainReport()

        with get_tracer().start_as_current_span(SPAN_DRAIN_QUEUE) as span:
            entries = await self._repo.fetch_eligible_ordered()
            # Snapshot the rows; resolution commits after every entry
            pending = [
                BuildContext(
                    entry_id=entry.id,
                    name=entry.name,
                    version=entry.version,
                    attempt=entry.attempt,
                )
                for entry in entries
            ]
            span.set_attribute("entries", len(pending))

            for context in pending:
                report.results.append(await self._process(context))

            span.set_attribute("built", report.built)

        await self._refresh_queue_sizes()

        logger.info(
            "Drain pass finished",
            extra={
                "entries": len(report.results),
                "built": report.built,
                "failed": report.failed,
                "stalled": report.stalled,
            }
        )
        return report

    async def _process(self, context: BuildContext) -> EntryResult:
        """Build one entry and resolve its outcome."""
        with get_tracer().start_as_current_span(SPAN_BUILD_PACKAGE) as span:
            span.set_attribute("entry_id", context.entry_id)
            span.set_attribute("package", f"{context.name}-{context.version}")
            span.set_attribute("attempt", context.attempt)

            result = await execute_build(context, self._builder)

        if result.success:
            entry_result = await self._resolve_success(context)
        else:
            entry_result = await self._resolve_failure(context, result)

        self._metrics.record_build_completed(
            outcome=entry_result.outcome.value,
            duration_seconds=(result.duration_ms or 0.0) / 1000,
        )
        return entry_result

    async def _resolve_success(self, context: BuildContext) -> EntryResult:
        """Remove a built entry."""
        entry_result = EntryResult(
            entry_id=context.entry_id,
            name=context.name,
            version=context.version,
            outcome=EntryOutcome.BUILT,
            attempt=context.attempt,
        )

        try:
            await self._repo.delete_entry(context.entry_id)
            await self._session.commit()
        except SQLAlchemyError as e:
            await self._session.rollback()
            # The build happened; the row will simply be built again next pass
            entry_result.error = f"Failed to remove entry: {e}"
            logger.exception(
                "Failed to remove built entry from queue",
                extra={"entry_id": context.entry_id}
            )

        logger.info(
            "Package built",
            extra={
                "entry_id": context.entry_id,
                "package": f"{context.name}-{context.version}",
                "attempt": context.attempt,
            }
        )
        return entry_result

    async def _resolve_failure(
        self,
        context: BuildContext,
        result: BuildResult,
    ) -> EntryResult:
        """Record a failed build attempt."""
        package = f"{context.name}-{context.version}"
        error = result.error or "Unknown error"

        logger.error(
            f"Failed to build package {package} from queue: {error}",
            extra={
                "entry_id": context.entry_id,
                "attempt": context.attempt,
                "output": result.output,
            }
        )

        attempt = context.attempt
        try:
            new_attempt = await self._repo.increment_attempt(context.entry_id)
            await self._session.commit()
        except SQLAlchemyError as e:
            await self._session.rollback()
            error = f"{error}; failed to record attempt: {e}"
            logger.exception(
                "Failed to increment attempt",
                extra={"entry_id": context.entry_id}
            )
        else:
            if new_attempt is None:
                logger.warning(
                    "Queue entry disappeared before its attempt was recorded",
                    extra={"entry_id": context.entry_id}
                )
            else:
                attempt = new_attempt

        outcome = EntryOutcome.STALLED if attempt >= MAX_ATTEMPTS else EntryOutcome.FAILED
        if outcome == EntryOutcome.STALLED:
            logger.warning(
                f"Package {package} stalled after {attempt} failed builds",
                extra={"entry_id": context.entry_id}
            )

        return EntryResult(
            entry_id=context.entry_id,
            name=context.name,
            version=context.version,
            outcome=outcome,
            attempt=attempt,
            error=error,
            output=result.output,
        )

    async def _refresh_queue_sizes(self) -> None:
        try:
            eligible = await self._repo.count_eligible()
            stalled = await self._repo.count_stalled()
        except SQLAlchemyError:
            await self._session.rollback()
            logger.warning("Could not refresh queue size metrics", exc_info=True)
            return
        self._metrics.update_queue_sizes(eligible, stalled)
