"""
Build worker process.

Every tick the worker admits the latest registry changes into the build queue
and then drains the queue once. Ticks never overlap: a drain pass runs to
completion before the next ingestion starts.
"""

import asyncio
import logging
import signal
from uuid import uuid4

from sqlalchemy.exc import SQLAlchemyError

from buildqueue.builder.handlers import Builder
from buildqueue.config import get_settings
from buildqueue.db import close_db, get_session_context, init_db
from buildqueue.errors import FeedError
from buildqueue.ingest.feed import ChangeFeed, HttpChangeFeed
from buildqueue.ingest.ingester import ChangeIngester
from buildqueue.observability.logging import bind_context, clear_context, setup_logging
from buildqueue.observability.metrics import setup_metrics
from buildqueue.observability.tracing import setup_tracing
from buildqueue.queue.retry_queue import RetryQueue
from buildqueue.types.build import DrainReport, IngestReport

logger = logging.getLogger(__name__)


class BuildWorker:
    """
    Periodic ingest-then-drain loop.

    Features:
    - One ingestion followed by one drain pass per tick
    - Feed or store failures during ingestion still drain the existing backlog
    - Graceful shutdown on SIGTERM/SIGINT after the current pass
    """

    def __init__(
        self,
        feed: ChangeFeed,
        builder: str | Builder | None = None,
        poll_interval: float | None = None,
    ):
        """
        Initialize the worker.

        Args:
            feed: Change feed to ingest from.
            builder: Builder name or callable. Defaults to settings.builder.
            poll_interval: Seconds between ticks.
        """
        settings = get_settings()

        self.feed = feed
        self.builder = builder or settings.builder
        self.poll_interval = poll_interval or settings.worker_poll_interval_seconds

        self._running = False
        self._stopped = asyncio.Event()

    async def start(self) -> None:
        """Start the worker loop."""
        logger.info(
            "Build worker starting",
            extra={"poll_interval": self.poll_interval}
        )

        self._running = True
        self._stopped.clear()

        while self._running:
            try:
                await self.run_once()
            except Exception as e:
                logger.exception(f"Error in worker loop: {e}")

            # Wake early when stop() is called
            try:
                await asyncio.wait_for(self._stopped.wait(), timeout=self.poll_interval)
            except asyncio.TimeoutError:
                pass

        logger.info("Build worker stopped")

    async def stop(self) -> None:
        """Stop the worker after the current pass."""
        logger.info("Build worker stopping")
        self._running = False
        self._stopped.set()

    async def run_once(self) -> tuple[IngestReport | None, DrainReport]:
        """
        Run one ingestion and one drain pass (for testing or cron-style execution).

        Returns:
            The ingest report (None if ingestion failed) and the drain report.
        """
        bind_context(pass_id=uuid4().hex[:12])
        try:
            ingest_report = await self._ingest()
            drain_report = await self._drain()
        finally:
            clear_context()
        return ingest_report, drain_report

    async def _ingest(self) -> IngestReport | None:
        try:
            async with get_session_context() as session:
                report = await ChangeIngester(session, self.feed).ingest()
        except FeedError as e:
            logger.error(f"Failed to get new packages: {e}")
            return None
        except SQLAlchemyError:
            logger.exception("Failed to admit new packages into the build queue")
            return None

        logger.info(
            f"{report.eligible} packages in build queue",
            extra={"inserted": report.inserted}
        )
        return report

    async def _drain(self) -> DrainReport:
        async with get_session_context() as session:
            queue = RetryQueue(session, self.builder)
            report = await queue.drain()

        logger.info(f"Built {report.built} packages from queue")
        return report


async def run_async() -> None:
    """Run the worker asynchronously."""
    setup_logging()
    setup_metrics()
    setup_tracing()
    await init_db()

    worker = BuildWorker(feed=HttpChangeFeed())

    # Handle shutdown signals
    loop = asyncio.get_running_loop()

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(
            sig,
            lambda: asyncio.create_task(worker.stop())
        )

    try:
        await worker.start()
    finally:
        await close_db()


def run() -> None:
    """Run the worker."""
    asyncio.run(run_async())


if __name__ == "__main__":
    run()
