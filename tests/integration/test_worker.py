"""
Integration tests for the build worker.
"""

import asyncio

import pytest
import pytest_asyncio
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from buildqueue.constants import MAX_ATTEMPTS, ChangeKind
from buildqueue.db import QueueEntry, connection, create_session_factory
from buildqueue.db.repository import QueueRepository
from buildqueue.ingest.ingester import ChangeIngester
from buildqueue.worker.main import BuildWorker
from tests.fakes import BrokenChangeFeed, ScriptedBuilder, StaticChangeFeed, change


class TestWorkerIntegration:
    """Integration tests for the ingest-then-drain cycle."""

    @pytest_asyncio.fixture
    async def session_factory(
        self,
        async_engine: AsyncEngine,
        monkeypatch: pytest.MonkeyPatch,
    ) -> async_sessionmaker[AsyncSession]:
        """Route the worker's sessions to the test database."""
        factory = create_session_factory(async_engine)
        monkeypatch.setattr(connection, "AsyncSessionLocal", factory)
        return factory

    async def _entries(self, factory: async_sessionmaker[AsyncSession]) -> list[tuple[str, int]]:
        async with factory() as session:
            entries = await QueueRepository(session).list_entries(include_stalled=True)
            return [(e.name, e.attempt) for e in entries]

    async def test_run_once_ingests_then_drains(self, session_factory):
        """Test a full cycle: newest-first batch in, oldest built first."""
        feed = StaticChangeFeed([
            change("newest", "3.0.0"),
            change("yanked", "2.0.0", ChangeKind.YANKED),
            change("broken", "1.5.0"),
            change("oldest", "1.0.0"),
        ])
        builder = ScriptedBuilder(failing={"broken"})
        worker = BuildWorker(feed=feed, builder=builder, poll_interval=0.01)

        ingest_report, drain_report = await worker.run_once()

        assert ingest_report.inserted == 3
        assert ingest_report.eligible == 3
        assert [name for name, _, _ in builder.calls] == ["oldest", "broken", "newest"]
        assert drain_report.built == 2
        assert await self._entries(session_factory) == [("broken", 1)]

    async def test_feed_failure_still_drains_backlog(self, session_factory):
        """Test that a broken feed does not prevent draining."""
        async with session_factory() as session:
            session.add(QueueEntry(name="backlog", version="1.0.0", attempt=2))
            await session.commit()

        worker = BuildWorker(feed=BrokenChangeFeed(), builder=ScriptedBuilder())

        ingest_report, drain_report = await worker.run_once()

        assert ingest_report is None
        assert drain_report.built == 1
        assert await self._entries(session_factory) == []

    async def test_store_failure_during_ingest_still_drains_backlog(
        self,
        session_factory,
        monkeypatch: pytest.MonkeyPatch,
    ):
        """Test that a database error while admitting changes does not skip the drain."""
        async with session_factory() as session:
            session.add(QueueEntry(name="backlog", version="1.0.0", attempt=1))
            await session.commit()

        async def failing_admit(self, changes):
            raise OperationalError("SELECT count(*) FROM queue", {}, Exception("database is locked"))

        monkeypatch.setattr(ChangeIngester, "admit", failing_admit)
        feed = StaticChangeFeed([change("serde", "1.0.0")])
        builder = ScriptedBuilder()
        worker = BuildWorker(feed=feed, builder=builder)

        ingest_report, drain_report = await worker.run_once()

        assert ingest_report is None
        assert drain_report.built == 1
        assert [name for name, _, _ in builder.calls] == ["backlog"]
        assert await self._entries(session_factory) == []

    async def test_repeated_passes_stall_entry(self, session_factory):
        """Test that a poison entry stalls and stops being built."""
        feed = StaticChangeFeed([change("poison", "0.0.1"), change("good", "1.0.0")])
        builder = ScriptedBuilder(failing={"poison"})
        worker = BuildWorker(feed=feed, builder=builder)

        for _ in range(MAX_ATTEMPTS + 2):
            await worker.run_once()

        poison_calls = [call for call in builder.calls if call[0] == "poison"]
        assert [attempt for _, _, attempt in poison_calls] == list(range(MAX_ATTEMPTS))
        assert await self._entries(session_factory) == [("poison", MAX_ATTEMPTS)]

    async def test_start_and_stop(self, session_factory):
        """Test that the loop keeps polling until stopped."""
        feed = StaticChangeFeed([change("serde", "1.0.0")])
        worker = BuildWorker(feed=feed, builder="noop", poll_interval=0.01)

        task = asyncio.create_task(worker.start())
        while feed.fetches < 3:
            await asyncio.sleep(0.01)
        await worker.stop()
        await asyncio.wait_for(task, timeout=5)

        assert await self._entries(session_factory) == []
