"""
Unit tests for the HTTP change feed.
"""

import json

import httpx
import pytest

from buildqueue.constants import ChangeKind
from buildqueue.errors import FeedError
from buildqueue.ingest.feed import HttpChangeFeed

FEED_URL = "http://index.test/changes"


def _feed(handler) -> HttpChangeFeed:
    return HttpChangeFeed(url=FEED_URL, timeout=1.0, transport=httpx.MockTransport(handler))


class TestHttpChangeFeed:
    """Tests for HttpChangeFeed."""

    async def test_fetch_changes(self):
        """Test decoding a feed batch in delivery order."""
        body = [
            {"name": "serde", "version": "1.0.3", "kind": "added"},
            {"name": "rand", "version": "0.8.5", "kind": "yanked"},
        ]

        def handler(request: httpx.Request) -> httpx.Response:
            assert str(request.url) == FEED_URL
            return httpx.Response(200, content=json.dumps(body))

        events = await _feed(handler).fetch_changes()

        assert [(e.name, e.kind) for e in events] == [
            ("serde", ChangeKind.ADDED),
            ("rand", ChangeKind.YANKED),
        ]
        assert events[1].is_admissible is False

    async def test_http_error(self):
        """Test that a server error becomes a FeedError."""
        feed = _feed(lambda request: httpx.Response(503))

        with pytest.raises(FeedError):
            await feed.fetch_changes()

    async def test_connection_error(self):
        """Test that a transport error becomes a FeedError."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(FeedError):
            await _feed(handler).fetch_changes()

    async def test_malformed_payload(self):
        """Test that an undecodable batch becomes a FeedError."""
        feed = _feed(lambda request: httpx.Response(200, content=b'[{"name": "serde"}]'))

        with pytest.raises(FeedError):
            await feed.fetch_changes()

    async def test_unknown_kind_is_kept(self):
        """Test that an unfamiliar change kind is decoded as a plain string."""
        body = b'[{"name": "serde", "version": "1.0.0", "kind": "deleted"}]'
        feed = _feed(lambda request: httpx.Response(200, content=body))

        events = await feed.fetch_changes()

        assert events[0].kind == "deleted"
        assert not isinstance(events[0].kind, ChangeKind)
        assert events[0].is_admissible is True

    async def test_updated_kind(self):
        """Test that updated events decode to their enum member."""
        body = b'[{"name": "serde", "version": "1.0.1", "kind": "updated"}]'
        feed = _feed(lambda request: httpx.Response(200, content=body))

        events = await feed.fetch_changes()

        assert events[0].kind is ChangeKind.UPDATED
        assert events[0].is_admissible is True
