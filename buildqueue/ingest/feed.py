"""
Change feed collaborators.

A change feed yields the package releases published upstream since the last
fetch, most recent first. Cloning and diffing the registry index is somebody
else's job; this module only defines the interface the ingester consumes and
a thin HTTP transport for a service that already exposes the diff.
"""

import logging
from typing import Protocol, Sequence

import httpx
from pydantic import TypeAdapter, ValidationError

from buildqueue.config import get_settings
from buildqueue.errors import FeedError
from buildqueue.types.events import ChangeEvent

logger = logging.getLogger(__name__)

_events_adapter = TypeAdapter(list[ChangeEvent])


class ChangeFeed(Protocol):
    """Source of upstream change events."""

    async def fetch_changes(self) -> Sequence[ChangeEvent]:
        """
        Fetch the changes since the previous call.

        Returns:
            A finite batch of events ordered most recent first.

        Raises:
            FeedError: If the feed cannot be fetched or decoded.
        """
        ...


class HttpChangeFeed:
    """
    Change feed served as a JSON array of {name, version, kind} objects.

    Each GET is one-shot: the serving side advances its own cursor.
    """

    def __init__(
        self,
        url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the feed.

        Args:
            url: Feed endpoint. Defaults to settings.change_feed_url.
            timeout: Request timeout in seconds.
            transport: Optional httpx transport (used by tests).
        """
        settings = get_settings()
        self.url = url or settings.change_feed_url
        self.timeout = timeout or settings.change_feed_timeout_seconds
        self._transport = transport

    async def fetch_changes(self) -> Sequence[ChangeEvent]:
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                transport=self._transport,
            ) as client:
                response = await client.get(self.url)
                response.raise_for_status()
        except httpx.HTTPError as e:
            raise FeedError(f"Failed to fetch change feed from {self.url}: {e}") from e

        try:
            events = _events_adapter.validate_json(response.content)
        except ValidationError as e:
            raise FeedError(f"Malformed change feed payload: {e}") from e

        logger.info(
            f"Fetched {len(events)} changes",
            extra={"feed_url": self.url}
        )
        return events
