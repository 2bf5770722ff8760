"""
Exception hierarchy for the build queue.

Only feed failures cross a component boundary. Build failures are turned into
attempt increments and store failures on a single entry are contained to that
entry.
"""


class QueueError(Exception):
    """Base class for build queue errors."""


class FeedError(QueueError):
    """The upstream change feed could not be fetched or decoded."""


class BuildError(QueueError):
    """A build step failed for a package version."""

    def __init__(self, name: str, version: str, reason: str):
        super().__init__(f"{name}-{version}: {reason}")
        self.name = name
        self.version = version
        self.reason = reason
