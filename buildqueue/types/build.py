"""
Build and queue-resolution type definitions for internal use.
"""

from dataclasses import dataclass, field

from pydantic import BaseModel

from buildqueue.constants import MAX_ATTEMPTS, EntryOutcome


class BuildResult(BaseModel):
    """
    Result of a build step.
    Returned by builders after processing a package version.
    """

    success: bool
    output: str | None = None
    error: str | None = None
    duration_ms: float | None = None


@dataclass
class BuildContext:
    """
    Context passed to builders.
    Describes the queue entry being built and its retry budget.
    """

    entry_id: int
    name: str
    version: str
    attempt: int
    max_attempts: int = MAX_ATTEMPTS

    @property
    def is_last_attempt(self) -> bool:
        """Check if a failure now stalls the entry."""
        return self.attempt + 1 >= self.max_attempts

    @property
    def remaining_attempts(self) -> int:
        """Get remaining build attempts, including this one."""
        return max(0, self.max_attempts - self.attempt)


@dataclass
class EntryResult:
    """Resolution of one queue entry within a drain pass."""

    entry_id: int
    name: str
    version: str
    outcome: EntryOutcome
    attempt: int
    error: str | None = None
    # Tail of the build log for failed builds
    output: str | None = None


@dataclass
class DrainReport:
    """
    Aggregated outcome of a drain pass.

    `built` counts successful builds, including ones whose row removal hit a
    store error.
    """

    results: list[EntryResult] = field(default_factory=list)

    @property
    def built(self) -> int:
        return self._count(EntryOutcome.BUILT)

    @property
    def failed(self) -> int:
        return self._count(EntryOutcome.FAILED)

    @property
    def stalled(self) -> int:
        return self._count(EntryOutcome.STALLED)

    def _count(self, outcome: EntryOutcome) -> int:
        return sum(1 for result in self.results if result.outcome == outcome)


@dataclass
class IngestReport:
    """Aggregated outcome of admitting one change feed batch."""

    received: int = 0
    inserted: int = 0
    skipped: int = 0
    failed: int = 0
    eligible: int = 0
