"""
Type definitions for the build queue.
Contains input/output type definitions for all functions, grouped by module.
"""

from buildqueue.types.api import (
    EnqueueRequest,
    HealthResponse,
    QueueEntryResponse,
    QueueListResponse,
)
from buildqueue.types.build import (
    BuildContext,
    BuildResult,
    DrainReport,
    EntryResult,
    IngestReport,
)
from buildqueue.types.events import ChangeEvent

__all__ = [
    # API types
    "EnqueueRequest",
    "QueueEntryResponse",
    "QueueListResponse",
    "HealthResponse",
    # Build types
    "BuildContext",
    "BuildResult",
    "EntryResult",
    "DrainReport",
    "IngestReport",
    # Event types
    "ChangeEvent",
]
