"""
Application constants.
Centralized location for all constant values used across the application.
"""

from enum import StrEnum


class ChangeKind(StrEnum):
    """
    Known kinds of upstream registry change events.

    Feeds may send kinds not listed here; those are kept as plain strings.
    """

    ADDED = "added"
    UPDATED = "updated"
    YANKED = "yanked"
    UNYANKED = "unyanked"


class EntryOutcome(StrEnum):
    """
    Resolution of a single queue entry within a drain pass.

    State transitions:
    - PENDING(k) -> removed (BUILT)
    - PENDING(k < MAX_ATTEMPTS - 1) -> PENDING(k + 1) (FAILED)
    - PENDING(MAX_ATTEMPTS - 1) -> STALLED (terminal, never selected again)
    """

    BUILT = "built"
    FAILED = "failed"
    STALLED = "stalled"


# Retry ceiling: entries with attempt >= MAX_ATTEMPTS are never selected again
MAX_ATTEMPTS = 5

# API constants
API_V1_PREFIX = "/v1"

# Metrics names
METRIC_QUEUE_ELIGIBLE = "build_queue_eligible"
METRIC_QUEUE_STALLED = "build_queue_stalled"
METRIC_ENTRIES_INGESTED = "queue_entries_ingested_total"
METRIC_BUILDS_COMPLETED = "builds_completed_total"
METRIC_BUILD_DURATION = "build_duration_seconds"
METRIC_API_REQUESTS = "api_requests_total"
METRIC_API_LATENCY = "api_request_latency_seconds"

# Trace span names
SPAN_INGEST_CHANGES = "ingest_changes"
SPAN_DRAIN_QUEUE = "drain_queue"
SPAN_BUILD_PACKAGE = "build_package"
