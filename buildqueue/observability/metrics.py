"""
Prometheus metrics collection.
"""

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

from buildqueue.constants import (
    METRIC_API_LATENCY,
    METRIC_API_REQUESTS,
    METRIC_BUILD_DURATION,
    METRIC_BUILDS_COMPLETED,
    METRIC_ENTRIES_INGESTED,
    METRIC_QUEUE_ELIGIBLE,
    METRIC_QUEUE_STALLED,
)

# Global metrics instance
_metrics: "MetricsCollector | None" = None


class MetricsCollector:
    """
    Prometheus metrics collector for the build queue.

    Collects metrics for:
    - Eligible and stalled queue sizes
    - Change events admitted or skipped
    - Build outcomes and durations
    - API requests
    """

    def __init__(self, registry: CollectorRegistry | None = None):
        """
        Initialize the metrics collector.

        Args:
            registry: Optional custom registry. Uses default if not provided.
        """
        self._registry = registry or REGISTRY

        self.queue_eligible = Gauge(
            METRIC_QUEUE_ELIGIBLE,
            "Number of queue entries still eligible for a build",
            registry=self._registry,
        )

        # Stalled entries need manual intervention
        self.queue_stalled = Gauge(
            METRIC_QUEUE_STALLED,
            "Number of queue entries past the retry ceiling",
            registry=self._registry,
        )

        self.entries_ingested = Counter(
            METRIC_ENTRIES_INGESTED,
            "Total number of change events processed by the ingester",
            ["kind", "result"],
            registry=self._registry,
        )

        self.builds_completed = Counter(
            METRIC_BUILDS_COMPLETED,
            "Total number of resolved build attempts",
            ["outcome"],
            registry=self._registry,
        )

        self.build_duration = Histogram(
            METRIC_BUILD_DURATION,
            "Build step duration in seconds",
            ["outcome"],
            buckets=(1.0, 5.0, 15.0, 30.0, 60.0, 120.0, 300.0, 600.0, 1800.0),
            registry=self._registry,
        )

        self.api_requests = Counter(
            METRIC_API_REQUESTS,
            "Total number of API requests",
            ["method", "endpoint", "status"],
            registry=self._registry,
        )

        self.api_latency = Histogram(
            METRIC_API_LATENCY,
            "API request latency in seconds",
            ["method", "endpoint"],
            buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
            registry=self._registry,
        )

    def record_event_ingested(self, kind: str, result: str) -> None:
        """Record one change event and what the ingester did with it."""
        self.entries_ingested.labels(kind=kind, result=result).inc()

    def record_build_completed(self, outcome: str, duration_seconds: float) -> None:
        """Record a resolved build attempt."""
        self.builds_completed.labels(outcome=outcome).inc()
        self.build_duration.labels(outcome=outcome).observe(duration_seconds)

    def update_queue_sizes(self, eligible: int, stalled: int | None = None) -> None:
        """Update the eligible (and optionally stalled) queue gauges."""
        self.queue_eligible.set(eligible)
        if stalled is not None:
            self.queue_stalled.set(stalled)

    def record_api_request(
        self,
        method: str,
        endpoint: str,
        status: int,
        duration_seconds: float,
    ) -> None:
        """Record an API request."""
        self.api_requests.labels(
            method=method,
            endpoint=endpoint,
            status=str(status),
        ).inc()
        self.api_latency.labels(method=method, endpoint=endpoint).observe(
            duration_seconds
        )

    def get_metrics(self) -> bytes:
        """Get all metrics in Prometheus format."""
        return generate_latest(self._registry)

    def get_content_type(self) -> str:
        """Get the content type for metrics response."""
        return CONTENT_TYPE_LATEST


def setup_metrics() -> MetricsCollector:
    """
    Set up and return the metrics collector.

    Returns:
        MetricsCollector: The metrics collector instance.
    """
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics


def get_metrics() -> MetricsCollector:
    """
    Get the metrics collector instance, creating it on first use.

    Returns:
        MetricsCollector: The metrics collector instance.
    """
    if _metrics is None:
        return setup_metrics()
    return _metrics
