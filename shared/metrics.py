"""
Shared metrics configuration for the dashboard sync layer.
"""

from typing import Optional
import time
from contextlib import contextmanager

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram


class SyncMetrics:
    """Prometheus collectors for cache, notification and write activity.

    Each instance owns its registry unless one is supplied, so several stores
    can live in one process (and one test session) without name clashes.
    """

    def __init__(self, namespace: str = "dashboard_sync", registry: Optional[CollectorRegistry] = None):
        self.namespace = namespace
        self.registry = registry if registry is not None else CollectorRegistry()
        self._setup_metrics()

    def _setup_metrics(self):
        """Set up the sync layer collectors."""
        self.fetches_total = Counter(
            "fetches_total",
            "Fetches by outcome",
            ["key", "outcome"],
            namespace=self.namespace,
            registry=self.registry
        )

        self.fetch_duration_seconds = Histogram(
            "fetch_duration_seconds",
            "Duration of fetcher calls in seconds",
            ["key"],
            namespace=self.namespace,
            registry=self.registry
        )

        self.mutations_total = Counter(
            "mutations_total",
            "Local mutations applied",
            ["key"],
            namespace=self.namespace,
            registry=self.registry
        )

        self.notifications_total = Counter(
            "notifications_total",
            "Subscriber callbacks invoked",
            ["key"],
            namespace=self.namespace,
            registry=self.registry
        )

        self.subscriber_errors_total = Counter(
            "subscriber_errors_total",
            "Subscriber callbacks that raised",
            ["key"],
            namespace=self.namespace,
            registry=self.registry
        )

        self.optimistic_writes_total = Counter(
            "optimistic_writes_total",
            "Optimistic remote writes by outcome",
            ["key", "outcome"],
            namespace=self.namespace,
            registry=self.registry
        )

        self.entries = Gauge(
            "entries",
            "Cache entries currently held",
            namespace=self.namespace,
            registry=self.registry
        )

    def record_fetch(self, key: str, outcome: str):
        """Record a fetch outcome: started, applied, failed or superseded."""
        self.fetches_total.labels(key=key, outcome=outcome).inc()

    @contextmanager
    def time_fetch(self, key: str):
        """Time a fetcher call."""
        start = time.perf_counter()
        try:
            yield
        finally:
            self.fetch_duration_seconds.labels(key=key).observe(time.perf_counter() - start)

    def record_mutation(self, key: str):
        self.mutations_total.labels(key=key).inc()

    def record_notification(self, key: str):
        self.notifications_total.labels(key=key).inc()

    def record_subscriber_error(self, key: str):
        self.subscriber_errors_total.labels(key=key).inc()

    def record_write(self, key: str, outcome: str):
        """Record an optimistic write outcome: committed or rolled_back."""
        self.optimistic_writes_total.labels(key=key, outcome=outcome).inc()

    def set_entry_count(self, count: int):
        self.entries.set(count)

    def sample(self, name: str, **labels) -> float:
        """Read back a sample value, 0.0 when absent."""
        value = self.registry.get_sample_value(f"{self.namespace}_{name}", labels or None)
        return value or 0.0
