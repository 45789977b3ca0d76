"""Prometheus metrics for the storage engine and payment service."""

from __future__ import annotations

from prometheus_client import (
    Counter,
    Gauge,
    Histogram,
    Info,
    start_http_server,
    REGISTRY,
    CollectorRegistry,
)


class MetricsRegistry:
    """Registry of all ExPay metrics."""

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        """Initialize metrics registry."""
        self._registry = registry or REGISTRY

        # Bucket operation metrics
        self.operations_total = Counter(
            "expay_bucket_operations_total",
            "Total number of bucket operations",
            ["bucket", "operation", "status"],  # status: success, error
            registry=self._registry,
        )

        self.operation_latency_seconds = Histogram(
            "expay_bucket_operation_latency_seconds",
            "Bucket operation latency in seconds",
            ["operation"],  # create, get, update, delete, list
            buckets=(0.0005, 0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0),
            registry=self._registry,
        )

        self.ids_allocated_total = Counter(
            "expay_ids_allocated_total",
            "Total number of record ids allocated",
            ["bucket"],
            registry=self._registry,
        )

        # Transaction metrics
        self.transactions_total = Counter(
            "expay_transactions_total",
            "Total number of storage transactions",
            ["mode", "status"],  # mode: read, write; status: commit, rollback
            registry=self._registry,
        )

        # Open readers pin old versions of the store; a steadily growing
        # value usually means an iterator is never closed.
        self.read_transactions_open = Gauge(
            "expay_read_transactions_open",
            "Number of open read transactions (including iterators)",
            registry=self._registry,
        )

        # HTTP metrics
        self.http_requests_total = Counter(
            "expay_http_requests_total",
            "Total HTTP requests handled",
            ["method", "status_code"],
            registry=self._registry,
        )

        # Server info
        self.info = Info(
            "expay",
            "ExPay service information",
            registry=self._registry,
        )


# Global metrics registry
_metrics: MetricsRegistry | None = None


def setup_metrics(port: int = 8001, registry: CollectorRegistry | None = None) -> MetricsRegistry:
    """
    Set up Prometheus metrics server.

    Args:
        port: Port for the metrics HTTP server
        registry: Optional custom registry

    Returns:
        The metrics registry
    """
    global _metrics
    _metrics = MetricsRegistry(registry)

    from expay import __version__
    _metrics.info.info({
        "version": __version__,
    })

    start_http_server(port, registry=registry or REGISTRY)

    return _metrics


def get_metrics() -> MetricsRegistry:
    """Get the global metrics registry."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsRegistry()
    return _metrics
