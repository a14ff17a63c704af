"""Prometheus metrics for the record store."""

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

from redis_schema import __version__


class MetricsRegistry:
    """Registry of all record store metrics."""

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        """Initialize metrics registry."""
        self._registry = registry or REGISTRY

        # Operation metrics
        self.operations_total = Counter(
            "redis_schema_operations_total",
            "Total number of record store operations",
            ["table", "operation", "status"],  # status: success, error
            registry=self._registry,
        )

        self.operation_latency_seconds = Histogram(
            "redis_schema_operation_latency_seconds",
            "Record store operation latency in seconds",
            ["operation"],
            buckets=(0.0005, 0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
            registry=self._registry,
        )

        self.records_affected_total = Counter(
            "redis_schema_records_affected_total",
            "Records created, updated or destroyed",
            ["table", "operation"],
            registry=self._registry,
        )

        # Batch metrics
        self.atomic_batches_total = Counter(
            "redis_schema_atomic_batches_total",
            "Atomic (MULTI/EXEC) batches issued",
            ["table", "operation"],
            registry=self._registry,
        )

        # Index metrics
        self.index_mutations_total = Counter(
            "redis_schema_index_mutations_total",
            "Index set memberships added or removed",
            ["table", "kind"],  # kind: add, remove
            registry=self._registry,
        )

        self.index_lookups_total = Counter(
            "redis_schema_index_lookups_total",
            "Filters resolved through index sets",
            ["table", "column"],
            registry=self._registry,
        )

        # Drop metrics
        self.dropped_keys_total = Counter(
            "redis_schema_dropped_keys_total",
            "Keys deleted by table drops",
            ["table"],
            registry=self._registry,
        )

        self.tables_registered = Gauge(
            "redis_schema_tables_registered",
            "Tables currently registered across datastores",
            registry=self._registry,
        )

        # Library info
        self.info = Info(
            "redis_schema",
            "Record store information",
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
    # Collectors can only be registered once per registry
    if _metrics is None or registry is not None:
        _metrics = MetricsRegistry(registry)

    _metrics.info.info({
        "version": __version__,
    })

    # Start HTTP server for Prometheus scraping
    start_http_server(port, registry=registry or REGISTRY)

    return _metrics


def get_metrics() -> MetricsRegistry:
    """Get the global metrics registry."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsRegistry()
    return _metrics
