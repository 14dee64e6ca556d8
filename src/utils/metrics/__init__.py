"""
Prometheus metrics for synchronization runs

Usage:
    from utils.metrics import SyncMetrics, MetricsPublisher

    registry = CollectorRegistry()
    metrics = SyncMetrics(registry=registry)
    MetricsPublisher(port=9091, registry=registry).start()

    metrics.record_table_created("customers")
    metrics.record_rows_copied("customers", 1200)
"""

import logging
from typing import Callable, TypeVar

from prometheus_client import CollectorRegistry, REGISTRY

from .publisher import MetricsPublisher, write_metrics_textfile
from .sync import SyncMetrics

logger = logging.getLogger(__name__)

T = TypeVar("T")


def get_or_create_metric(
    metric_factory: Callable[[], T],
    metric_name: str,
    registry: CollectorRegistry = REGISTRY,
) -> T:
    """
    Create a metric or return the one already registered under the name.

    Args:
        metric_factory: Callable that creates the metric (e.g., lambda: Counter(...))
        metric_name: Name of the metric for lookup if already registered
        registry: Prometheus registry to use (default: global REGISTRY)

    Returns:
        The metric instance (either newly created or existing)

    Example:
        DB_STATEMENT_TIME = get_or_create_metric(
            lambda: Histogram("mysql_statement_seconds", "...", ["endpoint"]),
            "mysql_statement_seconds"
        )
    """
    try:
        return metric_factory()
    except ValueError:
        # Already registered
        existing = registry._names_to_collectors.get(metric_name)
        if existing is not None:
            return existing
        raise


__all__ = [
    "SyncMetrics",
    "MetricsPublisher",
    "write_metrics_textfile",
    "get_or_create_metric",
]
