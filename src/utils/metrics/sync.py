"""
Metrics for synchronization runs.

Tracks runs, table drops and creations, copied rows, installed triggers and
errors, so a scraped or textfile-collected run can be alerted on.
"""

import logging
from typing import Optional

from prometheus_client import (
    Counter,
    Gauge,
    Histogram,
    CollectorRegistry,
    REGISTRY,
)

logger = logging.getLogger(__name__)


class SyncMetrics:
    """
    Metrics for synchronization runs

    One instance per registry; metric names are unique within a registry.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        """
        Initialize sync metrics

        Args:
            registry: Custom Prometheus registry (default: global REGISTRY)
        """
        self.registry = registry or REGISTRY

        # Run metrics
        self.runs_total = Counter(
            "sync_runs_total",
            "Total number of synchronization runs",
            ["status"],
            registry=self.registry,
        )

        self.run_duration_seconds = Histogram(
            "sync_run_duration_seconds",
            "Duration of synchronization runs in seconds",
            buckets=(1, 5, 10, 30, 60, 120, 300, 600, 1800, 3600),
            registry=self.registry,
        )

        self.last_run_timestamp = Gauge(
            "sync_last_run_timestamp",
            "Timestamp of the last finished synchronization run",
            registry=self.registry,
        )

        # Schema metrics
        self.tables_dropped_total = Counter(
            "sync_tables_dropped_total",
            "Total number of destination tables dropped",
            registry=self.registry,
        )

        self.tables_created_total = Counter(
            "sync_tables_created_total",
            "Total number of destination tables created",
            registry=self.registry,
        )

        # Data metrics
        self.rows_copied_total = Counter(
            "sync_rows_copied_total",
            "Total number of rows copied into the destination",
            ["table_name"],
            registry=self.registry,
        )

        # Trigger metrics
        self.triggers_installed_total = Counter(
            "sync_triggers_installed_total",
            "Total number of replication triggers installed on the origin",
            ["table_name", "operation"],
            registry=self.registry,
        )

        self.errors_total = Counter(
            "sync_errors_total",
            "Total number of failed synchronization runs by error type",
            ["error_type"],
            registry=self.registry,
        )

    def record_run(self, success: bool, duration: float) -> None:
        """
        Record a finished run

        Args:
            success: Whether the run reached DONE
            duration: Duration in seconds
        """
        status = "success" if success else "failed"

        self.runs_total.labels(status=status).inc()
        self.run_duration_seconds.observe(duration)
        self.last_run_timestamp.set_to_current_time()

        logger.debug(f"Recorded sync run: status={status}, duration={duration:.2f}s")

    def record_table_dropped(self, table_name: str) -> None:
        self.tables_dropped_total.inc()

    def record_table_created(self, table_name: str) -> None:
        self.tables_created_total.inc()

    def record_rows_copied(self, table_name: str, rows: int) -> None:
        if rows:
            self.rows_copied_total.labels(table_name=table_name).inc(rows)

    def record_trigger_installed(self, table_name: str, operation: str) -> None:
        self.triggers_installed_total.labels(
            table_name=table_name,
            operation=operation,
        ).inc()

    def record_error(self, error: BaseException) -> None:
        """Count a run failure under the exception's class name."""
        self.errors_total.labels(error_type=type(error).__name__).inc()
