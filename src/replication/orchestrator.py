"""
Top-level synchronization run.

Opens both connections, reconciles the destination schema (copying data into
every table it creates), optionally installs replication triggers on the
origin, and closes both connections on every exit path.

State progression:

    IDLE -> CONNECTING_ORIGIN -> CONNECTING_DESTINATION -> RECONCILING
         -> (CREATING -> COPYING)* -> SYNTHESIZING_TRIGGERS*
         -> CLOSING_CONNECTIONS -> DONE

FAILED can be entered from any step; the run then still passes through
CLOSING_CONNECTIONS before the error is re-raised.
"""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

import pymysql
from opentelemetry import trace

from utils.tracing import add_span_attributes, trace_operation

from .config import EndpointConfig, SyncConfig
from .data import DataMigrator
from .errors import SyncConnectionError, SyncError
from .schema import ReconcileResult, SchemaReconciler
from .triggers import TriggerSynthesizer

logger = logging.getLogger(__name__)


class SyncState(str, Enum):
    IDLE = "IDLE"
    CONNECTING_ORIGIN = "CONNECTING_ORIGIN"
    CONNECTING_DESTINATION = "CONNECTING_DESTINATION"
    RECONCILING = "RECONCILING"
    CREATING = "CREATING"
    COPYING = "COPYING"
    SYNTHESIZING_TRIGGERS = "SYNTHESIZING_TRIGGERS"
    CLOSING_CONNECTIONS = "CLOSING_CONNECTIONS"
    DONE = "DONE"
    FAILED = "FAILED"


@dataclass
class SyncResult:
    """Outcome of one run."""

    state: SyncState = SyncState.IDLE
    reconcile: ReconcileResult | None = None
    triggers_installed: dict[str, list[str]] = field(default_factory=dict)
    started_at: datetime | None = None
    finished_at: datetime | None = None
    error: BaseException | None = None
    history: list[SyncState] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.state is SyncState.DONE

    @property
    def duration_seconds(self) -> float:
        if self.started_at is None or self.finished_at is None:
            return 0.0
        return (self.finished_at - self.started_at).total_seconds()

    def to_dict(self) -> dict[str, Any]:
        if isinstance(self.error, SyncError):
            error = self.error.to_dict()
        elif self.error is not None:
            error = {"type": type(self.error).__name__, "message": str(self.error)}
        else:
            error = None

        return {
            "state": self.state.value,
            "succeeded": self.succeeded,
            "reconcile": self.reconcile.to_dict() if self.reconcile else None,
            "triggers_installed": self.triggers_installed,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "duration_seconds": round(self.duration_seconds, 3),
            "error": error,
            "history": [state.value for state in self.history],
        }


def connect_endpoint(config: EndpointConfig, name: str, strict_identifiers: bool = True) -> Any:
    """Open a MySQL endpoint for one side of the run."""
    return config.to_endpoint(name, strict_identifiers).connect()


class SyncOrchestrator:
    """
    Runs one synchronization between an origin and a destination database.

    An orchestrator instance runs at most once. After a failed run the
    partial SyncResult stays available as `result`.

    Usage:
        orchestrator = SyncOrchestrator(config, metrics=SyncMetrics())
        result = orchestrator.run()
    """

    def __init__(
        self,
        config: SyncConfig,
        connect: Callable[[EndpointConfig, str, bool], Any] | None = None,
        metrics: Any = None,
    ):
        """
        Initialize orchestrator

        Args:
            config: Run configuration
            connect: Opens an endpoint from (config, name, strict_identifiers);
                defaults to a PyMySQL-backed MySQLEndpoint
            metrics: Optional SyncMetrics
        """
        self.config = config
        self.connect = connect or connect_endpoint
        self.metrics = metrics
        self.state = SyncState.IDLE
        self.history: list[SyncState] = [SyncState.IDLE]
        self._origin: Any = None
        self._destination: Any = None
        self._started = False
        self._torn_down = False
        self.result: SyncResult | None = None

    def _transition(self, state: SyncState) -> None:
        logger.debug(f"{self.state.value} -> {state.value}")
        self.state = state
        self.history.append(state)

    def _on_step(self, step: str, table: str) -> None:
        self._transition(SyncState.CREATING if step == "creating" else SyncState.COPYING)

    def run(self) -> SyncResult:
        """
        Run the synchronization.

        Returns:
            SyncResult in state DONE

        Raises:
            RuntimeError: If this orchestrator already ran
            SyncError: Any failure, after both connections were closed
            ValueError: A table or column name failed the allowlist check
        """
        if self._started:
            raise RuntimeError("SyncOrchestrator.run() can only be called once")
        self._started = True

        result = SyncResult(started_at=datetime.now(UTC), history=self.history)
        self.result = result
        start_time = time.time()

        with trace_operation(
            "sync_run",
            kind=trace.SpanKind.INTERNAL,
            origin_database=self.config.origin.database,
            destination_database=self.config.destination.database,
        ):
            try:
                self._execute(result)
            except BaseException as e:
                self._transition(SyncState.FAILED)
                result.error = e
                logger.error(f"Sync failed: {e}")
                if self.metrics is not None:
                    self.metrics.record_error(e)
                raise
            finally:
                self._teardown()
                if result.error is not None:
                    self.state = SyncState.FAILED
                    self._finish(result, start_time)

            self._transition(SyncState.DONE)
            self._finish(result, start_time)
            add_span_attributes(
                tables_created=len(result.reconcile.created),
                tables_dropped=len(result.reconcile.dropped),
                rows_copied=result.reconcile.total_rows_copied,
            )

        logger.info(f"Sync finished in {result.duration_seconds:.2f}s")
        return result

    def _execute(self, result: SyncResult) -> None:
        config = self.config
        strict = config.strict_identifiers

        self._transition(SyncState.CONNECTING_ORIGIN)
        self._origin = self._open(config.origin, "origin")

        self._transition(SyncState.CONNECTING_DESTINATION)
        self._destination = self._open(config.destination, "destination")

        if config.disable_foreign_key_checks:
            self._disable_foreign_key_checks()

        self._transition(SyncState.RECONCILING)
        migrator = DataMigrator(
            self._origin,
            self._destination,
            fallback_date=config.fallback_date,
            batch_size=config.copy_batch_size,
            strict_identifiers=strict,
            metrics=self.metrics,
        )
        reconciler = SchemaReconciler(
            self._origin,
            self._destination,
            migrator,
            strict_identifiers=strict,
            metrics=self.metrics,
            on_step=self._on_step,
            validate_trigger_names=config.install_origin_triggers,
        )
        result.reconcile = reconciler.reconcile()

        if not config.install_origin_triggers:
            logger.info("Origin trigger installation disabled")
            return

        synthesizer = TriggerSynthesizer(
            self._origin,
            self._destination.database,
            replace_existing=config.replace_existing_triggers,
            strict_identifiers=strict,
            metrics=self.metrics,
        )
        for table in result.reconcile.origin_tables:
            self._transition(SyncState.SYNTHESIZING_TRIGGERS)
            specs = synthesizer.install_triggers(table)
            result.triggers_installed[table] = [spec.operation.value for spec in specs]

    def _open(self, endpoint_config: EndpointConfig, name: str) -> Any:
        logger.info(f"Connecting to {name} {endpoint_config.describe()}")
        try:
            return self.connect(endpoint_config, name, self.config.strict_identifiers)
        except (pymysql.err.MySQLError, OSError) as e:
            raise SyncConnectionError(
                f"Could not connect to {name} database {endpoint_config.database} "
                f"at {endpoint_config.host}:{endpoint_config.port}",
                operation="connect",
                cause=e,
            ) from e

    def _disable_foreign_key_checks(self) -> None:
        try:
            self._destination.execute("SET FOREIGN_KEY_CHECKS = 0")
        except pymysql.err.MySQLError as e:
            raise SyncError(
                "Could not disable foreign key checks on destination session",
                operation="set_foreign_key_checks",
                cause=e,
            ) from e

    def _teardown(self) -> None:
        """Close whatever was opened. Close errors are logged, never raised."""
        if self._torn_down:
            return
        self._torn_down = True
        self._transition(SyncState.CLOSING_CONNECTIONS)
        for name, endpoint in (("origin", self._origin), ("destination", self._destination)):
            if endpoint is None:
                continue
            try:
                endpoint.close()
            except Exception as e:
                logger.warning(f"Error closing {name} connection: {e}")
        self._origin = None
        self._destination = None

    def _finish(self, result: SyncResult, start_time: float) -> None:
        result.state = self.state
        result.finished_at = datetime.now(UTC)
        if self.metrics is not None:
            self.metrics.record_run(
                success=result.state is SyncState.DONE,
                duration=time.time() - start_time,
            )
