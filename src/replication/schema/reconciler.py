"""
Schema reconciliation between origin and destination.

Brings the destination's table set in line with the origin:

1. tables only in the destination are dropped (alphabetical order)
2. tables only in the origin are created from their normalized definition and
   then filled by the data migrator
3. tables present on both sides are left alone; no column or data drift is
   reconciled

Nothing is rolled back on failure: drops and creations already done by the
run stay in place and a later run skips the tables that now exist.
"""

import logging
from collections.abc import Callable
from dataclasses import asdict, dataclass, field
from typing import Any

import pymysql
from opentelemetry import trace

from utils.sql_safety import quote_identifier, quote_qualified
from utils.tracing import add_span_event, trace_operation

from ..ddl import build_create_statement, normalize_table_definition
from ..errors import DDLExecutionError, SchemaIntrospectionError
from ..triggers import check_trigger_names

logger = logging.getLogger(__name__)


@dataclass
class ReconcilePlan:
    """What a reconciliation would do, computed without side effects."""

    to_drop: list[str] = field(default_factory=list)
    to_create: list[str] = field(default_factory=list)
    unchanged: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.to_drop and not self.to_create

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class ReconcileResult:
    """What a reconciliation did. origin_tables keeps the enumeration order."""

    dropped: list[str] = field(default_factory=list)
    created: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    rows_copied: dict[str, int] = field(default_factory=dict)
    origin_tables: list[str] = field(default_factory=list)

    @property
    def total_rows_copied(self) -> int:
        return sum(self.rows_copied.values())

    def to_dict(self) -> dict[str, Any]:
        result = asdict(self)
        result["total_rows_copied"] = self.total_rows_copied
        return result


def diff_inventories(
    origin_tables: list[str],
    destination_tables: list[str],
) -> ReconcilePlan:
    """
    Compare two table inventories.

    Args:
        origin_tables: Origin tables in enumeration order
        destination_tables: Destination tables in enumeration order

    Returns:
        ReconcilePlan with drops sorted alphabetically and creations in
        origin order
    """
    origin_set = set(origin_tables)
    destination_set = set(destination_tables)

    return ReconcilePlan(
        to_drop=sorted(destination_set - origin_set),
        to_create=[t for t in origin_tables if t not in destination_set],
        unchanged=[t for t in origin_tables if t in destination_set],
    )


class SchemaReconciler:
    """
    Drops orphaned destination tables and creates missing ones.

    The data migrator is invoked right after each successful CREATE TABLE.
    """

    def __init__(
        self,
        origin: Any,
        destination: Any,
        migrator: Any,
        strict_identifiers: bool = True,
        metrics: Any = None,
        on_step: Callable[[str, str], None] | None = None,
        validate_trigger_names: bool = False,
    ):
        """
        Initialize reconciler

        Args:
            origin: Origin endpoint
            destination: Destination endpoint
            migrator: Object with copy_data(table) -> int
            strict_identifiers: Apply the identifier allowlist
            metrics: Optional SyncMetrics
            on_step: Called with ("creating" | "copying", table) before each
                per-table step
            validate_trigger_names: Also check the trigger names derived from
                every origin table before any DDL
        """
        self.origin = origin
        self.destination = destination
        self.migrator = migrator
        self.strict_identifiers = strict_identifiers
        self.metrics = metrics
        self.on_step = on_step
        self.validate_trigger_names = validate_trigger_names

    def list_inventory(self, endpoint: Any) -> list[str]:
        try:
            return endpoint.list_tables()
        except pymysql.err.MySQLError as e:
            raise SchemaIntrospectionError(
                f"Could not list tables of {endpoint.database}",
                operation="list_tables",
                cause=e,
            ) from e

    def plan(self) -> ReconcilePlan:
        """Compute the drop/create plan without touching either database."""
        return diff_inventories(
            self.list_inventory(self.origin),
            self.list_inventory(self.destination),
        )

    def reconcile(self) -> ReconcileResult:
        """
        Run the reconciliation.

        Raises:
            SchemaIntrospectionError: Listing tables or capturing a definition failed
            DDLExecutionError: A DROP or CREATE statement failed
            DataCopyError: Copying a newly created table failed
            ValueError: A table name failed the allowlist check; raised before
                any DROP or CREATE
            TriggerInstallError: With validate_trigger_names, a derived trigger
                name is invalid; raised before any DROP or CREATE
        """
        with trace_operation("reconcile_schema", kind=trace.SpanKind.INTERNAL) as span:
            origin_tables = self.list_inventory(self.origin)
            destination_tables = self.list_inventory(self.destination)
            plan = diff_inventories(origin_tables, destination_tables)
            self.check_identifiers(origin_tables + destination_tables)
            if self.validate_trigger_names:
                for table in origin_tables:
                    check_trigger_names(table, self.strict_identifiers)

            span.set_attribute("tables.origin", len(origin_tables))
            span.set_attribute("tables.to_drop", len(plan.to_drop))
            span.set_attribute("tables.to_create", len(plan.to_create))
            logger.info(
                f"Origin has {len(origin_tables)} tables, destination has "
                f"{len(destination_tables)}; {len(plan.to_drop)} to drop, "
                f"{len(plan.to_create)} to create"
            )

            result = ReconcileResult(origin_tables=list(origin_tables))

            for table in plan.to_drop:
                self.drop_table(table)
                result.dropped.append(table)

            for table in origin_tables:
                if self.table_exists_in_destination(table):
                    logger.debug(f"Table {table} already exists in destination, skipping")
                    result.skipped.append(table)
                    continue

                self._notify("creating", table)
                self.create_table(table)
                result.created.append(table)

                self._notify("copying", table)
                result.rows_copied[table] = self.migrator.copy_data(table)

            logger.info(
                f"Schema reconciled: {len(result.dropped)} dropped, "
                f"{len(result.created)} created, {len(result.skipped)} unchanged, "
                f"{result.total_rows_copied} rows copied"
            )
            return result

    def table_exists_in_destination(self, table: str) -> bool:
        try:
            return self.destination.table_exists(table)
        except pymysql.err.MySQLError as e:
            raise SchemaIntrospectionError(
                "Could not check whether the destination table exists",
                table=table,
                operation="table_exists",
                cause=e,
            ) from e

    def drop_table(self, table: str) -> None:
        """Drop a destination table that no longer exists in the origin."""
        sql = f"DROP TABLE {quote_qualified(self.destination.database, table, self.strict_identifiers)}"
        try:
            self.destination.execute(sql)
        except pymysql.err.MySQLError as e:
            raise DDLExecutionError(
                "Could not drop destination table",
                table=table,
                operation="drop_table",
                cause=e,
            ) from e

        add_span_event("table_dropped", table=table)
        if self.metrics is not None:
            self.metrics.record_table_dropped(table)
        logger.info(f"Dropped table {table} from destination")

    def capture_definition(self, table: str) -> str:
        """SHOW CREATE TABLE on the origin."""
        try:
            return self.origin.show_create_table(table)
        except (pymysql.err.MySQLError, LookupError) as e:
            raise SchemaIntrospectionError(
                "Could not capture origin table definition",
                table=table,
                operation="show_create_table",
                cause=e,
            ) from e

    def create_table(self, table: str) -> str:
        """
        Create a destination table from the normalized origin definition.

        Returns:
            The CREATE TABLE statement that was executed
        """
        definition = normalize_table_definition(self.capture_definition(table))
        sql = build_create_statement(
            self.destination.database, definition, self.strict_identifiers
        )

        try:
            self.destination.execute(sql)
        except pymysql.err.MySQLError as e:
            logger.debug(f"Failed statement: {sql}")
            raise DDLExecutionError(
                "Could not create destination table",
                table=table,
                operation="create_table",
                cause=e,
            ) from e

        add_span_event("table_created", table=table)
        if self.metrics is not None:
            self.metrics.record_table_created(table)
        logger.info(f"Created table {table} in destination")
        return sql

    def _notify(self, step: str, table: str) -> None:
        if self.on_step is not None:
            self.on_step(step, table)

    def check_identifiers(self, tables: list[str]) -> None:
        """Raise ValueError for any unsafe name before a statement is sent."""
        for table in tables:
            quote_identifier(table, self.strict_identifiers)
