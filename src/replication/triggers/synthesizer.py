"""
Replication trigger synthesis.

For every origin table three AFTER ... FOR EACH ROW triggers are created that
mirror INSERT, UPDATE and DELETE into the destination database.

Two strategies:

- keyed: the table has a primary key. Each trigger touches only the affected
  row, located by its key columns.
- full mirror: no primary key, so there is no way to locate a single row.
  Every trigger empties the destination table and copies the whole origin
  table again. Only suitable for small or rarely written tables.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

import pymysql
from opentelemetry import trace

from utils.sql_safety import quote_identifier, quote_qualified
from utils.tracing import trace_operation

from ..errors import SchemaIntrospectionError, TriggerInstallError

logger = logging.getLogger(__name__)


class TriggerOperation(str, Enum):
    """Row event a trigger fires on."""

    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class TriggerStrategy(str, Enum):
    KEYED = "keyed"
    FULL_MIRROR = "full_mirror"


@dataclass(frozen=True)
class TriggerSpec:
    """A CREATE TRIGGER statement for one table and operation."""

    table: str
    operation: TriggerOperation
    name: str
    sql: str

    @property
    def drop_sql(self) -> str:
        return f"DROP TRIGGER IF EXISTS {quote_identifier(self.name, strict=False)}"


def trigger_name(table: str, operation: TriggerOperation) -> str:
    """<table>_insert, <table>_update, <table>_delete"""
    return f"{table}_{operation.value.lower()}"


def check_trigger_names(table: str, strict_identifiers: bool = True) -> None:
    """
    Validate the three trigger names derived from a table name.

    A table name close to the 64 character limit is valid on its own but
    yields trigger names that are not.

    Raises:
        TriggerInstallError: Naming the table and the first failing operation
    """
    for operation in TriggerOperation:
        name = trigger_name(table, operation)
        try:
            quote_identifier(name, strict_identifiers)
        except ValueError as e:
            raise TriggerInstallError(
                f"Invalid trigger name {name!r}",
                table=table,
                operation=operation.value,
                cause=e,
            ) from e


def _key_predicate(key_columns: list[str], row_alias: str, strict: bool) -> str:
    return " AND ".join(
        f"{quote_identifier(column, strict)} = {row_alias}.{quote_identifier(column, strict)}"
        for column in key_columns
    )


def _create_trigger(
    name: str,
    operation: TriggerOperation,
    origin_table: str,
    statements: list[str],
    strict: bool,
) -> str:
    body = "\n".join(f"    {statement};" for statement in statements)
    return (
        f"CREATE TRIGGER {quote_identifier(name, strict)} "
        f"AFTER {operation.value} ON {origin_table}\n"
        f"FOR EACH ROW\n"
        f"BEGIN\n"
        f"{body}\n"
        f"END"
    )


def build_trigger_specs(
    origin_db: str,
    destination_db: str,
    table: str,
    key_columns: list[str] | None = None,
    strict_identifiers: bool = True,
) -> list[TriggerSpec]:
    """
    Build the INSERT, UPDATE and DELETE trigger specs for a table.

    Args:
        origin_db: Database the triggers are created in
        destination_db: Database the changes are mirrored to
        table: Table name (same on both sides)
        key_columns: Primary key columns in key order; empty or None selects
            the full-mirror strategy
        strict_identifiers: Apply the identifier allowlist

    Returns:
        Three TriggerSpecs, in INSERT, UPDATE, DELETE order
    """
    strict = strict_identifiers
    origin_table = quote_qualified(origin_db, table, strict)
    destination_table = quote_qualified(destination_db, table, strict)

    copy_all = f"INSERT INTO {destination_table} SELECT * FROM {origin_table}"
    empty_destination = f"DELETE FROM {destination_table}"

    if key_columns:
        new_key = _key_predicate(key_columns, "NEW", strict)
        old_key = _key_predicate(key_columns, "OLD", strict)
        copy_new_row = f"{copy_all} WHERE {new_key}"

        statements = {
            TriggerOperation.INSERT: [copy_new_row],
            TriggerOperation.UPDATE: [
                f"{empty_destination} WHERE {old_key}",
                copy_new_row,
            ],
            TriggerOperation.DELETE: [f"{empty_destination} WHERE {old_key}"],
        }
    else:
        mirror = [empty_destination, copy_all]
        statements = {
            TriggerOperation.INSERT: mirror,
            TriggerOperation.UPDATE: mirror,
            TriggerOperation.DELETE: mirror,
        }

    specs = []
    for operation in TriggerOperation:
        name = trigger_name(table, operation)
        specs.append(
            TriggerSpec(
                table=table,
                operation=operation,
                name=name,
                sql=_create_trigger(name, operation, origin_table, statements[operation], strict),
            )
        )
    return specs


def render_trigger_script(specs: list[TriggerSpec], replace_existing: bool = False) -> str:
    """
    Render trigger specs as a script runnable with the mysql client.

    Bodies contain semicolons, so the script switches the client delimiter.
    """
    lines = ["DELIMITER $$", ""]
    for spec in specs:
        lines.append(f"-- {spec.operation.value} trigger for {spec.table}")
        if replace_existing:
            lines.append(f"{spec.drop_sql}$$")
        lines.append(f"{spec.sql}$$")
        lines.append("")
    lines.append("DELIMITER ;")
    return "\n".join(lines) + "\n"


class TriggerSynthesizer:
    """Installs replication triggers on the origin database."""

    def __init__(
        self,
        origin: Any,
        destination_db: str,
        replace_existing: bool = False,
        strict_identifiers: bool = True,
        metrics: Any = None,
    ):
        """
        Initialize synthesizer

        Args:
            origin: Origin endpoint; triggers are created through it
            destination_db: Database the triggers write into
            replace_existing: Drop same-named triggers before creating
            strict_identifiers: Apply the identifier allowlist
            metrics: Optional SyncMetrics
        """
        self.origin = origin
        self.destination_db = destination_db
        self.replace_existing = replace_existing
        self.strict_identifiers = strict_identifiers
        self.metrics = metrics

    def get_primary_key_columns(self, table: str) -> list[str]:
        """Primary key columns of an origin table, in column order."""
        try:
            columns = self.origin.list_columns(table)
        except pymysql.err.MySQLError as e:
            raise SchemaIntrospectionError(
                "Could not read column metadata",
                table=table,
                operation="list_columns",
                cause=e,
            ) from e
        return [column.name for column in columns if column.is_primary_key]

    def has_primary_key(self, table: str) -> bool:
        return bool(self.get_primary_key_columns(table))

    def build_specs(self, table: str) -> list[TriggerSpec]:
        return build_trigger_specs(
            self.origin.database,
            self.destination_db,
            table,
            self.get_primary_key_columns(table),
            self.strict_identifiers,
        )

    def install_triggers(self, table: str) -> list[TriggerSpec]:
        """
        Create the three replication triggers for a table on the origin.

        Returns:
            The installed specs

        Raises:
            TriggerInstallError: If a derived trigger name is invalid or a
                trigger cannot be created; triggers created before the
                failure are left in place
        """
        check_trigger_names(table, self.strict_identifiers)

        with trace_operation(
            "install_triggers",
            kind=trace.SpanKind.INTERNAL,
            table=table,
        ) as span:
            key_columns = self.get_primary_key_columns(table)
            strategy = TriggerStrategy.KEYED if key_columns else TriggerStrategy.FULL_MIRROR
            span.set_attribute("trigger.strategy", strategy.value)

            if strategy is TriggerStrategy.FULL_MIRROR:
                logger.warning(
                    f"Table {table} has no primary key; every change will "
                    f"re-copy the whole table"
                )

            specs = build_trigger_specs(
                self.origin.database,
                self.destination_db,
                table,
                key_columns,
                self.strict_identifiers,
            )

            for spec in specs:
                self._execute(spec)

            logger.info(
                f"Installed {len(specs)} triggers on {table} ({strategy.value})"
            )
            return specs

    def _execute(self, spec: TriggerSpec) -> None:
        try:
            if self.replace_existing:
                self.origin.execute(spec.drop_sql)
            self.origin.execute(spec.sql)
        except pymysql.err.MySQLError as e:
            raise TriggerInstallError(
                f"Could not create trigger {spec.name}",
                table=spec.table,
                operation=spec.operation.value,
                cause=e,
            ) from e

        if self.metrics is not None:
            self.metrics.record_trigger_installed(spec.table, spec.operation.value)
