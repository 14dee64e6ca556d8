"""
Initial data copy for newly created destination tables.

Rows are read from the origin with a forward-only (unbuffered) cursor, passed
through the zero-date sanitizer, and written to the destination with a
parameterized INSERT in batches. Every value is bound as text; the destination
server coerces it to the column type.
"""

import logging
from typing import Any

import pymysql
from opentelemetry import trace

from utils.logging import ContextLogger
from utils.sql_safety import quote_columns, quote_qualified, validate_integer_param
from utils.tracing import add_span_attributes, trace_operation

from ..errors import DataCopyError, SchemaIntrospectionError
from .sanitizer import DEFAULT_FALLBACK_DATE, sanitize_row

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 500


def build_insert_statement(
    database: str,
    table: str,
    columns: list[str],
    strict_identifiers: bool = True,
) -> str:
    """
    Build a parameterized INSERT with one positional placeholder per column.

    Args:
        database: Destination database
        table: Table name
        columns: Column names in table order
        strict_identifiers: Apply the identifier allowlist

    Returns:
        INSERT statement using the driver's %s placeholders
    """
    target = quote_qualified(database, table, strict_identifiers)
    column_list = quote_columns(columns, strict_identifiers)
    # The driver interpolates with %, so literal percent signs in quoted
    # identifiers must be doubled.
    prefix = f"INSERT INTO {target} ({column_list})".replace("%", "%%")
    placeholders = ", ".join(["%s"] * len(columns))
    return f"{prefix} VALUES ({placeholders})"


def build_select_statement(
    database: str,
    table: str,
    columns: list[str],
    strict_identifiers: bool = True,
) -> str:
    """SELECT listing the columns explicitly so row order matches the INSERT."""
    source = quote_qualified(database, table, strict_identifiers)
    return f"SELECT {quote_columns(columns, strict_identifiers)} FROM {source}"


class DataMigrator:
    """
    Copies all origin rows of a table into its freshly created destination twin.

    Only called for tables the reconciler has just created; tables that
    already existed in the destination are never copied into.
    """

    def __init__(
        self,
        origin: Any,
        destination: Any,
        fallback_date: str = DEFAULT_FALLBACK_DATE,
        batch_size: int = DEFAULT_BATCH_SIZE,
        strict_identifiers: bool = True,
        metrics: Any = None,
    ):
        """
        Initialize migrator

        Args:
            origin: Origin endpoint (see utils.db.MySQLEndpoint)
            destination: Destination endpoint
            fallback_date: Replacement for zero-date values
            batch_size: Rows sent per bulk insert
            strict_identifiers: Apply the identifier allowlist
            metrics: Optional SyncMetrics
        """
        validate_integer_param(batch_size, "batch_size", min_value=1)

        self.origin = origin
        self.destination = destination
        self.fallback_date = fallback_date
        self.batch_size = batch_size
        self.strict_identifiers = strict_identifiers
        self.metrics = metrics

    def get_column_names(self, table: str) -> list[str]:
        """Origin column names in table order."""
        try:
            return [column.name for column in self.origin.list_columns(table)]
        except pymysql.err.MySQLError as e:
            raise SchemaIntrospectionError(
                "Could not list origin columns",
                table=table,
                operation="list_columns",
                cause=e,
            ) from e

    def copy_data(self, table: str) -> int:
        """
        Copy every origin row of a table into the destination.

        Args:
            table: Table name (same in origin and destination)

        Returns:
            Number of rows inserted

        Raises:
            SchemaIntrospectionError: If origin columns cannot be listed
            DataCopyError: If the read or any insert fails; the copy stops at
                the failing batch
        """
        table_logger = ContextLogger(__name__, table_name=table)

        with trace_operation(
            "copy_table_data",
            kind=trace.SpanKind.INTERNAL,
            table=table,
            batch_size=self.batch_size,
        ):
            columns = self.get_column_names(table)
            if not columns:
                table_logger.warning("Table has no columns, nothing to copy")
                return 0

            insert_sql = build_insert_statement(
                self.destination.database, table, columns, self.strict_identifiers
            )
            select_sql = build_select_statement(
                self.origin.database, table, columns, self.strict_identifiers
            )

            rows_copied = 0
            try:
                with self.destination.prepare(insert_sql) as statement, \
                        self.origin.stream(select_sql) as cursor:
                    while True:
                        try:
                            batch = cursor.fetchmany(self.batch_size)
                        except pymysql.err.MySQLError as e:
                            raise DataCopyError(
                                f"Failed reading origin rows after {rows_copied} rows",
                                table=table,
                                operation="read",
                                cause=e,
                            ) from e

                        if not batch:
                            break

                        values = [self._bind_values(row, columns) for row in batch]
                        try:
                            statement.execute_many(values)
                        except pymysql.err.MySQLError as e:
                            raise DataCopyError(
                                f"Failed inserting rows {rows_copied + 1}-"
                                f"{rows_copied + len(values)} into destination",
                                table=table,
                                operation="insert",
                                cause=e,
                            ) from e

                        rows_copied += len(values)
                        table_logger.debug("Copied batch", rows_copied=rows_copied)
            except pymysql.err.MySQLError as e:
                # Prepare or the initial SELECT failed
                raise DataCopyError(
                    "Failed starting data copy",
                    table=table,
                    operation="copy",
                    cause=e,
                ) from e

            add_span_attributes(rows_copied=rows_copied)
            if self.metrics is not None:
                self.metrics.record_rows_copied(table, rows_copied)

            table_logger.info(f"Copied {rows_copied} rows to destination")
            return rows_copied

    def _bind_values(self, row: dict[str, Any], columns: list[str]) -> tuple:
        sanitized = sanitize_row(row, self.fallback_date)
        return tuple(sanitized[column] for column in columns)
