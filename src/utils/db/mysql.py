"""MySQL endpoint implementation on top of PyMySQL."""

import logging
import time
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import pymysql
import pymysql.converters
import pymysql.cursors
from opentelemetry import trace

from utils.sql_safety import quote_identifier
from utils.tracing import trace_operation

from .base import (
    DB_CONNECTIONS_OPENED,
    DB_STATEMENT_ERRORS,
    DB_STATEMENT_TIME,
    ColumnInfo,
    EndpointClosedError,
    PreparedStatement,
)

logger = logging.getLogger(__name__)

# Encoders only: with no decoders registered PyMySQL hands every value back
# as text (bytes for binary columns), which is what the row copy binds.
TEXT_CONVERSIONS = dict(pymysql.converters.encoders)


class MySQLEndpoint:
    """
    One MySQL connection plus the introspection the sync run needs.

    The endpoint does not translate driver errors; pymysql.err.MySQLError
    propagates so the caller can attach table and operation context.
    """

    def __init__(
        self,
        host: str,
        database: str,
        user: str,
        password: str,
        port: int = 3306,
        charset: str = "utf8mb4",
        connect_timeout: int = 10,
        name: str = "default",
        strict_identifiers: bool = True,
    ):
        """
        Initialize endpoint (does not connect).

        Args:
            host: MySQL host
            database: Database (schema) name
            user: Username
            password: Password
            port: MySQL port
            charset: Connection character set
            connect_timeout: Connect timeout in seconds
            name: Endpoint label used in logs and metrics ("origin", "destination")
            strict_identifiers: Apply the identifier allowlist before quoting
        """
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.charset = charset
        self.connect_timeout = connect_timeout
        self.name = name
        self.strict_identifiers = strict_identifiers
        self._database = database
        self._connection: Any = None

    def __repr__(self) -> str:
        return (
            f"MySQLEndpoint(name={self.name!r}, host={self.host!r}, "
            f"port={self.port}, database={self._database!r}, user={self.user!r})"
        )

    @property
    def database(self) -> str:
        return self._database

    @property
    def is_open(self) -> bool:
        return self._connection is not None and bool(self._connection.open)

    def connect(self) -> "MySQLEndpoint":
        """
        Open the connection.

        Raises:
            pymysql.err.MySQLError: On bad host, credentials or database
        """
        with trace_operation(
            "mysql_connect",
            kind=trace.SpanKind.CLIENT,
            db_host=self.host,
            db_name=self._database,
            endpoint=self.name,
        ):
            self._connection = pymysql.connect(
                host=self.host,
                port=self.port,
                user=self.user,
                password=self.password,
                database=self._database,
                charset=self.charset,
                connect_timeout=self.connect_timeout,
                autocommit=True,
                conv=TEXT_CONVERSIONS,
            )

        DB_CONNECTIONS_OPENED.labels(database_type="mysql", endpoint=self.name).inc()
        logger.info(
            f"Connected to {self.name} database {self._database} "
            f"at {self.host}:{self.port}"
        )
        return self

    def close(self) -> None:
        """Close the connection. Safe to call more than once."""
        if self._connection is None:
            return

        connection, self._connection = self._connection, None
        if connection.open:
            connection.close()
            logger.info(f"Closed {self.name} connection")

    def _require_connection(self) -> Any:
        if self._connection is None:
            raise EndpointClosedError(f"{self.name} endpoint is not connected")
        return self._connection

    @contextmanager
    def _timed(self, sql: str) -> Iterator[None]:
        start_time = time.time()
        try:
            yield
        except Exception as e:
            DB_STATEMENT_ERRORS.labels(
                database_type="mysql",
                endpoint=self.name,
                error_type=type(e).__name__,
            ).inc()
            logger.debug(f"Statement failed on {self.name}: {sql[:200]}")
            raise
        finally:
            DB_STATEMENT_TIME.labels(
                database_type="mysql", endpoint=self.name
            ).observe(time.time() - start_time)

    def quote(self, identifier: str) -> str:
        """Quote an identifier with this endpoint's identifier policy."""
        return quote_identifier(identifier, self.strict_identifiers)

    def execute(self, sql: str, params: tuple | list | None = None) -> int:
        """Execute a DDL/DML statement and return the affected row count."""
        connection = self._require_connection()
        with self._timed(sql), connection.cursor() as cursor:
            return cursor.execute(sql, params)

    def query(self, sql: str, params: tuple | list | None = None) -> list[tuple]:
        """Execute a query and return all rows as tuples."""
        connection = self._require_connection()
        with self._timed(sql), connection.cursor() as cursor:
            cursor.execute(sql, params)
            return list(cursor.fetchall())

    @contextmanager
    def stream(self, sql: str, params: tuple | list | None = None) -> Iterator[Any]:
        """
        Forward-only read of a large result set.

        Yields an unbuffered dict cursor; rows are pulled from the server as
        they are iterated. The cursor is closed when the block exits.
        """
        connection = self._require_connection()
        cursor = connection.cursor(pymysql.cursors.SSDictCursor)
        try:
            with self._timed(sql):
                cursor.execute(sql, params)
            yield cursor
        finally:
            cursor.close()

    def prepare(self, sql: str) -> PreparedStatement:
        """Return a bindable statement; close it (or use `with`) when done."""
        connection = self._require_connection()
        return PreparedStatement(connection.cursor(), sql, endpoint_name=self.name)

    def list_tables(self) -> list[str]:
        """Base tables of the database in the server's enumeration order."""
        rows = self.query("SHOW FULL TABLES WHERE Table_type = 'BASE TABLE'")
        return [row[0] for row in rows]

    def table_exists(self, table: str) -> bool:
        """True when a base table (not a view) with this name exists."""
        rows = self.query(
            "SELECT 1 FROM information_schema.TABLES "
            "WHERE TABLE_SCHEMA = %s AND TABLE_NAME = %s AND TABLE_TYPE = 'BASE TABLE'",
            (self._database, table),
        )
        return len(rows) > 0

    def show_create_table(self, table: str) -> str:
        """Return the CREATE TABLE statement for a table."""
        rows = self.query(f"SHOW CREATE TABLE {self.quote(table)}")
        if not rows:
            raise LookupError(f"No definition returned for table {table}")
        return rows[0][1]

    def list_columns(self, table: str) -> list[ColumnInfo]:
        """Columns in table order with their key markers."""
        rows = self.query(f"SHOW COLUMNS FROM {self.quote(table)}")
        return [
            ColumnInfo(
                name=row[0],
                type=row[1] or "",
                key=row[3] or "",
                nullable=(row[2] == "YES"),
            )
            for row in rows
        ]

    def __enter__(self) -> "MySQLEndpoint":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
