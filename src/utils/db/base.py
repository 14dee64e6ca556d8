"""
Shared types and metrics for database endpoints.

An endpoint wraps exactly one connection for the lifetime of a sync run.
Statements executed through it are timed and counted so that slow or failing
servers show up in the metrics without every caller instrumenting itself.
"""

import logging
from dataclasses import dataclass
from typing import Any

from prometheus_client import Counter, Histogram

from utils.metrics import get_or_create_metric

logger = logging.getLogger(__name__)


# Metrics
DB_STATEMENT_TIME = get_or_create_metric(
    lambda: Histogram(
        "db_statement_seconds",
        "Time spent executing statements against a database endpoint",
        ["database_type", "endpoint"],
        buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 30.0],
    ),
    "db_statement_seconds",
)

DB_STATEMENT_ERRORS = get_or_create_metric(
    lambda: Counter(
        "db_statement_errors_total",
        "Number of statements that failed against a database endpoint",
        ["database_type", "endpoint", "error_type"],
    ),
    "db_statement_errors",
)

DB_CONNECTIONS_OPENED = get_or_create_metric(
    lambda: Counter(
        "db_connections_opened_total",
        "Number of database connections opened",
        ["database_type", "endpoint"],
    ),
    "db_connections_opened",
)


class EndpointError(Exception):
    """Base exception for endpoint misuse."""

    pass


class EndpointClosedError(EndpointError):
    """Raised when using an endpoint that is closed or was never connected."""

    pass


@dataclass(frozen=True)
class ColumnInfo:
    """One column as reported by SHOW COLUMNS."""

    name: str
    type: str = ""
    key: str = ""
    nullable: bool = True

    @property
    def is_primary_key(self) -> bool:
        return self.key == "PRI"


class PreparedStatement:
    """
    A parameterized statement bound to one cursor.

    Created by an endpoint's prepare(); use it as a context manager so the
    cursor is released whether the caller finishes or fails.
    """

    def __init__(self, cursor: Any, sql: str, endpoint_name: str = "default"):
        self._cursor = cursor
        self.sql = sql
        self.endpoint_name = endpoint_name
        self._closed = False

    def execute(self, params: tuple | list | None = None) -> int:
        """Bind one parameter sequence and execute. Returns affected rows."""
        self._check_open()
        return self._cursor.execute(self.sql, params)

    def execute_many(self, rows: list[tuple | list]) -> int:
        """Bind and execute many parameter sequences in one round-trip."""
        self._check_open()
        if not rows:
            return 0
        return self._cursor.executemany(self.sql, rows)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._cursor.close()
        except Exception as e:
            logger.warning(f"Error closing prepared statement cursor: {e}")

    @property
    def closed(self) -> bool:
        return self._closed

    def _check_open(self) -> None:
        if self._closed:
            raise EndpointClosedError("Prepared statement is closed")

    def __enter__(self) -> "PreparedStatement":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
