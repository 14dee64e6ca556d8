"""
Pytest configuration and fixtures for sync tests.
Provides an in-memory endpoint double and shared configuration fixtures.
"""

import os
from contextlib import contextmanager
from pathlib import Path

import pymysql
import pytest
from prometheus_client import CollectorRegistry

from replication.config import EndpointConfig, SyncConfig
from utils.db import ColumnInfo
from utils.metrics import SyncMetrics


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "integration: requires a MySQL server (set MYSQL_TEST_HOST)")
    config.addinivalue_line("markers", "slow: mark test as slow running")


class FakeCursor:
    """Unbuffered-cursor double serving rows in fetchmany batches."""

    def __init__(self, rows, fail_after=None):
        self._rows = list(rows)
        self._position = 0
        self._fail_after = fail_after
        self.closed = False

    def fetchmany(self, size):
        if self._fail_after is not None and self._position >= self._fail_after:
            raise pymysql.err.OperationalError(2013, "Lost connection to MySQL server during query")
        batch = self._rows[self._position:self._position + size]
        self._position += len(batch)
        return batch

    def close(self):
        self.closed = True


class FakeStatement:
    """Prepared-statement double recording every bound row."""

    def __init__(self, endpoint, sql):
        self.endpoint = endpoint
        self.sql = sql
        self.batches = []
        self.closed = False

    def execute_many(self, rows):
        if self.endpoint.fail_insert_after is not None:
            bound = sum(len(batch) for batch in self.batches)
            if bound + len(rows) > self.endpoint.fail_insert_after:
                raise pymysql.err.DataError(1292, "Incorrect datetime value")
        self.batches.append(list(rows))
        return len(rows)

    def close(self):
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


class FakeEndpoint:
    """
    In-memory stand-in for utils.db.MySQLEndpoint.

    tables maps a table name to {"ddl": str, "columns": [ColumnInfo], "rows": [dict]}.
    Executed SQL is recorded in `executed`; CREATE/DROP TABLE statements
    update the table set so existence checks see the effect.
    """

    def __init__(self, database, tables=None, name="fake"):
        self.database = database
        self.name = name
        self.tables = dict(tables or {})
        self.executed = []
        self.statements = []
        self.cursors = []
        self.closed = False
        self.close_error = None
        self.fail_on_sql = None
        self.fail_read_after = None
        self.fail_insert_after = None
        self.fail_list_tables = False

    def list_tables(self):
        if self.fail_list_tables:
            raise pymysql.err.OperationalError(1044, "Access denied")
        return list(self.tables)

    def table_exists(self, table):
        return table in self.tables

    def show_create_table(self, table):
        if table not in self.tables:
            raise pymysql.err.ProgrammingError(1146, f"Table '{table}' doesn't exist")
        return self.tables[table]["ddl"]

    def list_columns(self, table):
        return list(self.tables[table].get("columns", []))

    def execute(self, sql, params=None):
        if self.fail_on_sql and self.fail_on_sql in sql:
            raise pymysql.err.OperationalError(1064, f"Statement failed: {sql[:40]}")
        self.executed.append(sql)
        if sql.startswith("CREATE TABLE "):
            table = sql.split("`")[3]
            self.tables[table] = {"ddl": sql, "columns": [], "rows": []}
        elif sql.startswith("DROP TABLE "):
            self.tables.pop(sql.split("`")[3], None)
        return 0

    @contextmanager
    def stream(self, sql, params=None):
        table = sql.rsplit("`", 2)[1]
        cursor = FakeCursor(self.tables[table].get("rows", []), self.fail_read_after)
        self.cursors.append(cursor)
        try:
            yield cursor
        finally:
            cursor.close()

    def prepare(self, sql):
        statement = FakeStatement(self, sql)
        self.statements.append(statement)
        return statement

    def close(self):
        self.closed = True
        if self.close_error is not None:
            raise self.close_error


def make_table(name, columns, rows=None, ddl=None):
    """Build a FakeEndpoint table entry; columns are (name, key) pairs."""
    column_infos = [ColumnInfo(name=column, type="varchar(255)", key=key) for column, key in columns]
    return {
        "ddl": ddl or f"CREATE TABLE `{name}` (\n  `{columns[0][0]}` int NOT NULL\n) ENGINE=InnoDB",
        "columns": column_infos,
        "rows": list(rows or []),
    }


@pytest.fixture(scope="session")
def project_root() -> Path:
    """Get project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def registry() -> CollectorRegistry:
    return CollectorRegistry()


@pytest.fixture
def sync_metrics(registry) -> SyncMetrics:
    return SyncMetrics(registry=registry)


@pytest.fixture
def origin_config() -> EndpointConfig:
    return EndpointConfig(host="origin.local", user="sync", password="origin-secret", database="shop")


@pytest.fixture
def destination_config() -> EndpointConfig:
    return EndpointConfig(host="replica.local", user="sync", password="dest-secret", database="shop_copy")


@pytest.fixture
def sync_config(origin_config, destination_config) -> SyncConfig:
    return SyncConfig(origin=origin_config, destination=destination_config)


@pytest.fixture(autouse=True)
def set_test_env_vars(monkeypatch) -> None:
    """Clear connection variables so tests never pick up a developer's settings."""
    for role in ("ORIGIN", "DESTINATION"):
        for field in ("HOST", "PORT", "USER", "PASSWORD", "DATABASE"):
            monkeypatch.delenv(f"{role}_MYSQL_{field}", raising=False)
    if "OTLP_ENDPOINT" in os.environ:
        monkeypatch.delenv("OTLP_ENDPOINT")
