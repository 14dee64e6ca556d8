"""
Unit tests for replication/schema/reconciler.py

Covers inventory diffing, drop/create ordering, idempotence and failure
reporting using the in-memory FakeEndpoint.
"""

import pymysql
import pytest

from conftest import FakeEndpoint, make_table
from replication.data import DataMigrator
from replication.errors import DDLExecutionError, SchemaIntrospectionError, TriggerInstallError
from replication.schema import SchemaReconciler, diff_inventories

ZERO_DATE_DDL = (
    "CREATE TABLE `C` (\n"
    "  `id` int NOT NULL,\n"
    "  `seen` datetime NOT NULL DEFAULT '0000-00-00 00:00:00',\n"
    "  PRIMARY KEY (`id`)\n"
    ") ENGINE=InnoDB"
)


def make_reconciler(origin, destination, **kwargs):
    migrator = DataMigrator(origin, destination)
    return SchemaReconciler(origin, destination, migrator, **kwargs)


@pytest.fixture
def origin():
    return FakeEndpoint("shop", {
        "C": make_table("C", [("id", "PRI"), ("seen", "")], [{"id": "1", "seen": "0000-00-00"}], ZERO_DATE_DDL),
        "B": make_table("B", [("id", "PRI")], [{"id": "10"}, {"id": "11"}]),
    }, name="origin")


@pytest.fixture
def destination():
    return FakeEndpoint("shop_copy", {
        "B": make_table("B", [("id", "PRI")]),
        "A": make_table("A", [("id", "PRI")]),
        "Z": make_table("Z", [("id", "PRI")]),
    }, name="destination")


class TestDiffInventories:
    def test_drop_create_unchanged(self):
        plan = diff_inventories(["C", "B"], ["B", "A"])

        assert plan.to_drop == ["A"]
        assert plan.to_create == ["C"]
        assert plan.unchanged == ["B"]
        assert not plan.is_empty

    def test_drops_sorted_creates_in_origin_order(self):
        plan = diff_inventories(["t3", "t1", "t2"], ["z", "b", "a"])

        assert plan.to_drop == ["a", "b", "z"]
        assert plan.to_create == ["t3", "t1", "t2"]

    def test_identical_inventories(self):
        plan = diff_inventories(["a", "b"], ["b", "a"])
        assert plan.is_empty
        assert plan.to_dict() == {"to_drop": [], "to_create": [], "unchanged": ["a", "b"]}


class TestSchemaReconciler:
    def test_reconcile_drops_creates_and_copies(self, origin, destination):
        result = make_reconciler(origin, destination).reconcile()

        assert result.dropped == ["A", "Z"]
        assert result.created == ["C"]
        assert result.skipped == ["B"]
        assert result.rows_copied == {"C": 1}
        assert result.origin_tables == ["C", "B"]
        assert set(destination.tables) == {"B", "C"}

    def test_drops_happen_before_creates(self, origin, destination):
        make_reconciler(origin, destination).reconcile()

        kinds = [sql.split()[0] for sql in destination.executed]
        assert kinds == ["DROP", "DROP", "CREATE"]
        assert destination.executed[0] == "DROP TABLE `shop_copy`.`A`"

    def test_created_definition_is_normalized(self, origin, destination):
        make_reconciler(origin, destination).reconcile()

        create = destination.executed[-1]
        assert create.startswith("CREATE TABLE `shop_copy`.`C` (")
        assert "`seen` datetime NULL DEFAULT NULL" in create
        assert "0000-00-00" not in create

    def test_existing_table_is_not_copied_into(self, origin, destination):
        make_reconciler(origin, destination).reconcile()

        copied_tables = [statement.sql.split("`")[3] for statement in destination.statements]
        assert copied_tables == ["C"]

    def test_second_run_is_a_noop(self, origin, destination):
        make_reconciler(origin, destination).reconcile()
        executed = list(destination.executed)

        result = make_reconciler(origin, destination).reconcile()

        assert result.dropped == []
        assert result.created == []
        assert result.skipped == ["C", "B"]
        assert destination.executed == executed

    def test_step_callback(self, origin, destination):
        steps = []
        make_reconciler(origin, destination, on_step=lambda step, table: steps.append((step, table))).reconcile()

        assert steps == [("creating", "C"), ("copying", "C")]

    def test_plan_has_no_side_effects(self, origin, destination):
        plan = make_reconciler(origin, destination).plan()

        assert plan.to_drop == ["A", "Z"]
        assert plan.to_create == ["C"]
        assert destination.executed == []

    def test_metrics(self, origin, destination, sync_metrics, registry):
        make_reconciler(origin, destination, metrics=sync_metrics).reconcile()

        assert registry.get_sample_value("sync_tables_dropped_total") == 2.0
        assert registry.get_sample_value("sync_tables_created_total") == 1.0

    def test_list_tables_failure(self, origin, destination):
        destination.fail_list_tables = True

        with pytest.raises(SchemaIntrospectionError) as exc_info:
            make_reconciler(origin, destination).reconcile()

        assert exc_info.value.operation == "list_tables"

    def test_create_failure_keeps_earlier_drops(self, origin, destination):
        destination.fail_on_sql = "CREATE TABLE"

        with pytest.raises(DDLExecutionError) as exc_info:
            make_reconciler(origin, destination).reconcile()

        assert exc_info.value.table == "C"
        assert exc_info.value.operation == "create_table"
        assert "A" not in destination.tables
        assert "Z" not in destination.tables

    def test_drop_failure(self, origin, destination):
        destination.fail_on_sql = "DROP TABLE"

        with pytest.raises(DDLExecutionError) as exc_info:
            make_reconciler(origin, destination).reconcile()

        assert exc_info.value.table == "A"
        assert exc_info.value.operation == "drop_table"

    def test_definition_capture_failure(self, origin, destination):
        def broken(table):
            raise pymysql.err.OperationalError(1142, "SHOW command denied")

        origin.show_create_table = broken

        with pytest.raises(SchemaIntrospectionError) as exc_info:
            make_reconciler(origin, destination).reconcile()

        assert exc_info.value.table == "C"
        assert exc_info.value.operation == "show_create_table"

    def test_trigger_names_checked_before_ddl(self, origin, destination):
        long_name = "x" * 59
        origin.tables[long_name] = make_table(long_name, [("id", "PRI")])

        with pytest.raises(TriggerInstallError) as exc_info:
            make_reconciler(origin, destination, validate_trigger_names=True).reconcile()

        assert exc_info.value.table == long_name
        assert destination.executed == []
