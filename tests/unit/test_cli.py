"""
Unit tests for replication/cli

Covers argument parsing, credential resolution, the run and plan commands and
the main entry point. Database access is replaced with FakeEndpoint doubles.
"""

import json
from unittest.mock import patch

import pymysql
import pytest

from conftest import FakeEndpoint, make_table
from replication.cli import main
from replication.cli.commands import build_sync_config, cmd_plan, cmd_run, emit_trigger_scripts
from replication.cli.credentials import endpoint_from_args, get_credentials_from_vault_or_env
from replication.cli.parser import create_parser
from replication.errors import DDLExecutionError
from replication.orchestrator import SyncResult, SyncState
from replication.schema import ReconcileResult
from replication.triggers import TriggerSynthesizer

CONNECTION_ARGS = [
    "--origin-password", "o-pw", "--origin-database", "shop",
    "--destination-password", "d-pw", "--destination-database", "shop_copy",
]


def parse(*argv):
    return create_parser().parse_args(list(argv))


class StubOrchestrator:
    """Replaces SyncOrchestrator; outcome is set per test."""

    error = None

    def __init__(self, config, metrics=None):
        self.config = config
        self.metrics = metrics
        self.result = SyncResult(
            reconcile=ReconcileResult(created=["customers"], rows_copied={"customers": 3}),
            history=[SyncState.IDLE],
        )

    def run(self):
        if self.error is not None:
            self.result.state = SyncState.FAILED
            self.result.error = self.error
            raise self.error
        self.result.state = SyncState.DONE
        return self.result


class TestParser:
    def test_run_defaults(self):
        args = parse("run")

        assert args.command == "run"
        assert args.install_triggers is False
        assert args.fallback_date == "1971-01-01"
        assert args.batch_size == 500
        assert args.format == "console"
        assert args.log_level == "INFO"

    def test_run_flags(self):
        args = parse(
            "--log-level", "DEBUG", "--log-json", "run",
            "--install-triggers", "--replace-triggers", "--batch-size", "50",
            "--origin-port", "3307",
        )

        assert args.log_level == "DEBUG"
        assert args.log_json is True
        assert args.install_triggers and args.replace_triggers
        assert args.batch_size == 50
        assert args.origin_port == 3307

    @pytest.mark.parametrize("value", ["0", "-5"])
    def test_batch_size_must_be_positive(self, value):
        with pytest.raises(SystemExit):
            parse("run", "--batch-size", value)

    def test_plan_flags(self):
        args = parse("plan", "--emit-triggers", "out", "--format", "json")

        assert args.command == "plan"
        assert args.emit_triggers == "out"
        assert args.format == "json"


class TestCredentials:
    def test_from_args(self):
        args = parse("run", *CONNECTION_ARGS, "--origin-host", "db1")

        origin = endpoint_from_args(args, "origin")

        assert origin.host == "db1"
        assert origin.port == 3306
        assert origin.user == "root"
        assert origin.database == "shop"

    def test_environment_fallback(self, monkeypatch):
        monkeypatch.setenv("DESTINATION_MYSQL_HOST", "replica")
        monkeypatch.setenv("DESTINATION_MYSQL_PORT", "3310")
        monkeypatch.setenv("DESTINATION_MYSQL_PASSWORD", "env-pw")
        monkeypatch.setenv("DESTINATION_MYSQL_DATABASE", "mirror")

        destination = endpoint_from_args(parse("run"), "destination")

        assert (destination.host, destination.port, destination.database) == ("replica", 3310, "mirror")
        assert destination.password == "env-pw"

    def test_flag_overrides_environment(self, monkeypatch):
        monkeypatch.setenv("ORIGIN_MYSQL_DATABASE", "from_env")
        args = parse("run", *CONNECTION_ARGS)

        assert endpoint_from_args(args, "origin").database == "shop"

    @pytest.mark.parametrize("missing", ["--origin-password", "--origin-database"])
    def test_missing_required_exits(self, missing):
        argv = list(CONNECTION_ARGS)
        index = argv.index(missing)
        del argv[index:index + 2]

        with pytest.raises(SystemExit) as exc_info:
            endpoint_from_args(parse("run", *argv), "origin")
        assert exc_info.value.code == 1

    @patch("replication.cli.credentials.VaultClient")
    def test_from_vault(self, mock_vault):
        mock_vault.return_value.health_check.return_value = True
        mock_vault.return_value.get_database_credentials.side_effect = lambda role: {
            "host": f"{role}.db", "port": 3306, "username": "sync",
            "password": "pw", "database": f"{role}_db",
        }

        origin, destination = get_credentials_from_vault_or_env(parse("run", "--use-vault"))

        assert origin.host == "origin.db"
        assert destination.database == "destination_db"

    @patch("replication.cli.credentials.VaultClient")
    def test_unhealthy_vault_exits_before_lookup(self, mock_vault):
        mock_vault.return_value.health_check.return_value = False

        with pytest.raises(SystemExit) as exc_info:
            get_credentials_from_vault_or_env(parse("run", "--use-vault"))

        assert exc_info.value.code == 1
        mock_vault.return_value.get_database_credentials.assert_not_called()

    @patch("replication.cli.credentials.VaultClient", side_effect=ValueError("VAULT_ADDR missing"))
    def test_vault_failure_exits(self, mock_vault):
        with pytest.raises(SystemExit) as exc_info:
            get_credentials_from_vault_or_env(parse("run", "--use-vault"))
        assert exc_info.value.code == 1


class TestBuildSyncConfig:
    def test_flags_map_to_config(self):
        args = parse(
            "run", *CONNECTION_ARGS, "--install-triggers", "--keep-foreign-key-checks",
            "--allow-unsafe-identifiers", "--fallback-date", "1980-01-01",
        )

        config = build_sync_config(args)

        assert config.install_origin_triggers is True
        assert config.disable_foreign_key_checks is False
        assert config.strict_identifiers is False
        assert config.fallback_date == "1980-01-01"
        assert config.origin.database == "shop"
        assert config.destination.database == "shop_copy"


class TestCmdRun:
    @patch("replication.cli.commands.SyncOrchestrator", StubOrchestrator)
    def test_success(self, capsys):
        StubOrchestrator.error = None

        assert cmd_run(parse("run", *CONNECTION_ARGS)) == 0
        output = capsys.readouterr().out
        assert "Status: SUCCESS" in output
        assert "customers (3 rows)" in output

    @patch("replication.cli.commands.SyncOrchestrator", StubOrchestrator)
    def test_failure_writes_report(self, tmp_path):
        StubOrchestrator.error = DDLExecutionError("boom", table="orders", operation="create_table")
        report_path = tmp_path / "report.json"
        try:
            exit_code = cmd_run(parse(
                "run", *CONNECTION_ARGS, "--format", "json", "--output", str(report_path),
            ))
        finally:
            StubOrchestrator.error = None

        assert exit_code == 1
        report = json.loads(report_path.read_text())
        assert report["status"] == "FAILED"
        assert report["error"]["table"] == "orders"

    @patch("replication.cli.commands.SyncOrchestrator", StubOrchestrator)
    def test_driver_error_still_writes_report(self, tmp_path):
        StubOrchestrator.error = pymysql.err.OperationalError(2013, "Lost connection to MySQL server")
        report_path = tmp_path / "report.json"
        try:
            exit_code = cmd_run(parse(
                "run", *CONNECTION_ARGS, "--format", "json", "--output", str(report_path),
            ))
        finally:
            StubOrchestrator.error = None

        assert exit_code == 1
        report = json.loads(report_path.read_text())
        assert report["status"] == "FAILED"
        assert report["error"]["type"] == "OperationalError"
        assert "Lost connection" in report["error"]["message"]

    @patch("replication.cli.commands.SyncOrchestrator", StubOrchestrator)
    def test_metrics_textfile(self, tmp_path):
        StubOrchestrator.error = None
        textfile = tmp_path / "sync.prom"

        cmd_run(parse("run", *CONNECTION_ARGS, "--metrics-textfile", str(textfile)))

        assert textfile.exists()

    @patch("replication.cli.commands.MetricsPublisher")
    @patch("replication.cli.commands.SyncOrchestrator", StubOrchestrator)
    def test_metrics_port_starts_publisher(self, mock_publisher):
        StubOrchestrator.error = None

        cmd_run(parse("run", *CONNECTION_ARGS, "--metrics-port", "9200"))

        assert mock_publisher.call_args.kwargs["port"] == 9200
        mock_publisher.return_value.start.assert_called_once()


@pytest.fixture
def plan_endpoints():
    origin = FakeEndpoint("shop", {
        "customers": make_table("customers", [("id", "PRI")]),
        "orders": make_table("orders", [("id", "PRI")]),
    }, name="origin")
    destination = FakeEndpoint("shop_copy", {
        "orders": make_table("orders", [("id", "PRI")]),
        "legacy": make_table("legacy", [("id", "PRI")]),
    }, name="destination")
    return {"origin": origin, "destination": destination}


class TestCmdPlan:
    def test_json_plan(self, plan_endpoints, capsys):
        with patch(
            "replication.cli.commands.connect_endpoint",
            side_effect=lambda config, name, strict: plan_endpoints[name],
        ):
            exit_code = cmd_plan(parse("plan", *CONNECTION_ARGS, "--format", "json"))

        assert exit_code == 0
        plan = json.loads(capsys.readouterr().out)
        assert plan == {"to_drop": ["legacy"], "to_create": ["customers"], "unchanged": ["orders"]}
        assert plan_endpoints["destination"].executed == []
        assert plan_endpoints["origin"].closed and plan_endpoints["destination"].closed

    def test_emit_triggers(self, plan_endpoints, tmp_path, capsys):
        out_dir = tmp_path / "triggers"
        with patch(
            "replication.cli.commands.connect_endpoint",
            side_effect=lambda config, name, strict: plan_endpoints[name],
        ):
            exit_code = cmd_plan(parse("plan", *CONNECTION_ARGS, "--emit-triggers", str(out_dir)))

        assert exit_code == 0
        assert sorted(p.name for p in out_dir.iterdir()) == [
            "customers_triggers.sql", "orders_triggers.sql",
        ]
        assert plan_endpoints["origin"].executed == []
        assert "SYNC PLAN" in capsys.readouterr().out

    def test_connection_failure(self):
        with patch("replication.cli.commands.connect_endpoint", side_effect=OSError("refused")):
            assert cmd_plan(parse("plan", *CONNECTION_ARGS)) == 1


class TestEmitTriggerScripts:
    def test_unsafe_filename_characters_replaced(self, tmp_path):
        origin = FakeEndpoint("shop", {"odd name": make_table("odd name", [("id", "PRI")])})
        synthesizer = TriggerSynthesizer(origin, "shop_copy", strict_identifiers=False)

        paths = emit_trigger_scripts(synthesizer, ["odd name"], tmp_path, replace_existing=True)

        assert [p.name for p in paths] == ["odd_name_triggers.sql"]
        script = paths[0].read_text()
        assert script.startswith("DELIMITER $$")
        assert "DROP TRIGGER IF EXISTS" in script


class TestMain:
    @patch("replication.cli.shutdown_logging")
    @patch("replication.cli.setup_logging")
    def test_no_command_prints_help(self, mock_setup, mock_shutdown):
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 1
        mock_setup.assert_not_called()

    @patch("replication.cli.shutdown_tracing")
    @patch("replication.cli.initialize_tracing")
    @patch("replication.cli.cmd_run", return_value=0)
    @patch("replication.cli.shutdown_logging")
    @patch("replication.cli.setup_logging")
    def test_run_dispatch(self, mock_setup, mock_shutdown, mock_run, mock_init, mock_shutdown_tracing):
        with pytest.raises(SystemExit) as exc_info:
            main(["--log-level", "DEBUG", "--otlp-endpoint", "http://otel:4317", "run"])

        assert exc_info.value.code == 0
        mock_setup.assert_called_once_with(level="DEBUG", log_file=None, json_format=False)
        mock_init.assert_called_once_with(otlp_endpoint="http://otel:4317")
        mock_run.assert_called_once()
        mock_shutdown.assert_called_once()
        mock_shutdown_tracing.assert_called_once()

    @patch("replication.cli.shutdown_tracing")
    @patch("replication.cli.initialize_tracing")
    @patch("replication.cli.cmd_plan", return_value=1)
    @patch("replication.cli.shutdown_logging")
    @patch("replication.cli.setup_logging")
    def test_plan_failure_exit_code(self, mock_setup, mock_shutdown, mock_plan, mock_init, mock_shutdown_tracing):
        with pytest.raises(SystemExit) as exc_info:
            main(["plan"])

        assert exc_info.value.code == 1
        mock_init.assert_not_called()
        mock_shutdown.assert_called_once()
