"""
CLI command implementations.

- run: Full synchronization with a report
- plan: Read-only preview of the drop/create plan, optionally emitting
  trigger scripts for review
"""

import argparse
import json
import logging
import re
from pathlib import Path

import pymysql
from prometheus_client import CollectorRegistry

from utils.metrics import MetricsPublisher, SyncMetrics, write_metrics_textfile

from ..config import SyncConfig
from ..errors import SyncError
from ..orchestrator import SyncOrchestrator, connect_endpoint
from ..report import (
    export_report_json,
    format_plan_console,
    format_report_console,
    format_report_json,
    generate_report,
)
from ..schema import SchemaReconciler
from ..triggers import TriggerSynthesizer, render_trigger_script
from .credentials import get_credentials_from_vault_or_env

logger = logging.getLogger(__name__)

UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9_$-]")


def build_sync_config(args: argparse.Namespace) -> SyncConfig:
    origin, destination = get_credentials_from_vault_or_env(args)
    return SyncConfig(
        origin=origin,
        destination=destination,
        install_origin_triggers=args.install_triggers,
        fallback_date=args.fallback_date,
        copy_batch_size=args.batch_size,
        disable_foreign_key_checks=not args.keep_foreign_key_checks,
        replace_existing_triggers=args.replace_triggers,
        strict_identifiers=not args.allow_unsafe_identifiers,
    )


def _write_report(report: dict, args: argparse.Namespace) -> None:
    if args.format == 'json':
        text = format_report_json(report)
    else:
        text = format_report_console(report)

    if args.output:
        if args.format == 'json':
            export_report_json(report, args.output)
        else:
            Path(args.output).write_text(text + "\n")
        logger.info(f"Report saved to {args.output}")
    else:
        print(text)


def cmd_run(args: argparse.Namespace) -> int:
    """
    Run a full synchronization

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code: 0 on success, 1 on failure
    """
    config = build_sync_config(args)
    logger.info(
        f"Starting sync {config.origin.describe()} -> {config.destination.describe()}"
    )

    registry = CollectorRegistry()
    metrics = SyncMetrics(registry=registry)
    if args.metrics_port:
        MetricsPublisher(port=args.metrics_port, registry=registry).start()

    orchestrator = SyncOrchestrator(config, metrics=metrics)
    exit_code = 0
    try:
        orchestrator.run()
    except (SyncError, ValueError) as e:
        logger.error(f"Sync run failed: {e}")
        exit_code = 1
    except Exception as e:
        logger.exception(f"Sync run failed with unexpected error: {e}")
        exit_code = 1
    finally:
        if args.metrics_textfile:
            write_metrics_textfile(args.metrics_textfile, registry)

    _write_report(generate_report(orchestrator.result), args)
    return exit_code


def cmd_plan(args: argparse.Namespace) -> int:
    """
    Show what a run would drop and create

    Connects to both databases, computes the plan and, with --emit-triggers,
    writes one trigger script per origin table. Nothing is changed on either
    server.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code: 0 on success, 1 on failure
    """
    origin_config, destination_config = get_credentials_from_vault_or_env(args)
    strict = not args.allow_unsafe_identifiers

    origin = destination = None
    try:
        origin = connect_endpoint(origin_config, "origin", strict)
        destination = connect_endpoint(destination_config, "destination", strict)

        reconciler = SchemaReconciler(origin, destination, migrator=None, strict_identifiers=strict)
        plan = reconciler.plan()

        if args.format == 'json':
            print(json.dumps(plan.to_dict(), indent=2))
        else:
            print(format_plan_console(plan.to_dict()))

        if args.emit_triggers:
            emit_trigger_scripts(
                TriggerSynthesizer(origin, destination.database, strict_identifiers=strict),
                plan.to_create + plan.unchanged,
                Path(args.emit_triggers),
                replace_existing=args.replace_triggers,
            )
    except (SyncError, ValueError, OSError, pymysql.err.MySQLError) as e:
        logger.error(f"Plan failed: {e}")
        return 1
    finally:
        for endpoint in (origin, destination):
            if endpoint is not None:
                endpoint.close()

    return 0


def emit_trigger_scripts(
    synthesizer: TriggerSynthesizer,
    tables: list[str],
    output_dir: Path,
    replace_existing: bool = False,
) -> list[Path]:
    """Write <table>_triggers.sql for each table. Returns the written paths."""
    output_dir.mkdir(parents=True, exist_ok=True)
    written = []
    for table in tables:
        path = output_dir / f"{UNSAFE_FILENAME_CHARS.sub('_', table)}_triggers.sql"
        path.write_text(render_trigger_script(synthesizer.build_specs(table), replace_existing))
        written.append(path)
    logger.info(f"Wrote {len(written)} trigger script(s) to {output_dir}")
    return written
