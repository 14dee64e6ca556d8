"""
Command-line argument parser configuration.

Defines the global logging options and the run and plan commands with their
connection options.
"""

import argparse

from ..data import DEFAULT_BATCH_SIZE, DEFAULT_FALLBACK_DATE


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be >= 1, got {number}")
    return number


def add_connection_arguments(parser: argparse.ArgumentParser) -> None:
    """--origin-* and --destination-* options plus --use-vault."""
    parser.add_argument(
        '--use-vault',
        action='store_true',
        help='Fetch credentials from HashiCorp Vault (VAULT_ADDR, VAULT_TOKEN)'
    )
    for role in ('origin', 'destination'):
        env_prefix = f"{role.upper()}_MYSQL"
        group = parser.add_argument_group(f'{role} database')
        group.add_argument(f'--{role}-host', help=f'MySQL host (env: {env_prefix}_HOST)')
        group.add_argument(f'--{role}-port', type=int, help=f'MySQL port (env: {env_prefix}_PORT)')
        group.add_argument(f'--{role}-user', help=f'MySQL username (env: {env_prefix}_USER)')
        group.add_argument(f'--{role}-password', help=f'MySQL password (env: {env_prefix}_PASSWORD)')
        group.add_argument(f'--{role}-database', help=f'Database name (env: {env_prefix}_DATABASE)')


def create_parser() -> argparse.ArgumentParser:
    """
    Create and configure the argument parser for the CLI.

    Returns:
        Configured ArgumentParser instance
    """
    parser = argparse.ArgumentParser(
        prog='mysql-trigger-sync',
        description="Reconcile a destination MySQL database against an origin "
                    "and optionally install replication triggers on the origin",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Show what a run would drop and create
  mysql-trigger-sync plan --origin-database shop --destination-database shop_copy

  # Full sync with credentials from the environment
  mysql-trigger-sync run

  # Sync and install replication triggers, replacing any from a previous run
  mysql-trigger-sync run --install-triggers --replace-triggers

  # Use Vault for credentials and write a JSON report
  mysql-trigger-sync run --use-vault --format json --output sync-report.json

  # Write trigger scripts for review instead of installing them
  mysql-trigger-sync plan --emit-triggers ./triggers
        """
    )

    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        default='INFO',
        help='Logging level (default: INFO)'
    )
    parser.add_argument(
        '--log-json',
        action='store_true',
        help='Emit logs as JSON lines'
    )
    parser.add_argument(
        '--log-file',
        help='Also write logs to this file (rotated)'
    )
    parser.add_argument(
        '--otlp-endpoint',
        help='Export traces to this OTLP collector (env: OTLP_ENDPOINT)'
    )

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    # ========== Run command ==========
    run_parser = subparsers.add_parser('run', help='Reconcile the destination and copy data')
    run_parser.add_argument(
        '--install-triggers',
        action='store_true',
        help='Install INSERT/UPDATE/DELETE replication triggers on every origin table'
    )
    run_parser.add_argument(
        '--replace-triggers',
        action='store_true',
        help='Drop same-named triggers before creating them'
    )
    run_parser.add_argument(
        '--fallback-date',
        default=DEFAULT_FALLBACK_DATE,
        help=f'Replacement for zero-date values (default: {DEFAULT_FALLBACK_DATE})'
    )
    run_parser.add_argument(
        '--batch-size',
        type=_positive_int,
        default=DEFAULT_BATCH_SIZE,
        help=f'Rows per bulk insert (default: {DEFAULT_BATCH_SIZE})'
    )
    run_parser.add_argument(
        '--allow-unsafe-identifiers',
        action='store_true',
        help='Escape table and column names outside [A-Za-z0-9_$] instead of rejecting them'
    )
    run_parser.add_argument(
        '--keep-foreign-key-checks',
        action='store_true',
        help='Do not disable FOREIGN_KEY_CHECKS on the destination session'
    )
    run_parser.add_argument(
        '--output',
        help='Output file path for report'
    )
    run_parser.add_argument(
        '--format',
        choices=['console', 'json'],
        default='console',
        help='Output format (default: console)'
    )
    run_parser.add_argument(
        '--metrics-port',
        type=int,
        help='Serve Prometheus metrics on this port during the run'
    )
    run_parser.add_argument(
        '--metrics-textfile',
        help='Write Prometheus metrics to this file when the run ends'
    )
    add_connection_arguments(run_parser)

    # ========== Plan command ==========
    plan_parser = subparsers.add_parser('plan', help='Show the drop/create plan without changing anything')
    plan_parser.add_argument(
        '--emit-triggers',
        metavar='DIR',
        help='Write one trigger script per origin table into DIR'
    )
    plan_parser.add_argument(
        '--replace-triggers',
        action='store_true',
        help='Include DROP TRIGGER IF EXISTS in emitted scripts'
    )
    plan_parser.add_argument(
        '--allow-unsafe-identifiers',
        action='store_true',
        help='Escape table and column names outside [A-Za-z0-9_$] instead of rejecting them'
    )
    plan_parser.add_argument(
        '--format',
        choices=['console', 'json'],
        default='console',
        help='Output format (default: console)'
    )
    add_connection_arguments(plan_parser)

    return parser
