"""
Command-line interface for MySQL trigger sync.

Available commands:
- run: Reconcile the destination, copy data into new tables and optionally
  install replication triggers on the origin
- plan: Show what run would drop and create, without changing anything
"""

import sys

from utils.logging import setup_logging, shutdown_logging
from utils.tracing import initialize_tracing, shutdown_tracing

from .commands import build_sync_config, cmd_plan, cmd_run, emit_trigger_scripts
from .credentials import get_credentials_from_vault_or_env
from .parser import create_parser


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the mysql-trigger-sync CLI"""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command not in ('run', 'plan'):
        parser.print_help()
        sys.exit(1)

    setup_logging(level=args.log_level, log_file=args.log_file, json_format=args.log_json)
    if args.otlp_endpoint:
        initialize_tracing(otlp_endpoint=args.otlp_endpoint)

    try:
        if args.command == 'run':
            exit_code = cmd_run(args)
        else:
            exit_code = cmd_plan(args)
    finally:
        shutdown_tracing()
        shutdown_logging()

    sys.exit(exit_code)


__all__ = [
    'main',
    'get_credentials_from_vault_or_env',
    'build_sync_config',
    'cmd_run',
    'cmd_plan',
    'emit_trigger_scripts',
    'create_parser',
]


if __name__ == '__main__':
    main()
