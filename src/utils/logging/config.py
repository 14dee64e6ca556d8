"""
Root logger setup for sync runs.

The CLI calls setup_logging once per invocation from its global flags
(--log-level, --log-file, --log-json) and shutdown_logging on exit. Long
unattended runs usually log to a rotating file such as
/var/log/mysql-trigger-sync/sync.log with --log-json so per-table records
(table_name, rows_copied) can be filtered by a log shipper.
"""

import logging
import logging.handlers
import os
import sys

from .formatters import DEFAULT_APP_NAME, ConsoleFormatter, JSONFormatter

# Driver and HTTP client loggers are chatty at INFO; a large copy would
# otherwise log every statement pymysql sends
NOISY_LOGGERS = ("urllib3", "requests", "pymysql", "opentelemetry")

FILE_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

TRUTHY = ("true", "1", "yes")


def _formatter(json_format: bool, app_name: str, console: bool) -> logging.Formatter:
    if json_format:
        return JSONFormatter(app_name=app_name)
    if console:
        return ConsoleFormatter(use_colors=True)
    return logging.Formatter(fmt=FILE_LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")


def setup_logging(
    level: str = "INFO",
    log_file: str | None = None,
    console_output: bool = True,
    json_format: bool = False,
    app_name: str = DEFAULT_APP_NAME,
    max_bytes: int = 50 * 1024 * 1024,  # 50MB
    backup_count: int = 5,
) -> None:
    """
    Replace the root handlers with console and/or rotating file output

    Console output goes to stderr so a console report printed by
    `run` or `plan` on stdout stays clean.

    Args:
        level: DEBUG shows per-batch copy progress; unknown names fall back to INFO
        log_file: Rotating log file path; its directory is created if missing
        console_output: Log to stderr
        json_format: One JSON object per record, for both console and file
        app_name: Value of the "app" field in JSON records
        max_bytes: Size at which the log file is rotated
        backup_count: Rotated files kept next to log_file
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()

    handlers: list[logging.Handler] = []
    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(_formatter(json_format, app_name, console=True))
        handlers.append(console_handler)

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            filename=log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(_formatter(json_format, app_name, console=False))
        handlers.append(file_handler)

    for handler in handlers:
        handler.setLevel(numeric_level)
        root_logger.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).debug(
        f"Sync logging ready: level={level}, file={log_file or 'none'}, "
        f"console={console_output}, json={json_format}"
    )


def shutdown_logging() -> None:
    """Flush and detach every root handler so a rotated log file is released."""
    root_logger = logging.getLogger()

    for handler in root_logger.handlers[:]:
        try:
            handler.close()
        except (OSError, ValueError):
            pass
        root_logger.removeHandler(handler)

    logging.shutdown()


def configure_from_env() -> None:
    """
    Set up logging for embedded use, where the sync runs without the CLI

    Environment variables:
        LOG_LEVEL: Log level (default: INFO)
        LOG_FILE: Rotating log file path (default: none)
        LOG_JSON: JSON records (default: false)
        LOG_CONSOLE: Log to stderr (default: true)
    """
    setup_logging(
        level=os.getenv("LOG_LEVEL", "INFO"),
        log_file=os.getenv("LOG_FILE"),
        console_output=os.getenv("LOG_CONSOLE", "true").lower() in TRUTHY,
        json_format=os.getenv("LOG_JSON", "false").lower() in TRUTHY,
    )
