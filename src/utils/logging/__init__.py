"""
Structured logging configuration for the sync tool

Provides colored console or JSON-formatted logging, optional rotating file
output, and a context logger for per-table messages.

Usage:
    from utils.logging import ContextLogger, setup_logging

    # Setup logging (call once at application startup)
    setup_logging(level="INFO", log_file="/var/log/mysql-trigger-sync/sync.log")

    logger = ContextLogger(__name__, table_name="customers")
    logger.info("Created table")
"""

from .config import configure_from_env, setup_logging, shutdown_logging
from .formatters import ConsoleFormatter, JSONFormatter
from .handlers import ContextLogger

__all__ = [
    "setup_logging",
    "shutdown_logging",
    "configure_from_env",
    "JSONFormatter",
    "ConsoleFormatter",
    "ContextLogger",
]
