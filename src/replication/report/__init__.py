"""
Sync report generation and formatting.
"""

from .formatters import (
    export_report_json,
    format_plan_console,
    format_report_console,
    format_report_json,
)
from .generator import format_timestamp, generate_report

__all__ = [
    'generate_report',
    'format_timestamp',
    'export_report_json',
    'format_report_json',
    'format_report_console',
    'format_plan_console',
]
