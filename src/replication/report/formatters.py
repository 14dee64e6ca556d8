"""
Report formatting and export utilities.

Console text for humans, JSON for pipelines.
"""

import json
from typing import Any


def export_report_json(report: dict[str, Any], output_path: str) -> None:
    """
    Export report to JSON file

    Args:
        report: Report dictionary
        output_path: Path to output file
    """
    with open(output_path, 'w') as f:
        json.dump(report, f, indent=2)


def format_report_json(report: dict[str, Any]) -> str:
    return json.dumps(report, indent=2)


def format_report_console(report: dict[str, Any]) -> str:
    """
    Format report for console output

    Args:
        report: Report dictionary

    Returns:
        Formatted string for console display
    """
    lines = []

    lines.append("=" * 80)
    lines.append("SYNC REPORT")
    lines.append("=" * 80)
    lines.append(f"Status: {report['status']}")
    lines.append(f"Timestamp: {report['timestamp']}")
    lines.append(f"Duration: {report['duration_seconds']}s")
    lines.append(f"Tables Created: {report['tables_created']}")
    lines.append(f"Tables Dropped: {report['tables_dropped']}")
    lines.append(f"Tables Unchanged: {report['tables_unchanged']}")
    lines.append(f"Rows Copied: {report['rows_copied']:,}")
    lines.append("")

    lines.append("SUMMARY")
    lines.append("-" * 80)
    lines.append(report['summary'])
    lines.append("")

    if report['dropped']:
        lines.append("DROPPED")
        lines.append("-" * 80)
        for table in report['dropped']:
            lines.append(f"  {table}")
        lines.append("")

    if report['created']:
        lines.append("CREATED")
        lines.append("-" * 80)
        for table in report['created']:
            rows = report['rows_copied_by_table'].get(table, 0)
            lines.append(f"  {table} ({rows:,} rows)")
        lines.append("")

    if report['triggers_installed']:
        lines.append("TRIGGERS")
        lines.append("-" * 80)
        for table, operations in report['triggers_installed'].items():
            lines.append(f"  {table}: {', '.join(operations)}")
        lines.append("")

    if report['error']:
        error = report['error']
        lines.append("ERROR")
        lines.append("-" * 80)
        lines.append(f"Type: {error['type']}")
        if error.get('table'):
            lines.append(f"Table: {error['table']}")
        if error.get('operation'):
            lines.append(f"Operation: {error['operation']}")
        lines.append(f"Message: {error['message']}")
        if error.get('cause'):
            lines.append(f"Cause: {error['cause']}")
        lines.append("")

    if report['recommendations']:
        lines.append("RECOMMENDATIONS")
        lines.append("-" * 80)
        for i, rec in enumerate(report['recommendations'], 1):
            lines.append(f"{i}. {rec}")
        lines.append("")

    lines.append("=" * 80)

    return "\n".join(lines)


def format_plan_console(plan: dict[str, Any]) -> str:
    """Format a ReconcilePlan.to_dict() for console output."""
    lines = ["=" * 80, "SYNC PLAN", "=" * 80]

    if not plan['to_drop'] and not plan['to_create']:
        lines.append("Destination already matches the origin table set.")
    else:
        for label, key in (("DROP", "to_drop"), ("CREATE", "to_create")):
            lines.append(f"{label} ({len(plan[key])})")
            lines.append("-" * 80)
            for table in plan[key]:
                lines.append(f"  {table}")
            lines.append("")

    lines.append(f"Unchanged: {len(plan['unchanged'])}")
    lines.append("=" * 80)
    return "\n".join(lines)
