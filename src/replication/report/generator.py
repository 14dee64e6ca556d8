"""
Report generation for synchronization runs.

Turns a SyncResult into a plain dictionary with a summary and follow-up
recommendations, ready for console or JSON output.
"""

from datetime import UTC, datetime
from typing import Any

from ..errors import DataCopyError, SyncConnectionError, TriggerInstallError


def format_timestamp(timestamp: datetime | None) -> str | None:
    """ISO 8601, or None when the run never got that far."""
    return timestamp.isoformat() if timestamp is not None else None


def _generate_summary(report: dict[str, Any]) -> str:
    if report["status"] == "FAILED":
        error = report["error"] or {}
        where = f" on table {error['table']}" if error.get("table") else ""
        return (
            f"Sync FAILED{where} after {report['tables_created']} table(s) created "
            f"and {report['tables_dropped']} dropped. Partial changes were left in place."
        )

    if not report["tables_created"] and not report["tables_dropped"]:
        return (
            f"Destination already matched the origin ({report['tables_unchanged']} "
            f"table(s) unchanged)."
        )

    return (
        f"Sync completed: {report['tables_created']} table(s) created, "
        f"{report['tables_dropped']} dropped, {report['tables_unchanged']} unchanged, "
        f"{report['rows_copied']:,} row(s) copied."
    )


def _generate_recommendations(report: dict[str, Any], error: BaseException | None) -> list[str]:
    recommendations = []

    if isinstance(error, SyncConnectionError):
        recommendations.append("Check host, port and credentials of both databases")
    elif isinstance(error, DataCopyError) and error.table:
        recommendations.append(
            f"Table {error.table} was created but only partly copied; drop it "
            f"from the destination before running again"
        )
    elif isinstance(error, TriggerInstallError) and error.table:
        recommendations.append(
            f"Triggers for {error.table} are incomplete; rerun with "
            f"--replace-triggers once the cause is fixed"
        )
    elif error is not None:
        recommendations.append("Fix the reported error and run again; created tables are skipped")

    if report["tables_dropped"]:
        recommendations.append(
            "Tables were dropped from the destination; confirm this was expected"
        )

    return recommendations


def generate_report(result: Any) -> dict[str, Any]:
    """
    Generate a report from a SyncResult

    Args:
        result: SyncResult from SyncOrchestrator.run() (or orchestrator.result
            after a failure)

    Returns:
        Dictionary containing:
        - status: SUCCESS or FAILED
        - tables_created / tables_dropped / tables_unchanged: Counts
        - created / dropped / unchanged: Table names
        - rows_copied: Total rows copied
        - rows_copied_by_table: Rows per created table
        - triggers_installed: Operations installed per table
        - history: Visited states
        - error: Error details, or None
        - summary: Human-readable summary
        - recommendations: List of recommended actions
        - timestamp: Report generation timestamp
    """
    reconcile = result.reconcile

    report = {
        "status": "SUCCESS" if result.succeeded else "FAILED",
        "timestamp": datetime.now(UTC).isoformat(),
        "started_at": format_timestamp(result.started_at),
        "finished_at": format_timestamp(result.finished_at),
        "duration_seconds": round(result.duration_seconds, 3),
        "created": list(reconcile.created) if reconcile else [],
        "dropped": list(reconcile.dropped) if reconcile else [],
        "unchanged": list(reconcile.skipped) if reconcile else [],
        "rows_copied_by_table": dict(reconcile.rows_copied) if reconcile else {},
        "triggers_installed": {
            table: list(operations)
            for table, operations in result.triggers_installed.items()
        },
        "history": [state.value for state in result.history],
        "error": result.to_dict()["error"],
    }
    report["tables_created"] = len(report["created"])
    report["tables_dropped"] = len(report["dropped"])
    report["tables_unchanged"] = len(report["unchanged"])
    report["rows_copied"] = sum(report["rows_copied_by_table"].values())

    report["summary"] = _generate_summary(report)
    report["recommendations"] = _generate_recommendations(report, result.error)

    return report
