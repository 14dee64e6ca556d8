"""
One-way MySQL synchronization with optional replication triggers

Brings a destination database's table set in line with an origin database,
copies the data of every table it creates, and can install INSERT/UPDATE/DELETE
triggers on the origin that mirror later changes into the destination.

Components:
- ddl: Table definition normalization (zero-date defaults)
- data: Zero-date value sanitization and the initial bulk copy
- schema: Table-set reconciliation
- triggers: Replication trigger synthesis
- orchestrator: The top-level run and its state machine
- report: Sync report generation
- cli: The mysql-trigger-sync command

Usage:
    from replication.config import EndpointConfig, SyncConfig
    from replication.orchestrator import SyncOrchestrator

    config = SyncConfig(origin=EndpointConfig(...), destination=EndpointConfig(...))
    result = SyncOrchestrator(config).run()
"""

__version__ = "1.0.0"
__all__ = ["ddl", "data", "schema", "triggers", "orchestrator", "report", "cli"]
