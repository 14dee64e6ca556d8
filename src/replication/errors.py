"""
Error types raised by the synchronization run.

Every error carries the table and operation it failed on plus the underlying
driver error, so a single message is enough to act on. All of them are fatal
to the current run and none are retried.
"""


class SyncError(Exception):
    """Base exception for synchronization failures."""

    def __init__(
        self,
        message: str,
        table: str | None = None,
        operation: str | None = None,
        cause: BaseException | None = None,
    ):
        self.message = message
        self.table = table
        self.operation = operation
        self.cause = cause
        super().__init__(self._format())

    def _format(self) -> str:
        parts = [self.message]
        context = []
        if self.table:
            context.append(f"table={self.table}")
        if self.operation:
            context.append(f"operation={self.operation}")
        if context:
            parts.append(f"[{', '.join(context)}]")
        if self.cause is not None:
            parts.append(f"{type(self.cause).__name__}: {self.cause}")
        return " ".join(parts)

    def to_dict(self) -> dict:
        """Serializable form for reports."""
        return {
            "type": type(self).__name__,
            "message": self.message,
            "table": self.table,
            "operation": self.operation,
            "cause": str(self.cause) if self.cause is not None else None,
        }


class SyncConnectionError(SyncError, ConnectionError):
    """Raised when a database cannot be reached or rejects the credentials."""

    pass


class SchemaIntrospectionError(SyncError):
    """Raised when tables, definitions or columns cannot be read."""

    pass


class DDLExecutionError(SyncError):
    """Raised when a CREATE TABLE or DROP TABLE statement fails."""

    pass


class DataCopyError(SyncError):
    """Raised when rows cannot be read from origin or inserted into destination."""

    pass


class TriggerInstallError(SyncError):
    """Raised when a CREATE TRIGGER statement fails on the origin."""

    pass
