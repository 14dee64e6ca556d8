"""
Run configuration.

Both configs are set once before a run and not changed afterwards. Endpoint
settings come from CLI flags, environment variables or Vault; see
replication.cli.credentials.
"""

from dataclasses import dataclass, field, replace

from utils.db import MySQLEndpoint
from utils.sql_safety import validate_integer_param

from .data import DEFAULT_FALLBACK_DATE


@dataclass(frozen=True)
class EndpointConfig:
    """Connection settings for one MySQL database."""

    host: str
    user: str
    password: str = field(repr=False)
    database: str
    port: int = 3306
    charset: str = "utf8mb4"
    connect_timeout: int = 10

    def to_endpoint(self, name: str, strict_identifiers: bool = True) -> MySQLEndpoint:
        """Build an unconnected endpoint labelled with name."""
        return MySQLEndpoint(
            host=self.host,
            database=self.database,
            user=self.user,
            password=self.password,
            port=self.port,
            charset=self.charset,
            connect_timeout=self.connect_timeout,
            name=name,
            strict_identifiers=strict_identifiers,
        )

    def describe(self) -> str:
        """user@host:port/database, for logs"""
        return f"{self.user}@{self.host}:{self.port}/{self.database}"


@dataclass(frozen=True)
class SyncConfig:
    """
    Settings for one synchronization run.

    Attributes:
        origin: Database whose schema and data are authoritative
        destination: Database brought in line with the origin
        install_origin_triggers: Install replication triggers on the origin
            after the schema is reconciled
        fallback_date: Replacement for zero-date values during the copy
        copy_batch_size: Rows per bulk insert
        disable_foreign_key_checks: Issue SET FOREIGN_KEY_CHECKS = 0 on the
            destination session so tables can be created in any order
        replace_existing_triggers: Drop same-named triggers before creating
        strict_identifiers: Reject table and column names outside
            [A-Za-z0-9_$] instead of escaping them
    """

    origin: EndpointConfig
    destination: EndpointConfig
    install_origin_triggers: bool = False
    fallback_date: str = DEFAULT_FALLBACK_DATE
    copy_batch_size: int = 500
    disable_foreign_key_checks: bool = True
    replace_existing_triggers: bool = False
    strict_identifiers: bool = True

    def __post_init__(self):
        validate_integer_param(self.copy_batch_size, "copy_batch_size", min_value=1)
        if not self.fallback_date:
            raise ValueError("fallback_date must be a non-empty string")

    def with_overrides(self, **changes) -> "SyncConfig":
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)
