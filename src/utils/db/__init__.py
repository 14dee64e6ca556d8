"""
Database endpoints for the sync run.

Provides a MySQL endpoint that exposes statement execution, streaming reads,
prepared statements and schema introspection over a single connection.
"""

from .base import (
    ColumnInfo,
    EndpointClosedError,
    EndpointError,
    PreparedStatement,
)
from .mysql import TEXT_CONVERSIONS, MySQLEndpoint

__all__ = [
    "ColumnInfo",
    "EndpointError",
    "EndpointClosedError",
    "PreparedStatement",
    "MySQLEndpoint",
    "TEXT_CONVERSIONS",
]
