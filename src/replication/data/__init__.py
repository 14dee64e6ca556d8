"""
Row data handling: zero-date sanitization and the initial bulk copy.
"""

from .migrator import (
    DEFAULT_BATCH_SIZE,
    DataMigrator,
    build_insert_statement,
    build_select_statement,
)
from .sanitizer import (
    DEFAULT_FALLBACK_DATE,
    ZERO_DATE_SENTINELS,
    is_zero_date,
    sanitize_row,
)

__all__ = [
    'DataMigrator',
    'build_insert_statement',
    'build_select_statement',
    'sanitize_row',
    'is_zero_date',
    'ZERO_DATE_SENTINELS',
    'DEFAULT_FALLBACK_DATE',
    'DEFAULT_BATCH_SIZE',
]
