"""
Table definition handling.

Normalizes definitions captured from the origin so they can be replayed on
the destination.
"""

from .normalizer import (
    NULLABLE_NULL_DEFAULT,
    ZERO_DATE_DEFAULT_REWRITES,
    build_create_statement,
    normalize_table_definition,
    rewrite_zero_date_defaults,
    strip_create_keyword,
)

__all__ = [
    'normalize_table_definition',
    'rewrite_zero_date_defaults',
    'strip_create_keyword',
    'build_create_statement',
    'ZERO_DATE_DEFAULT_REWRITES',
    'NULLABLE_NULL_DEFAULT',
]
