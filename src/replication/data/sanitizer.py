"""
Row value sanitization.

MySQL uses '0000-00-00' and '0000-00-00 00:00:00' as placeholders for
uninitialized DATE/DATETIME/TIMESTAMP values. A destination in strict mode, or
a column whose default was rewritten to NULL, rejects them, so they are
replaced with a fixed, in-range fallback date before the insert.
"""

from collections.abc import Mapping
from typing import Any

ZERO_DATE_SENTINELS = frozenset({"0000-00-00 00:00:00", "0000-00-00"})

DEFAULT_FALLBACK_DATE = "1971-01-01"


def is_zero_date(value: Any) -> bool:
    """True only for the exact zero-date sentinel strings."""
    return isinstance(value, str) and value in ZERO_DATE_SENTINELS


def sanitize_row(
    row: Mapping[str, Any],
    fallback: str = DEFAULT_FALLBACK_DATE,
) -> dict[str, Any]:
    """
    Replace zero-date sentinels in a row.

    Args:
        row: Column name -> value, in table column order
        fallback: Date literal substituted for zero dates

    Returns:
        A new mapping in the same column order; every non-sentinel value,
        including None and bytes, is passed through unchanged
    """
    return {
        column: fallback if is_zero_date(value) else value
        for column, value in row.items()
    }
