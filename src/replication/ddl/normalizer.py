"""
Table definition normalization.

Rewrites a definition captured with SHOW CREATE TABLE so it can be replayed on
a destination running a strict sql_mode:

- zero-date defaults ('0000-00-00', '0000-00-00 00:00:00') become
  NULL DEFAULT NULL
- the leading CREATE TABLE keyword is stripped so the caller can re-issue it
  against a destination-qualified table reference

This is textual substitution driven by an ordered pattern table, not a DDL
parser.
"""

import re

from utils.sql_safety import quote_identifier

NULLABLE_NULL_DEFAULT = "NULL DEFAULT NULL"

_ZERO_TIMESTAMP = r"'0000-00-00 00:00:00(?:\.0+)?'"
_ZERO_DATE = r"'0000-00-00'"

# Order matters: the NOT NULL forms must be rewritten before the bare NULL
# forms, which would otherwise match their tail and leave "NOT NULL DEFAULT NULL".
ZERO_DATE_DEFAULT_REWRITES: tuple[tuple[re.Pattern, str], ...] = (
    (re.compile(rf"NOT NULL DEFAULT {_ZERO_TIMESTAMP}"), NULLABLE_NULL_DEFAULT),
    (re.compile(rf"NOT NULL DEFAULT {_ZERO_DATE}"), NULLABLE_NULL_DEFAULT),
    (re.compile(rf"NULL DEFAULT {_ZERO_TIMESTAMP}"), NULLABLE_NULL_DEFAULT),
    (re.compile(rf"NULL DEFAULT {_ZERO_DATE}"), NULLABLE_NULL_DEFAULT),
)

_CREATE_TABLE_PREFIX = re.compile(r"^\s*CREATE\s+TABLE\s+", re.IGNORECASE)


def rewrite_zero_date_defaults(definition: str) -> str:
    """Replace every zero-date column default with NULL DEFAULT NULL."""
    for pattern, replacement in ZERO_DATE_DEFAULT_REWRITES:
        definition = pattern.sub(replacement, definition)
    return definition


def strip_create_keyword(definition: str) -> str:
    """
    Remove the leading CREATE TABLE keyword.

    Returns the remainder starting at the table name. A definition without the
    keyword is returned with leading whitespace removed.
    """
    return _CREATE_TABLE_PREFIX.sub("", definition, count=1).lstrip()


def normalize_table_definition(definition: str) -> str:
    """
    Normalize a captured table definition for replay on the destination.

    Args:
        definition: DDL text as returned by SHOW CREATE TABLE

    Returns:
        The definition without its CREATE TABLE keyword and with zero-date
        defaults rewritten; the input string is left untouched
    """
    return strip_create_keyword(rewrite_zero_date_defaults(definition))


def build_create_statement(
    database: str,
    definition: str,
    strict_identifiers: bool = True,
) -> str:
    """
    Build the destination CREATE TABLE statement.

    Args:
        database: Destination database name
        definition: Normalized definition (see normalize_table_definition)
        strict_identifiers: Apply the identifier allowlist to the database name

    Returns:
        "CREATE TABLE `database`.<definition>"
    """
    return f"CREATE TABLE {quote_identifier(database, strict_identifiers)}.{definition}"
