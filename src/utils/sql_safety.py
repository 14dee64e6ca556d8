"""
SQL safety utilities for preventing SQL injection.

MySQL cannot bind identifiers as parameters, so table, column and database
names that end up inside generated SQL are validated and backtick-quoted here.
Values always travel as bound parameters.
"""

import re


# ASCII letters, digits, underscore and dollar; MySQL rejects names made only of digits
VALID_IDENTIFIER = re.compile(r"(?![0-9]+\Z)[A-Za-z0-9_$]+")

# MySQL limit for table, column, database and trigger names
MAX_IDENTIFIER_LENGTH = 64


def validate_identifier(identifier: str) -> None:
    """
    Validate a SQL identifier (database, table, column or trigger name).

    Args:
        identifier: The identifier to validate

    Raises:
        ValueError: If the identifier contains invalid characters
    """
    if not identifier:
        raise ValueError("SQL identifier cannot be empty")

    if not isinstance(identifier, str) or not VALID_IDENTIFIER.fullmatch(identifier):
        raise ValueError(
            f"Invalid SQL identifier: {identifier!r}. "
            "Only ASCII letters, digits, underscores and dollar signs are allowed, "
            "and it cannot consist of digits only."
        )

    if len(identifier) > MAX_IDENTIFIER_LENGTH:
        raise ValueError(
            f"Invalid SQL identifier: {identifier!r}. "
            f"Identifiers are limited to {MAX_IDENTIFIER_LENGTH} characters."
        )


def quote_identifier(identifier: str, strict: bool = True) -> str:
    """
    Safely quote a MySQL identifier.

    Args:
        identifier: The identifier to quote
        strict: Reject anything outside the ASCII allowlist. When False the
            identifier is accepted as-is and embedded backticks are doubled.

    Returns:
        Backtick-quoted identifier safe for use in SQL

    Raises:
        ValueError: If the identifier is invalid
    """
    if strict:
        validate_identifier(identifier)
        return f"`{identifier}`"

    if not identifier:
        raise ValueError("SQL identifier cannot be empty")
    if "\x00" in identifier:
        raise ValueError(f"Invalid SQL identifier: {identifier!r}")

    return "`" + identifier.replace("`", "``") + "`"


def quote_qualified(database: str, table: str, strict: bool = True) -> str:
    """
    Quote a database-qualified table reference (`database`.`table`).

    Args:
        database: Database (schema) name
        table: Table name
        strict: See quote_identifier

    Returns:
        Quoted qualified reference
    """
    return f"{quote_identifier(database, strict)}.{quote_identifier(table, strict)}"


def quote_columns(columns: list[str], strict: bool = True) -> str:
    """Quote and comma-join a list of column names."""
    if not columns:
        raise ValueError("Column list cannot be empty")
    return ", ".join(quote_identifier(column, strict) for column in columns)


def validate_integer_param(value: int, param_name: str, min_value: int = 0) -> None:
    """
    Validate an integer parameter for SQL queries.

    Args:
        value: The value to validate
        param_name: Name of the parameter (for error messages)
        min_value: Minimum allowed value (default 0)

    Raises:
        ValueError: If the value is not a valid integer or below minimum
    """
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValueError(
            f"Invalid {param_name}: {value!r}. Must be an integer."
        )

    if value < min_value:
        raise ValueError(
            f"Invalid {param_name}: {value}. Must be >= {min_value}."
        )
