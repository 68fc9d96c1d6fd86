"""Identifier and literal safety helpers.

Identifiers cannot be bound as parameters, so table and column names are
interpolated into SQL text. ``validate_identifier`` is the only gate in
front of that interpolation: callers reject names that fail it, they never
try to repair them. Quoting is applied after validation, never instead of it.

String literals are inlined only where binding is impossible or would
mismatch the column type (DDL defaults, row ids, PostgreSQL values).
"""

from __future__ import annotations

from ..exceptions import InvalidRequestError
from .backend import Dialect

IDENTIFIER_MAX_LENGTH = 64


def validate_identifier(name: object) -> bool:
    """Check that a table or column name is safe to interpolate.

    Accepts non-empty strings of at most 64 characters made of letters,
    digits, ``_`` and ``-`` that do not start with a digit.
    """
    if not isinstance(name, str) or not name or len(name) > IDENTIFIER_MAX_LENGTH:
        return False
    if name[0].isdigit():
        return False
    return all(c.isalnum() or c in "_-" for c in name)


def require_identifier(name: object, kind: str = "identifier") -> str:
    """Return ``name`` if it is a valid identifier.

    Raises:
        InvalidRequestError: Naming the offending value
    """
    if not validate_identifier(name):
        raise InvalidRequestError(f"Invalid {kind}: {name}")
    assert isinstance(name, str)
    return name


def quote_identifier(name: str, dialect: Dialect) -> str:
    """Quote an identifier for the dialect, doubling embedded quote characters.

    PostgreSQL and SQLite use double quotes, MySQL uses backticks.
    """
    if dialect == Dialect.MYSQL:
        escaped = name.replace("`", "``")
        return f"`{escaped}`"
    escaped = name.replace('"', '""')
    return f'"{escaped}"'


def escape_string_literal(value: str, dialect: Dialect) -> str:
    """Escape a value as a single-quoted SQL string literal.

    Single quotes are doubled. MySQL also treats backslash as an escape
    character inside literals, so backslashes are doubled there as well.
    """
    if dialect == Dialect.MYSQL:
        value = value.replace("\\", "\\\\")
    escaped = value.replace("'", "''")
    return f"'{escaped}'"
