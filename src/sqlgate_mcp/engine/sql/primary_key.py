"""Primary-key resolution for update/delete by id."""

from __future__ import annotations

import logging

from .backend import DatabaseBackendBase, Dialect
from .dialects import get_strategy
from .identifiers import validate_identifier
from .normalizer import normalize_rows

logger = logging.getLogger(__name__)

FALLBACK_PRIMARY_KEY = "id"


async def resolve_primary_key(
    backend: DatabaseBackendBase, dialect: Dialect, table: str, database: str
) -> str:
    """Look up the table's primary-key column.

    The first key column wins for composite keys. Falls back to ``id`` when
    the table declares no primary key, when the catalog returns a name that
    is not a valid identifier, or when the lookup itself fails.

    Args:
        backend: Session backend
        dialect: Session dialect
        table: Validated table name
        database: Session database name

    Returns:
        Primary-key column name
    """
    catalog = get_strategy(dialect).primary_key_query(table, database)
    try:
        result = await backend.query(catalog.sql, catalog.params)
    except Exception as e:
        logger.warning(
            f"Primary key lookup for '{table}' failed, using '{FALLBACK_PRIMARY_KEY}': {e}"
        )
        return FALLBACK_PRIMARY_KEY

    rows = normalize_rows(result.rows)
    if rows:
        column = rows[0].get("column_name")
        if isinstance(column, str) and validate_identifier(column):
            return column

    logger.debug(f"No primary key found for '{table}', using '{FALLBACK_PRIMARY_KEY}'")
    return FALLBACK_PRIMARY_KEY
