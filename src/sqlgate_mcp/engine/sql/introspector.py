"""Schema introspection.

Runs the session dialect's catalog queries and maps the rows into
``TableInfo``/``ColumnInfo``/``IndexInfo``/``ForeignKeyInfo``. Catalog rows
pass through the normalizer first, so the mapping below only ever sees
``str | int | float | bool | None`` whatever the engine returned.
"""

from __future__ import annotations

import logging

from ..exceptions import IntrospectionError
from ..models import ColumnInfo, ForeignKeyInfo, IndexInfo, TableInfo
from .backend import DatabaseBackendBase, Dialect
from .dialects import CatalogQuery, get_strategy
from .normalizer import Scalar, normalize_rows

logger = logging.getLogger(__name__)

TABLE_TYPES = {"BASE TABLE": "TABLE", "TABLE": "TABLE", "VIEW": "VIEW", "SYSTEM VIEW": "VIEW"}


def normalize_table_type(value: Scalar) -> str:
    """Map catalog table types to TABLE or VIEW, ignoring case."""
    text = str(value or "").strip().upper()
    return TABLE_TYPES.get(text, text or "TABLE")


def normalize_nullable(value: Scalar) -> bool:
    """Map YES/NO (any case) or a boolean to a nullability flag."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().upper() == "YES"
    return bool(value)


def normalize_flag(value: Scalar) -> bool:
    """Map booleans, 0/1 and SQLite's primary-key rank to a flag."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value > 0
    if isinstance(value, str):
        return value.strip().lower() in ("1", "t", "true", "yes")
    return False


def _as_int(value: Scalar) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class SchemaIntrospector:
    """Catalog lookups for one session.

    Args:
        backend: Session backend
        dialect: Session dialect
        database: Session database name (MySQL catalogs filter on it)
    """

    def __init__(self, backend: DatabaseBackendBase, dialect: Dialect, database: str):
        self.backend = backend
        self.dialect = dialect
        self.database = database
        self.strategy = get_strategy(dialect)

    async def _fetch(self, catalog: CatalogQuery) -> list[dict[str, Scalar]]:
        logger.debug(f"Catalog query: {catalog.sql}")
        try:
            result = await self.backend.query(catalog.sql, catalog.params)
        except Exception as e:
            raise IntrospectionError(str(e)) from e
        return normalize_rows(result.rows)

    async def list_tables(self) -> list[TableInfo]:
        rows = await self._fetch(self.strategy.tables_query(self.database))
        return [
            TableInfo(
                name=str(row["name"]),
                table_type=normalize_table_type(row.get("table_type")),
                row_count_estimate=_as_int(row.get("row_count_estimate")),
            )
            for row in rows
        ]

    async def list_columns(self, table: str) -> list[ColumnInfo]:
        rows = await self._fetch(self.strategy.columns_query(table, self.database))
        columns = []
        for row in rows:
            default = row.get("default_value")
            columns.append(
                ColumnInfo(
                    name=str(row["name"]),
                    data_type=str(row.get("data_type") or ""),
                    nullable=normalize_nullable(row.get("is_nullable")),
                    is_primary_key=normalize_flag(row.get("is_primary_key")),
                    default_value=None if default is None else str(default),
                )
            )
        return columns

    async def list_indexes(self, table: str) -> list[IndexInfo]:
        """List indexes with their columns.

        SQLite needs one extra catalog query per index to collect the
        columns; the other dialects aggregate them into ``column_names``.
        """
        rows = await self._fetch(self.strategy.indexes_query(table, self.database))
        indexes = []
        for row in rows:
            name = str(row["name"])
            per_index = self.strategy.index_columns_query(name)
            if per_index is not None:
                column_rows = await self._fetch(per_index)
                column_names = [str(r["column_name"]) for r in column_rows if r.get("column_name")]
            else:
                aggregated = str(row.get("column_names") or "")
                column_names = [c for c in aggregated.split(",") if c]
            indexes.append(
                IndexInfo(
                    name=name,
                    column_names=column_names,
                    is_unique=normalize_flag(row.get("is_unique")),
                    is_primary=normalize_flag(row.get("is_primary")),
                )
            )
        return indexes

    async def list_foreign_keys(self, table: str) -> list[ForeignKeyInfo]:
        rows = await self._fetch(self.strategy.foreign_keys_query(table, self.database))
        return [
            ForeignKeyInfo(
                constraint_name=str(row["constraint_name"]),
                column_name=str(row["column_name"]),
                foreign_table=str(row["foreign_table"]),
                foreign_column=str(row["foreign_column"]),
            )
            for row in rows
        ]

    async def probe_column_names(self, table: str) -> list[str] | None:
        """Return the table's column names, or None if the catalog query fails.

        Used to plan text-cast reads; a failure here degrades the read to
        ``SELECT *`` instead of failing it.
        """
        try:
            rows = await self._fetch(self.strategy.column_names_query(table, self.database))
        except IntrospectionError as e:
            logger.warning(f"Column probe for '{table}' failed, reading uncast: {e}")
            return None
        return [str(row["column_name"]) for row in rows if row.get("column_name") is not None]

    async def server_version(self) -> str | None:
        """Engine version string, or None if it cannot be read."""
        try:
            rows = await self._fetch(CatalogQuery(self.strategy.version_sql))
        except IntrospectionError as e:
            logger.warning(f"Version probe failed: {e}")
            return None
        if not rows or rows[0].get("version") is None:
            return None
        return str(rows[0]["version"])

    async def table_count(self) -> int | None:
        """Number of user tables, or None if it cannot be read."""
        try:
            rows = await self._fetch(self.strategy.table_count_query(self.database))
        except IntrospectionError as e:
            logger.warning(f"Table count failed: {e}")
            return None
        if not rows:
            return None
        return _as_int(rows[0].get("table_count"))
