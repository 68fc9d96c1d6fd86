"""Dialect strategy objects.

One strategy per dialect holds every formatting and catalog decision that
differs between engines: identifier quoting, placeholder style, literal
rendering, the logical-to-native type map, and the catalog query for each
kind of schema lookup. Builders, the introspector and the primary-key
resolver call through ``get_strategy(dialect)`` instead of branching.

Catalog queries alias their output columns to the same names on every
dialect so the introspector can map rows uniformly:

    tables        name, table_type, row_count_estimate
    columns       name, data_type, is_nullable, default_value, is_primary_key
    indexes       name, is_unique, is_primary[, column_names]
    index columns column_name
    foreign keys  constraint_name, column_name, foreign_table, foreign_column
    primary key   column_name
    column names  column_name
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, ClassVar

from .backend import Dialect
from .identifiers import escape_string_literal, quote_identifier

# Caller-facing logical column types; anything else maps to TEXT
LOGICAL_TYPES = ("TEXT", "INTEGER", "BOOLEAN", "DATETIME", "FLOAT", "UUID")


@dataclass(frozen=True)
class CatalogQuery:
    """A catalog statement with its bound parameters."""

    sql: str
    params: tuple[Any, ...] = ()


class DialectStrategy(ABC):
    """Per-dialect SQL formatting and catalog lookups."""

    dialect: ClassVar[Dialect]
    type_map: ClassVar[dict[str, str]]
    auto_increment_type: ClassVar[str]
    version_sql: ClassVar[str] = "SELECT version() AS version"

    # Inline values as literals instead of binding them
    inline_values: ClassVar[bool] = False

    def quote(self, name: str) -> str:
        return quote_identifier(name, self.dialect)

    def literal(self, value: str) -> str:
        return escape_string_literal(value, self.dialect)

    @abstractmethod
    def placeholder(self, index: int) -> str:
        """Placeholder for the 0-based parameter ``index``."""

    def native_type(self, logical_type: str) -> str:
        """Map a logical column type to this dialect's type name."""
        return self.type_map.get(logical_type.strip().upper(), self.type_map["TEXT"])

    def boolean_literal(self, value: bool) -> str:
        return "1" if value else "0"

    def text_projection(self, column: str) -> str | None:
        """Select-list expression reading ``column`` as text, if needed."""
        return None

    @property
    def requires_text_projection(self) -> bool:
        return self.text_projection("c") is not None

    @abstractmethod
    def tables_query(self, database: str) -> CatalogQuery: ...

    @abstractmethod
    def columns_query(self, table: str, database: str) -> CatalogQuery: ...

    @abstractmethod
    def indexes_query(self, table: str, database: str) -> CatalogQuery: ...

    def index_columns_query(self, index_name: str) -> CatalogQuery | None:
        """Per-index column lookup; None when ``indexes_query`` aggregates them."""
        return None

    @abstractmethod
    def foreign_keys_query(self, table: str, database: str) -> CatalogQuery: ...

    @abstractmethod
    def primary_key_query(self, table: str, database: str) -> CatalogQuery: ...

    @abstractmethod
    def column_names_query(self, table: str, database: str) -> CatalogQuery: ...

    @abstractmethod
    def table_count_query(self, database: str) -> CatalogQuery: ...


class PostgresDialect(DialectStrategy):
    """PostgreSQL: double quotes, $n placeholders, ``public`` schema catalogs."""

    dialect = Dialect.POSTGRES
    type_map = {
        "TEXT": "TEXT",
        "INTEGER": "INTEGER",
        "BOOLEAN": "BOOLEAN",
        "DATETIME": "TIMESTAMP",
        "FLOAT": "DOUBLE PRECISION",
        "UUID": "UUID",
    }
    auto_increment_type = "SERIAL"

    # asyncpg binds with the column's exact type; literals get implicit casts
    inline_values = True

    def placeholder(self, index: int) -> str:
        return f"${index + 1}"

    def boolean_literal(self, value: bool) -> str:
        return "TRUE" if value else "FALSE"

    def text_projection(self, column: str) -> str | None:
        quoted = self.quote(column)
        return f"{quoted}::text AS {quoted}"

    def tables_query(self, database: str) -> CatalogQuery:
        return CatalogQuery(
            "SELECT table_name AS name, table_type, NULL::bigint AS row_count_estimate "
            "FROM information_schema.tables "
            "WHERE table_schema = 'public' "
            "ORDER BY table_name"
        )

    def columns_query(self, table: str, database: str) -> CatalogQuery:
        return CatalogQuery(
            "SELECT c.column_name AS name, c.data_type, c.is_nullable, "
            "c.column_default AS default_value, "
            "EXISTS ("
            "SELECT 1 FROM information_schema.table_constraints tc "
            "JOIN information_schema.key_column_usage kcu "
            "ON tc.constraint_name = kcu.constraint_name "
            "AND tc.table_schema = kcu.table_schema "
            "AND tc.table_name = kcu.table_name "
            "WHERE tc.constraint_type = 'PRIMARY KEY' "
            "AND tc.table_schema = c.table_schema "
            "AND tc.table_name = c.table_name "
            "AND kcu.column_name = c.column_name"
            ") AS is_primary_key "
            "FROM information_schema.columns c "
            "WHERE c.table_schema = 'public' AND c.table_name = $1 "
            "ORDER BY c.ordinal_position",
            (table,),
        )

    def indexes_query(self, table: str, database: str) -> CatalogQuery:
        return CatalogQuery(
            "SELECT i.relname AS name, ix.indisunique AS is_unique, "
            "ix.indisprimary AS is_primary, "
            "string_agg(a.attname, ',' ORDER BY array_position(ix.indkey::int2[], a.attnum)) "
            "AS column_names "
            "FROM pg_class t "
            "JOIN pg_namespace n ON n.oid = t.relnamespace "
            "JOIN pg_index ix ON t.oid = ix.indrelid "
            "JOIN pg_class i ON i.oid = ix.indexrelid "
            "JOIN pg_attribute a ON a.attrelid = t.oid AND a.attnum = ANY(ix.indkey) "
            "WHERE n.nspname = 'public' AND t.relname = $1 "
            "GROUP BY i.relname, ix.indisunique, ix.indisprimary "
            "ORDER BY i.relname",
            (table,),
        )

    def foreign_keys_query(self, table: str, database: str) -> CatalogQuery:
        return CatalogQuery(
            "SELECT tc.constraint_name, kcu.column_name, "
            "rk.table_name AS foreign_table, rk.column_name AS foreign_column "
            "FROM information_schema.table_constraints tc "
            "JOIN information_schema.key_column_usage kcu "
            "ON tc.constraint_name = kcu.constraint_name "
            "AND tc.table_schema = kcu.table_schema "
            "JOIN information_schema.referential_constraints rc "
            "ON rc.constraint_name = tc.constraint_name "
            "AND rc.constraint_schema = tc.table_schema "
            # Pair each local column with the referenced column at the same position
            "JOIN information_schema.key_column_usage rk "
            "ON rk.constraint_name = rc.unique_constraint_name "
            "AND rk.constraint_schema = rc.unique_constraint_schema "
            "AND rk.ordinal_position = kcu.position_in_unique_constraint "
            "WHERE tc.constraint_type = 'FOREIGN KEY' "
            "AND tc.table_schema = 'public' AND tc.table_name = $1 "
            "ORDER BY tc.constraint_name, kcu.ordinal_position",
            (table,),
        )

    def primary_key_query(self, table: str, database: str) -> CatalogQuery:
        return CatalogQuery(
            "SELECT kcu.column_name "
            "FROM information_schema.table_constraints tc "
            "JOIN information_schema.key_column_usage kcu "
            "ON tc.constraint_name = kcu.constraint_name "
            "AND tc.table_schema = kcu.table_schema "
            "WHERE tc.constraint_type = 'PRIMARY KEY' "
            "AND tc.table_schema = 'public' AND tc.table_name = $1 "
            "ORDER BY kcu.ordinal_position "
            "LIMIT 1",
            (table,),
        )

    def column_names_query(self, table: str, database: str) -> CatalogQuery:
        return CatalogQuery(
            "SELECT column_name FROM information_schema.columns "
            "WHERE table_schema = 'public' AND table_name = $1 "
            "ORDER BY ordinal_position",
            (table,),
        )

    def table_count_query(self, database: str) -> CatalogQuery:
        return CatalogQuery(
            "SELECT COUNT(*) AS table_count FROM information_schema.tables "
            "WHERE table_schema = 'public'"
        )


class MySQLDialect(DialectStrategy):
    """MySQL: backticks, ? placeholders, catalogs filtered by schema name."""

    dialect = Dialect.MYSQL
    type_map = {
        "TEXT": "TEXT",
        "INTEGER": "INT",
        "BOOLEAN": "TINYINT(1)",
        "DATETIME": "DATETIME",
        "FLOAT": "DOUBLE",
        "UUID": "CHAR(36)",
    }
    auto_increment_type = "INT AUTO_INCREMENT"

    def placeholder(self, index: int) -> str:
        return "?"

    def text_projection(self, column: str) -> str | None:
        quoted = self.quote(column)
        return f"CAST({quoted} AS CHAR) AS {quoted}"

    def tables_query(self, database: str) -> CatalogQuery:
        return CatalogQuery(
            "SELECT TABLE_NAME AS name, TABLE_TYPE AS table_type, "
            "TABLE_ROWS AS row_count_estimate "
            "FROM information_schema.TABLES "
            "WHERE TABLE_SCHEMA = ? "
            "ORDER BY TABLE_NAME",
            (database,),
        )

    def columns_query(self, table: str, database: str) -> CatalogQuery:
        return CatalogQuery(
            "SELECT COLUMN_NAME AS name, DATA_TYPE AS data_type, "
            "IS_NULLABLE AS is_nullable, COLUMN_DEFAULT AS default_value, "
            "(COLUMN_KEY = 'PRI') AS is_primary_key "
            "FROM information_schema.COLUMNS "
            "WHERE TABLE_SCHEMA = ? AND TABLE_NAME = ? "
            "ORDER BY ORDINAL_POSITION",
            (database, table),
        )

    def indexes_query(self, table: str, database: str) -> CatalogQuery:
        return CatalogQuery(
            "SELECT INDEX_NAME AS name, (NON_UNIQUE = 0) AS is_unique, "
            "(INDEX_NAME = 'PRIMARY') AS is_primary, "
            "GROUP_CONCAT(COLUMN_NAME ORDER BY SEQ_IN_INDEX SEPARATOR ',') AS column_names "
            "FROM information_schema.STATISTICS "
            "WHERE TABLE_SCHEMA = ? AND TABLE_NAME = ? "
            "GROUP BY INDEX_NAME, NON_UNIQUE "
            "ORDER BY INDEX_NAME",
            (database, table),
        )

    def foreign_keys_query(self, table: str, database: str) -> CatalogQuery:
        return CatalogQuery(
            "SELECT CONSTRAINT_NAME AS constraint_name, COLUMN_NAME AS column_name, "
            "REFERENCED_TABLE_NAME AS foreign_table, "
            "REFERENCED_COLUMN_NAME AS foreign_column "
            "FROM information_schema.KEY_COLUMN_USAGE "
            "WHERE TABLE_SCHEMA = ? AND TABLE_NAME = ? "
            "AND REFERENCED_TABLE_NAME IS NOT NULL "
            "ORDER BY CONSTRAINT_NAME, ORDINAL_POSITION",
            (database, table),
        )

    def primary_key_query(self, table: str, database: str) -> CatalogQuery:
        return CatalogQuery(
            "SELECT COLUMN_NAME AS column_name "
            "FROM information_schema.KEY_COLUMN_USAGE "
            "WHERE TABLE_SCHEMA = ? AND TABLE_NAME = ? AND CONSTRAINT_NAME = 'PRIMARY' "
            "ORDER BY ORDINAL_POSITION "
            "LIMIT 1",
            (database, table),
        )

    def column_names_query(self, table: str, database: str) -> CatalogQuery:
        return CatalogQuery(
            "SELECT COLUMN_NAME AS column_name FROM information_schema.COLUMNS "
            "WHERE TABLE_SCHEMA = ? AND TABLE_NAME = ? "
            "ORDER BY ORDINAL_POSITION",
            (database, table),
        )

    def table_count_query(self, database: str) -> CatalogQuery:
        return CatalogQuery(
            "SELECT COUNT(*) AS table_count FROM information_schema.TABLES "
            "WHERE TABLE_SCHEMA = ?",
            (database,),
        )


class SqliteDialect(DialectStrategy):
    """SQLite: double quotes, ? placeholders, pragma table-valued functions."""

    dialect = Dialect.SQLITE
    type_map = {
        "TEXT": "TEXT",
        "INTEGER": "INTEGER",
        "BOOLEAN": "INTEGER",
        "DATETIME": "TEXT",
        "FLOAT": "REAL",
        "UUID": "TEXT",
    }
    # Only auto-increments when paired with PRIMARY KEY (rowid alias)
    auto_increment_type = "INTEGER"
    version_sql = "SELECT sqlite_version() AS version"

    def placeholder(self, index: int) -> str:
        return "?"

    def tables_query(self, database: str) -> CatalogQuery:
        return CatalogQuery(
            "SELECT name, type AS table_type, NULL AS row_count_estimate "
            "FROM sqlite_master "
            "WHERE type IN ('table', 'view') AND name NOT LIKE 'sqlite_%' "
            "ORDER BY name"
        )

    def columns_query(self, table: str, database: str) -> CatalogQuery:
        return CatalogQuery(
            "SELECT name, type AS data_type, "
            "CASE WHEN \"notnull\" = 0 THEN 'YES' ELSE 'NO' END AS is_nullable, "
            "dflt_value AS default_value, pk AS is_primary_key "
            "FROM pragma_table_info(?) "
            "ORDER BY cid",
            (table,),
        )

    def indexes_query(self, table: str, database: str) -> CatalogQuery:
        return CatalogQuery(
            "SELECT name, \"unique\" AS is_unique, (origin = 'pk') AS is_primary "
            "FROM pragma_index_list(?) "
            "ORDER BY name",
            (table,),
        )

    def index_columns_query(self, index_name: str) -> CatalogQuery | None:
        return CatalogQuery(
            "SELECT name AS column_name FROM pragma_index_info(?) ORDER BY seqno",
            (index_name,),
        )

    def foreign_keys_query(self, table: str, database: str) -> CatalogQuery:
        # No stable constraint name: derive one from the pragma row id
        return CatalogQuery(
            "SELECT 'fk_' || ? || '_' || id AS constraint_name, "
            '"from" AS column_name, "table" AS foreign_table, "to" AS foreign_column '
            "FROM pragma_foreign_key_list(?) "
            "ORDER BY id, seq",
            (table, table),
        )

    def primary_key_query(self, table: str, database: str) -> CatalogQuery:
        return CatalogQuery(
            "SELECT name AS column_name FROM pragma_table_info(?) "
            "WHERE pk > 0 ORDER BY pk LIMIT 1",
            (table,),
        )

    def column_names_query(self, table: str, database: str) -> CatalogQuery:
        return CatalogQuery(
            "SELECT name AS column_name FROM pragma_table_info(?) ORDER BY cid",
            (table,),
        )

    def table_count_query(self, database: str) -> CatalogQuery:
        return CatalogQuery(
            "SELECT COUNT(*) AS table_count FROM sqlite_master "
            "WHERE type = 'table' AND name NOT LIKE 'sqlite_%'"
        )


_STRATEGIES: dict[Dialect, DialectStrategy] = {
    Dialect.POSTGRES: PostgresDialect(),
    Dialect.MYSQL: MySQLDialect(),
    Dialect.SQLITE: SqliteDialect(),
}


def get_strategy(dialect: Dialect) -> DialectStrategy:
    """Return the strategy object for a dialect."""
    return _STRATEGIES[dialect]
