"""Dialect layer: backends, SQL construction and result normalization.

Three engines are supported: PostgreSQL (asyncpg), MySQL (aiomysql) and
SQLite (sqlite3 on the default executor). Everything that differs between
them lives behind ``get_strategy(dialect)``.

Usage:
    from sqlgate_mcp.engine.sql import Dialect, QueryBuilder, get_strategy

    builder = QueryBuilder(get_strategy(Dialect.MYSQL))
    builder.delete_by_id("users", "id", "42")
    # -> Statement("DELETE FROM `users` WHERE `id` = '42'")

The introspector and primary-key resolver build on the API models and are
imported from their own modules.
"""

from .backend import (
    ConnectionConfig,
    DatabaseBackendBase,
    Dialect,
    Params,
    QueryResult,
    create_backend,
)
from .dialects import CatalogQuery, DialectStrategy, get_strategy
from .identifiers import escape_string_literal, quote_identifier, validate_identifier
from .normalizer import ProjectionMode, ProjectionPlan, RowNormalizer, normalize_rows
from .query_builder import Pagination, QueryBuilder, Statement

__all__ = [
    # Core types
    "ConnectionConfig",
    "DatabaseBackendBase",
    "Dialect",
    "Params",
    "QueryResult",
    "create_backend",
    # Dialect strategies
    "CatalogQuery",
    "DialectStrategy",
    "get_strategy",
    # Identifier safety
    "escape_string_literal",
    "quote_identifier",
    "validate_identifier",
    # Statement construction
    "Pagination",
    "QueryBuilder",
    "Statement",
    # Results
    "ProjectionMode",
    "ProjectionPlan",
    "RowNormalizer",
    "normalize_rows",
]
