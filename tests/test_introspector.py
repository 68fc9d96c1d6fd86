"""Tests for schema introspection and primary-key resolution.

SQLite runs against real database files; PostgreSQL and MySQL run against
FakeBackend with canned catalog rows.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator

import pytest
from conftest import FakeBackend

from sqlgate_mcp.engine.exceptions import IntrospectionError
from sqlgate_mcp.engine.models import ColumnInfo, ForeignKeyInfo, IndexInfo, TableInfo
from sqlgate_mcp.engine.sql import ConnectionConfig, Dialect
from sqlgate_mcp.engine.sql.introspector import (
    SchemaIntrospector,
    normalize_flag,
    normalize_nullable,
    normalize_table_type,
)
from sqlgate_mcp.engine.sql.primary_key import resolve_primary_key
from sqlgate_mcp.engine.sql.sqlite_backend import SqliteBackend

SCHEMA = [
    "CREATE TABLE users (id INTEGER PRIMARY KEY, email TEXT NOT NULL UNIQUE, "
    "name TEXT DEFAULT 'anon')",
    "CREATE TABLE posts (id INTEGER PRIMARY KEY, "
    "user_id INTEGER REFERENCES users(id) ON DELETE CASCADE, title TEXT)",
    "CREATE INDEX idx_posts_user ON posts (user_id, title)",
    "CREATE TABLE memberships (group_id INTEGER, user_id INTEGER, "
    "PRIMARY KEY (user_id, group_id))",
    "CREATE TABLE notes (body TEXT)",
    "CREATE VIEW named_users AS SELECT id, name FROM users",
]


@pytest.fixture
async def backend(db_path: str) -> AsyncGenerator[SqliteBackend, None]:
    """A SQLite backend with a small schema."""
    backend = SqliteBackend()
    await backend.connect(ConnectionConfig(dialect=Dialect.SQLITE, database=db_path))
    for statement in SCHEMA:
        await backend.execute(statement)
    yield backend
    await backend.disconnect()


@pytest.fixture
def introspector(backend: SqliteBackend, db_path: str) -> SchemaIntrospector:
    return SchemaIntrospector(backend, Dialect.SQLITE, db_path)


class TestNormalizers:
    """Tests for catalog value normalization."""

    @pytest.mark.parametrize(
        "raw,expected",
        [("BASE TABLE", "TABLE"), ("table", "TABLE"), ("view", "VIEW"), ("VIEW", "VIEW")],
    )
    def test_table_type(self, raw: str, expected: str) -> None:
        """Table types are TABLE or VIEW regardless of source casing."""
        assert normalize_table_type(raw) == expected

    @pytest.mark.parametrize(
        "raw,expected", [("YES", True), ("yes", True), ("NO", False), ("no", False), (True, True)]
    )
    def test_nullable(self, raw: object, expected: bool) -> None:
        """YES/NO strings map to booleans, case-insensitively."""
        assert normalize_nullable(raw) is expected  # type: ignore[arg-type]

    @pytest.mark.parametrize(
        "raw,expected", [(True, True), (False, False), (0, False), (1, True), (2, True)]
    )
    def test_flag(self, raw: object, expected: bool) -> None:
        """Booleans and SQLite primary-key ranks map to flags."""
        assert normalize_flag(raw) is expected  # type: ignore[arg-type]


class TestSqliteIntrospection:
    """Tests against a real SQLite database."""

    async def test_list_tables(self, introspector: SchemaIntrospector) -> None:
        """Tables and views are listed by name without row estimates."""
        tables = await introspector.list_tables()
        assert tables == [
            TableInfo(name="memberships", table_type="TABLE"),
            TableInfo(name="named_users", table_type="VIEW"),
            TableInfo(name="notes", table_type="TABLE"),
            TableInfo(name="posts", table_type="TABLE"),
            TableInfo(name="users", table_type="TABLE"),
        ]

    async def test_list_columns(self, introspector: SchemaIntrospector) -> None:
        """Columns carry nullability, key flag and default."""
        columns = await introspector.list_columns("users")
        assert columns == [
            ColumnInfo(name="id", data_type="INTEGER", nullable=True, is_primary_key=True),
            ColumnInfo(name="email", data_type="TEXT", nullable=False),
            ColumnInfo(name="name", data_type="TEXT", nullable=True, default_value="'anon'"),
        ]

    async def test_composite_key_columns(self, introspector: SchemaIntrospector) -> None:
        """Every column of a composite key is flagged."""
        columns = await introspector.list_columns("memberships")
        assert [c.is_primary_key for c in columns] == [True, True]

    async def test_list_indexes(self, introspector: SchemaIntrospector) -> None:
        """Index columns are collected per index in key order."""
        indexes = await introspector.list_indexes("posts")
        assert indexes == [
            IndexInfo(name="idx_posts_user", column_names=["user_id", "title"]),
        ]

    async def test_unique_constraint_index(self, introspector: SchemaIntrospector) -> None:
        """UNIQUE constraints show up as unique indexes."""
        indexes = await introspector.list_indexes("users")
        assert len(indexes) == 1
        assert indexes[0].column_names == ["email"]
        assert indexes[0].is_unique is True
        assert indexes[0].is_primary is False

    async def test_list_foreign_keys(self, introspector: SchemaIntrospector) -> None:
        """Foreign keys get a synthetic constraint name."""
        foreign_keys = await introspector.list_foreign_keys("posts")
        assert foreign_keys == [
            ForeignKeyInfo(
                constraint_name="fk_posts_0",
                column_name="user_id",
                foreign_table="users",
                foreign_column="id",
            )
        ]

    async def test_probe_column_names(self, introspector: SchemaIntrospector) -> None:
        """The probe returns column names in table order."""
        assert await introspector.probe_column_names("posts") == ["id", "user_id", "title"]

    async def test_unknown_table_has_no_columns(self, introspector: SchemaIntrospector) -> None:
        """Catalog lookups on missing tables return empty lists."""
        assert await introspector.list_columns("missing") == []

    async def test_version_and_count(self, introspector: SchemaIntrospector) -> None:
        """Version and table count (views excluded)."""
        version = await introspector.server_version()
        assert version is not None and version.startswith("3.")
        assert await introspector.table_count() == 4


class TestSqlitePrimaryKey:
    """Tests for primary-key resolution on SQLite."""

    async def test_declared_key(self, backend: SqliteBackend, db_path: str) -> None:
        """The declared key column is used."""
        assert await resolve_primary_key(backend, Dialect.SQLITE, "users", db_path) == "id"

    async def test_composite_key_first_column(self, backend: SqliteBackend, db_path: str) -> None:
        """Composite keys resolve to their first key column."""
        key = await resolve_primary_key(backend, Dialect.SQLITE, "memberships", db_path)
        assert key == "user_id"

    async def test_fallback_without_key(self, backend: SqliteBackend, db_path: str) -> None:
        """Tables without a key fall back to 'id'."""
        assert await resolve_primary_key(backend, Dialect.SQLITE, "notes", db_path) == "id"


class TestPostgresIntrospection:
    """Tests for PostgreSQL catalog mapping."""

    async def test_list_tables(self) -> None:
        """BASE TABLE and VIEW are normalized; no row estimate."""
        backend = FakeBackend(
            Dialect.POSTGRES,
            rows={
                "information_schema.tables": [
                    {"name": "users", "table_type": "BASE TABLE", "row_count_estimate": None},
                    {"name": "active", "table_type": "VIEW", "row_count_estimate": None},
                ]
            },
        )
        tables = await SchemaIntrospector(backend, Dialect.POSTGRES, "app").list_tables()
        assert tables == [
            TableInfo(name="users", table_type="TABLE"),
            TableInfo(name="active", table_type="VIEW"),
        ]
        assert "table_schema = 'public'" in backend.sql[0]

    async def test_list_columns_binds_table(self) -> None:
        """The table name is bound as $1."""
        backend = FakeBackend(
            Dialect.POSTGRES,
            rows={
                "information_schema.columns": [
                    {
                        "name": "id",
                        "data_type": "integer",
                        "is_nullable": "NO",
                        "default_value": "nextval('users_id_seq'::regclass)",
                        "is_primary_key": True,
                    }
                ]
            },
        )
        columns = await SchemaIntrospector(backend, Dialect.POSTGRES, "app").list_columns("users")
        assert columns == [
            ColumnInfo(
                name="id",
                data_type="integer",
                nullable=False,
                is_primary_key=True,
                default_value="nextval('users_id_seq'::regclass)",
            )
        ]
        sql, params = backend.statements[0]
        assert "c.table_name = $1" in sql
        assert params == ("users",)

    async def test_indexes_single_query(self) -> None:
        """Index columns come aggregated; no per-index query."""
        backend = FakeBackend(
            Dialect.POSTGRES,
            rows={
                "pg_index": [
                    {
                        "name": "users_pkey",
                        "is_unique": True,
                        "is_primary": True,
                        "column_names": "id",
                    },
                    {
                        "name": "users_name_idx",
                        "is_unique": False,
                        "is_primary": False,
                        "column_names": "last,first",
                    },
                ]
            },
        )
        indexes = await SchemaIntrospector(backend, Dialect.POSTGRES, "app").list_indexes("users")
        assert indexes == [
            IndexInfo(name="users_pkey", column_names=["id"], is_unique=True, is_primary=True),
            IndexInfo(name="users_name_idx", column_names=["last", "first"]),
        ]
        assert len(backend.statements) == 1

    async def test_failure_is_typed(self) -> None:
        """Catalog failures surface as IntrospectionError with the driver text."""
        backend = FakeBackend(Dialect.POSTGRES, fail_on=("information_schema",))
        introspector = SchemaIntrospector(backend, Dialect.POSTGRES, "app")
        with pytest.raises(IntrospectionError, match="engine rejected statement"):
            await introspector.list_foreign_keys("users")

    async def test_composite_foreign_key_pairs_by_position(self) -> None:
        """Multi-column keys pair local and referenced columns by position."""
        backend = FakeBackend(
            Dialect.POSTGRES,
            rows={
                "FOREIGN KEY": [
                    {
                        "constraint_name": "lines_order_fk",
                        "column_name": "order_region",
                        "foreign_table": "orders",
                        "foreign_column": "region",
                    },
                    {
                        "constraint_name": "lines_order_fk",
                        "column_name": "order_no",
                        "foreign_table": "orders",
                        "foreign_column": "number",
                    },
                ]
            },
        )
        introspector = SchemaIntrospector(backend, Dialect.POSTGRES, "app")
        foreign_keys = await introspector.list_foreign_keys("order_lines")

        assert [(fk.column_name, fk.foreign_column) for fk in foreign_keys] == [
            ("order_region", "region"),
            ("order_no", "number"),
        ]
        sql, params = backend.statements[0]
        assert "referential_constraints" in sql
        assert "rk.ordinal_position = kcu.position_in_unique_constraint" in sql
        assert "constraint_column_usage" not in sql
        assert params == ("order_lines",)

    async def test_probe_failure_returns_none(self) -> None:
        """A failed column probe yields None instead of raising."""
        backend = FakeBackend(Dialect.POSTGRES, fail_on=("information_schema.columns",))
        introspector = SchemaIntrospector(backend, Dialect.POSTGRES, "app")
        assert await introspector.probe_column_names("users") is None

    async def test_primary_key_lookup(self) -> None:
        """The catalog key column is returned."""
        backend = FakeBackend(
            Dialect.POSTGRES, rows={"PRIMARY KEY": [{"column_name": "order_id"}]}
        )
        assert await resolve_primary_key(backend, Dialect.POSTGRES, "orders", "app") == "order_id"

    async def test_primary_key_lookup_failure_falls_back(self) -> None:
        """A failing lookup falls back to 'id'."""
        backend = FakeBackend(Dialect.POSTGRES, fail_on=("PRIMARY KEY",))
        assert await resolve_primary_key(backend, Dialect.POSTGRES, "orders", "app") == "id"


class TestMySQLIntrospection:
    """Tests for MySQL catalog mapping."""

    async def test_list_tables_filters_by_database(self) -> None:
        """Catalogs are filtered by the session's database; estimates are kept."""
        backend = FakeBackend(
            Dialect.MYSQL,
            rows={
                "information_schema.TABLES": [
                    {"name": "orders", "table_type": "BASE TABLE", "row_count_estimate": 1200},
                ]
            },
        )
        tables = await SchemaIntrospector(backend, Dialect.MYSQL, "shop").list_tables()
        assert tables == [TableInfo(name="orders", table_type="TABLE", row_count_estimate=1200)]
        assert backend.statements[0][1] == ("shop",)

    async def test_list_columns_normalizes_encodings(self) -> None:
        """Byte strings, lowercase YES and integer flags are normalized."""
        backend = FakeBackend(
            Dialect.MYSQL,
            rows={
                "information_schema.COLUMNS": [
                    {
                        "name": "id",
                        "data_type": b"int",
                        "is_nullable": "NO",
                        "default_value": None,
                        "is_primary_key": 1,
                    },
                    {
                        "name": "note",
                        "data_type": "varchar",
                        "is_nullable": "yes",
                        "default_value": None,
                        "is_primary_key": 0,
                    },
                ]
            },
        )
        columns = await SchemaIntrospector(backend, Dialect.MYSQL, "shop").list_columns("orders")
        assert columns == [
            ColumnInfo(name="id", data_type="int", nullable=False, is_primary_key=True),
            ColumnInfo(name="note", data_type="varchar", nullable=True),
        ]
        assert backend.statements[0][1] == ("shop", "orders")

    async def test_indexes_grouped(self) -> None:
        """GROUP_CONCAT column lists are split in key order."""
        backend = FakeBackend(
            Dialect.MYSQL,
            rows={
                "information_schema.STATISTICS": [
                    {"name": "PRIMARY", "is_unique": 1, "is_primary": 1, "column_names": "id"},
                    {"name": "idx_a_b", "is_unique": 0, "is_primary": 0, "column_names": "a,b"},
                ]
            },
        )
        indexes = await SchemaIntrospector(backend, Dialect.MYSQL, "shop").list_indexes("orders")
        assert indexes[0] == IndexInfo(
            name="PRIMARY", column_names=["id"], is_unique=True, is_primary=True
        )
        assert indexes[1].column_names == ["a", "b"]

    async def test_foreign_keys(self) -> None:
        """KEY_COLUMN_USAGE rows map to ForeignKeyInfo."""
        backend = FakeBackend(
            Dialect.MYSQL,
            rows={
                "REFERENCED_TABLE_NAME IS NOT NULL": [
                    {
                        "constraint_name": "fk_orders_user",
                        "column_name": "user_id",
                        "foreign_table": "users",
                        "foreign_column": "id",
                    }
                ]
            },
        )
        foreign_keys = await SchemaIntrospector(backend, Dialect.MYSQL, "shop").list_foreign_keys(
            "orders"
        )
        assert foreign_keys[0].constraint_name == "fk_orders_user"

    async def test_primary_key_without_key_falls_back(self) -> None:
        """No catalog row means 'id'."""
        backend = FakeBackend(Dialect.MYSQL)
        assert await resolve_primary_key(backend, Dialect.MYSQL, "log", "shop") == "id"
