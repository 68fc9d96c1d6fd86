"""Tests for the SQLite backend and connection configuration."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncGenerator
from pathlib import Path

import pytest

from sqlgate_mcp.engine.sql import ConnectionConfig, Dialect, QueryResult, create_backend
from sqlgate_mcp.engine.sql.sqlite_backend import SqliteBackend


class TestSqliteBackend:
    """Tests for the pooled SQLite backend."""

    @pytest.fixture
    async def backend(self, db_path: str) -> AsyncGenerator[SqliteBackend, None]:
        """Create a connected SQLite backend with a small table."""
        backend = SqliteBackend()
        await backend.connect(ConnectionConfig(dialect=Dialect.SQLITE, database=db_path))
        await backend.execute("CREATE TABLE users (id INTEGER PRIMARY KEY, name TEXT)")
        yield backend
        await backend.disconnect()

    async def test_connect_disconnect(self, db_path: str) -> None:
        """Test basic connection and disconnection."""
        backend = SqliteBackend()
        await backend.connect(ConnectionConfig(dialect=Dialect.SQLITE, database=db_path))
        assert backend.is_connected

        await backend.disconnect()
        assert not backend.is_connected

        # Safe to repeat
        await backend.disconnect()

    async def test_connect_creates_parent_dirs(self, tmp_path: Path) -> None:
        """Test that connect creates parent directories."""
        nested_path = tmp_path / "subdir" / "nested" / "test.db"

        backend = SqliteBackend()
        await backend.connect(ConnectionConfig(dialect=Dialect.SQLITE, database=str(nested_path)))

        assert nested_path.parent.exists()
        await backend.disconnect()

    async def test_memory_database(self) -> None:
        """In-memory databases keep their data on the single pooled connection."""
        backend = SqliteBackend()
        await backend.connect(
            ConnectionConfig(dialect=Dialect.SQLITE, database=":memory:", pool_size=5)
        )

        await backend.execute("CREATE TABLE test (id INTEGER PRIMARY KEY, name TEXT)")
        await asyncio.gather(
            *(backend.execute("INSERT INTO test (name) VALUES (?)", (f"n{i}",)) for i in range(4))
        )

        result = await backend.query("SELECT COUNT(*) AS n FROM test")
        assert result.rows == [{"n": 4}]

        await backend.disconnect()

    async def test_query(self, backend: SqliteBackend) -> None:
        """Rows come back as dicts with their column names."""
        await backend.execute("INSERT INTO users (name) VALUES ('Alice'), ('Bob')")

        result = await backend.query("SELECT id, name FROM users ORDER BY id")

        assert result.rows == [{"id": 1, "name": "Alice"}, {"id": 2, "name": "Bob"}]
        assert result.row_count == 2

    async def test_query_with_params(self, backend: SqliteBackend) -> None:
        """Positional ? parameters are bound."""
        await backend.execute("INSERT INTO users (name) VALUES (?)", ("Alice",))
        await backend.execute("INSERT INTO users (name) VALUES (?)", ["Bob"])

        result = await backend.query("SELECT name FROM users WHERE name = ?", ("Bob",))
        assert result.rows == [{"name": "Bob"}]

    async def test_execute_counts(self, backend: SqliteBackend) -> None:
        """INSERT/UPDATE/DELETE report affected rows; DDL reports zero."""
        inserted = await backend.execute("INSERT INTO users (name) VALUES ('a'), ('b'), ('c')")
        assert inserted.affected_rows == 3

        updated = await backend.execute("UPDATE users SET name = 'x' WHERE id > 1")
        assert updated.affected_rows == 2

        deleted = await backend.execute("DELETE FROM users WHERE id = 1")
        assert deleted.affected_rows == 1

        ddl = await backend.execute("CREATE TABLE other (x INTEGER)")
        assert ddl.affected_rows == 0

    async def test_autocommit(self, backend: SqliteBackend, db_path: str) -> None:
        """Writes are visible to a second backend at once."""
        await backend.execute("INSERT INTO users (name) VALUES ('Alice')")

        other = SqliteBackend()
        await other.connect(ConnectionConfig(dialect=Dialect.SQLITE, database=db_path))
        try:
            result = await other.query("SELECT name FROM users")
            assert result.rows == [{"name": "Alice"}]
        finally:
            await other.disconnect()

    async def test_foreign_keys_enforced(self, backend: SqliteBackend) -> None:
        """PRAGMA foreign_keys is on for every pooled connection."""
        result = await backend.query("PRAGMA foreign_keys")
        assert result.rows[0]["foreign_keys"] == 1

    async def test_concurrent_statements(self, backend: SqliteBackend) -> None:
        """Concurrent statements share the bounded pool."""
        await asyncio.gather(
            *(backend.execute("INSERT INTO users (name) VALUES (?)", (str(i),)) for i in range(20))
        )
        result = await backend.query("SELECT COUNT(*) AS n FROM users")
        assert result.rows == [{"n": 20}]

    async def test_error_propagates(self, backend: SqliteBackend) -> None:
        """Engine errors are raised unchanged."""
        with pytest.raises(Exception, match="no such table: missing"):
            await backend.query("SELECT * FROM missing")

    async def test_not_connected(self) -> None:
        """Statements before connect fail."""
        backend = SqliteBackend()
        with pytest.raises(RuntimeError, match="Not connected"):
            await backend.query("SELECT 1")

    async def test_query_result_dataclass(self) -> None:
        """QueryResult defaults to an empty result."""
        result = QueryResult()
        assert result.rows == []
        assert result.affected_rows == 0
        assert result.row_count == 0


class TestConnectionConfig:
    """Tests for ConnectionConfig validation."""

    def test_database_required(self) -> None:
        """Every dialect needs a database."""
        with pytest.raises(ValueError, match="requires 'database'"):
            ConnectionConfig(dialect=Dialect.SQLITE, database="")

    def test_server_dialect_requires_host(self) -> None:
        """PostgreSQL and MySQL need a host."""
        with pytest.raises(ValueError, match="requires 'host'"):
            ConnectionConfig(dialect=Dialect.POSTGRES, database="app")

    @pytest.mark.parametrize("dialect,port", [(Dialect.POSTGRES, 5432), (Dialect.MYSQL, 3306)])
    def test_default_port(self, dialect: Dialect, port: int) -> None:
        """Server dialects get their default port."""
        assert ConnectionConfig(dialect=dialect, database="app", host="db").port == port

    def test_sqlite_ignores_network(self) -> None:
        """SQLite has no port."""
        config = ConnectionConfig(dialect=Dialect.SQLITE, database="/tmp/app.db")
        assert config.port is None
        assert config.connection_url() == "sqlite:/tmp/app.db"

    def test_connection_url_redacted(self) -> None:
        """The password is hidden unless explicitly requested."""
        config = ConnectionConfig(
            dialect=Dialect.POSTGRES,
            database="app",
            host="db",
            username="app user",
            password="p@ss",
        )
        assert config.connection_url() == "postgres://app%20user:***@db:5432/app"
        assert config.connection_url(redact=False) == "postgres://app%20user:p%40ss@db:5432/app"

    def test_create_backend(self) -> None:
        """Each dialect gets its own backend class."""
        for dialect in Dialect:
            assert create_backend(dialect).dialect == dialect
