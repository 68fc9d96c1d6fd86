"""Shared test configuration for sqlgate-mcp tests.

Provides:
- FakeBackend: records statements and returns canned rows, standing in for
  the PostgreSQL and MySQL pools
- SQLite fixtures on temporary database files
- A registry/gateway pair wired to either
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from pathlib import Path
from typing import Any

import pytest

from sqlgate_mcp.engine import GatewaySettings, SessionRegistry, SqlGateway
from sqlgate_mcp.engine.sql import (
    ConnectionConfig,
    DatabaseBackendBase,
    Dialect,
    Params,
    QueryResult,
    create_backend,
)


class FakeBackend(DatabaseBackendBase):
    """In-memory backend that records every statement.

    ``rows`` maps a SQL fragment to the rows returned by any query containing
    it (first match wins); ``fail_on`` lists fragments whose statements raise.
    """

    def __init__(
        self,
        dialect: Dialect,
        rows: dict[str, list[dict[str, Any]]] | None = None,
        fail_on: tuple[str, ...] = (),
        affected_rows: int = 1,
        connect_error: Exception | None = None,
    ) -> None:
        self.dialect = dialect
        self.rows = rows or {}
        self.fail_on = fail_on
        self.affected_rows = affected_rows
        self.connect_error = connect_error
        self.config: ConnectionConfig | None = None
        self.statements: list[tuple[str, tuple[Any, ...]]] = []
        self.disconnect_calls = 0
        self._connected = False

    async def connect(self, config: ConnectionConfig) -> None:
        if self.connect_error is not None:
            raise self.connect_error
        self.config = config
        self._connected = True

    async def disconnect(self) -> None:
        self.disconnect_calls += 1
        self._connected = False

    def _record(self, sql: str, params: Params) -> None:
        self.statements.append((sql, self._normalize_params(params)))
        for fragment in self.fail_on:
            if fragment in sql:
                raise RuntimeError(f"engine rejected statement near '{fragment}'")

    async def query(self, sql: str, params: Params = None) -> QueryResult:
        self._record(sql, params)
        for fragment, rows in self.rows.items():
            if fragment in sql:
                return QueryResult(rows=[dict(row) for row in rows])
        return QueryResult()

    async def execute(self, sql: str, params: Params = None) -> QueryResult:
        self._record(sql, params)
        return QueryResult(affected_rows=self.affected_rows)

    @property
    def is_connected(self) -> bool:
        return self._connected

    @property
    def sql(self) -> list[str]:
        """Statement texts in execution order."""
        return [sql for sql, _ in self.statements]


def bearer(token: str) -> str:
    return f"Bearer {token}"


@pytest.fixture
def settings() -> GatewaySettings:
    return GatewaySettings(pool_size=2, connect_timeout=5, default_page_size=50)


@pytest.fixture
def db_path(tmp_path: Path) -> str:
    """Path of a fresh SQLite database file."""
    return str(tmp_path / "gateway.db")


@pytest.fixture
async def sqlite_registry(settings: GatewaySettings) -> AsyncIterator[SessionRegistry]:
    registry = SessionRegistry(settings)
    yield registry
    await registry.close_all()


@pytest.fixture
def sqlite_gateway(sqlite_registry: SessionRegistry, settings: GatewaySettings) -> SqlGateway:
    return SqlGateway(sqlite_registry, settings)


@pytest.fixture
async def sqlite_auth(sqlite_gateway: SqlGateway, db_path: str) -> str:
    """Authorization header for a session on a fresh SQLite file."""
    response = await sqlite_gateway.connect({"db_type": "sqlite", "database": db_path})
    assert response["success"], response
    return bearer(response["data"]["token"])


def fake_factory(backend: FakeBackend) -> Callable[[Dialect], DatabaseBackendBase]:
    """Backend factory that hands out ``backend`` for its dialect only."""

    def factory(dialect: Dialect) -> DatabaseBackendBase:
        if dialect == backend.dialect:
            return backend
        return create_backend(dialect)

    return factory


async def connect_fake(
    backend: FakeBackend, settings: GatewaySettings | None = None, database: str = "shop"
) -> tuple[SqlGateway, str]:
    """Build a gateway on ``backend`` and open one session on it."""
    registry = SessionRegistry(settings or GatewaySettings(), backend_factory=fake_factory(backend))
    gateway = SqlGateway(registry)
    response = await gateway.connect(
        {
            "db_type": backend.dialect.value,
            "host": "db.internal",
            "database": database,
            "username": "app",
            "password": "s3cret",
        }
    )
    assert response["success"], response
    return gateway, bearer(response["data"]["token"])
