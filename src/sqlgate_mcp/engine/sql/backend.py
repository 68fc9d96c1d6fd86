"""Database backend base class and shared data classes.

Every session owns exactly one backend. A backend wraps a bounded connection
pool for one dialect and exposes two statement entry points:

- ``query()`` for row-returning statements
- ``execute()`` for everything else (returns the affected row count)

Rows come back as ordered ``dict`` objects holding the driver's native Python
values. Turning those into the uniform value model is the normalizer's job.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from urllib.parse import quote


class Dialect(Enum):
    """Supported database dialects."""

    POSTGRES = "postgres"
    MYSQL = "mysql"
    SQLITE = "sqlite"

    @property
    def display_name(self) -> str:
        """Human readable engine name."""
        return {
            Dialect.POSTGRES: "PostgreSQL",
            Dialect.MYSQL: "MySQL",
            Dialect.SQLITE: "SQLite",
        }[self]


DEFAULT_PORTS: dict[Dialect, int] = {
    Dialect.POSTGRES: 5432,
    Dialect.MYSQL: 3306,
}


@dataclass
class ConnectionConfig:
    """Database connection configuration.

    Attributes:
        dialect: Database dialect
        database: Database name (SQLite: database file path)
        host: Database server host (PostgreSQL/MySQL)
        port: Database server port
        username: Database username
        password: Database password
        pool_size: Maximum connections held by the pool
        connect_timeout: Pool creation timeout in seconds
    """

    dialect: Dialect
    database: str
    host: str | None = None
    port: int | None = None
    username: str | None = None
    password: str | None = None
    pool_size: int = 5
    connect_timeout: int = 10

    def __post_init__(self) -> None:
        """Validate configuration based on dialect."""
        if not self.database:
            raise ValueError(f"{self.dialect.value} requires 'database' parameter")

        if self.dialect != Dialect.SQLITE:
            if not self.host:
                raise ValueError(f"{self.dialect.value} requires 'host' parameter")
            if self.port is None:
                self.port = DEFAULT_PORTS[self.dialect]

    def connection_url(self, redact: bool = True) -> str:
        """Build the dialect-specific connection string.

        Args:
            redact: Replace the password with ``***`` (for logs and errors)

        Returns:
            ``postgres://``, ``mysql://`` or ``sqlite:`` URL
        """
        if self.dialect == Dialect.SQLITE:
            return f"sqlite:{self.database}"

        password = "***" if redact and self.password else quote(self.password or "", safe="")
        user = quote(self.username or "", safe="")
        credentials = f"{user}:{password}@" if user or password else ""
        return f"{self.dialect.value}://{credentials}{self.host}:{self.port}/{self.database}"


@dataclass
class QueryResult:
    """Unified statement result across backends.

    Attributes:
        rows: Result rows as ordered dicts of native driver values
        affected_rows: Rows affected by INSERT/UPDATE/DELETE/DDL
    """

    rows: list[dict[str, Any]] = field(default_factory=list)
    affected_rows: int = 0

    @property
    def row_count(self) -> int:
        """Number of rows returned."""
        return len(self.rows)


# Positional parameters only: builders emit $n or ? placeholders
Params = tuple[Any, ...] | list[Any] | None


class DatabaseBackendBase(ABC):
    """Abstract base class for pooled database backends.

    The pool behind a backend is internally synchronized and may be used by
    many concurrent requests. Nothing here serializes statements beyond what
    the pool does.
    """

    dialect: Dialect

    @abstractmethod
    async def connect(self, config: ConnectionConfig) -> None:
        """Open the connection pool.

        Raises:
            Exception: Driver error if the pool cannot be created
        """

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the pool. Safe to call multiple times."""

    @abstractmethod
    async def query(self, sql: str, params: Params = None) -> QueryResult:
        """Run a row-returning statement."""

    @abstractmethod
    async def execute(self, sql: str, params: Params = None) -> QueryResult:
        """Run a statement and report affected rows."""

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        """Whether the pool is open."""

    @staticmethod
    def _normalize_params(params: Params) -> tuple[Any, ...]:
        """Normalize parameters to a tuple."""
        if params is None:
            return ()
        return tuple(params)


def create_backend(dialect: Dialect) -> DatabaseBackendBase:
    """Create the backend implementation for a dialect."""
    if dialect == Dialect.SQLITE:
        from .sqlite_backend import SqliteBackend

        return SqliteBackend()
    if dialect == Dialect.POSTGRES:
        from .postgres_backend import PostgresBackend

        return PostgresBackend()
    if dialect == Dialect.MYSQL:
        from .mysql_backend import MySQLBackend

        return MySQLBackend()
    raise ValueError(f"Unsupported dialect: {dialect}")
