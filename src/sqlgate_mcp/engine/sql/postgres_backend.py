"""PostgreSQL database backend implementation.

This module provides the PostgreSQL backend, using asyncpg for native async
operation with connection pooling.

Features:
    - Native async driver (asyncpg)
    - Connection pooling with a bounded max size
    - Affected-row parsing from command status tags

Note:
    Requires the 'asyncpg' package.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from .backend import ConnectionConfig, DatabaseBackendBase, Dialect, Params, QueryResult

if TYPE_CHECKING:
    import asyncpg  # type: ignore[import-not-found]

logger = logging.getLogger(__name__)


def _import_asyncpg() -> Any:
    """Import asyncpg with helpful error message if not installed."""
    try:
        import asyncpg

        return asyncpg
    except ImportError as e:
        raise ImportError(
            "PostgreSQL backend requires 'asyncpg' package. Install with: pip install asyncpg"
        ) from e


class PostgresBackend(DatabaseBackendBase):
    """PostgreSQL backend using asyncpg with connection pooling.

    Attributes:
        dialect: Dialect.POSTGRES

    Example:
        backend = PostgresBackend()
        await backend.connect(ConnectionConfig(
            dialect=Dialect.POSTGRES,
            host="localhost",
            port=5432,
            database="mydb",
            username="user",
            password="pass",
        ))
        result = await backend.query('SELECT * FROM "users" WHERE "id" = $1', (42,))
        await backend.disconnect()
    """

    dialect = Dialect.POSTGRES

    def __init__(self) -> None:
        """Initialize PostgreSQL backend."""
        self._pool: asyncpg.Pool | None = None

    async def connect(self, config: ConnectionConfig) -> None:
        """Create connection pool.

        Pool settings:
            - min_size: 1
            - max_size: config.pool_size
            - max_inactive_connection_lifetime: 300s
            - timeout: config.connect_timeout

        Args:
            config: Connection configuration

        Raises:
            asyncpg.PostgresError / OSError: If connection fails
            ImportError: If asyncpg is not installed
        """
        asyncpg = _import_asyncpg()

        self._pool = await asyncpg.create_pool(
            dsn=config.connection_url(redact=False),
            min_size=1,
            max_size=config.pool_size,
            max_inactive_connection_lifetime=300,
            timeout=config.connect_timeout,
        )

        logger.debug(f"Connected to PostgreSQL: {config.connection_url()}")

    async def disconnect(self) -> None:
        """Close connection pool gracefully.

        Waits for acquired connections to be released before closing.
        """
        if self._pool is None:
            return

        pool, self._pool = self._pool, None
        await pool.close()
        logger.debug("Disconnected from PostgreSQL")

    async def query(self, sql: str, params: Params = None) -> QueryResult:
        """Execute a row-returning statement.

        Args:
            sql: SQL statement (use $1, $2 for params)
            params: Positional query parameters

        Returns:
            QueryResult with rows as dicts
        """
        pool = self._ensure_connected()

        records = await pool.fetch(sql, *self._normalize_params(params))

        return QueryResult(rows=[dict(record) for record in records])

    async def execute(self, sql: str, params: Params = None) -> QueryResult:
        """Execute a statement and report affected rows.

        Args:
            sql: SQL statement (use $1, $2 for params)
            params: Positional query parameters

        Returns:
            QueryResult with affected_rows
        """
        pool = self._ensure_connected()

        status = await pool.execute(sql, *self._normalize_params(params))

        return QueryResult(affected_rows=self._parse_affected_rows(status))

    @property
    def is_connected(self) -> bool:
        """Check if the pool is open."""
        return self._pool is not None

    def _ensure_connected(self) -> asyncpg.Pool:
        """Ensure database is connected."""
        if self._pool is None:
            raise RuntimeError("Not connected to database. Call connect() first.")
        return self._pool

    @staticmethod
    def _parse_affected_rows(result: str) -> int:
        """Parse affected row count from PostgreSQL command status.

        Result format: "COMMAND [OID] COUNT"
        Examples:
            - "INSERT 0 1" -> 1
            - "UPDATE 5" -> 5
            - "DELETE 3" -> 3
            - "CREATE TABLE" -> 0

        Args:
            result: PostgreSQL command status string

        Returns:
            Number of affected rows
        """
        if not result:
            return 0

        parts = result.split()
        if len(parts) >= 2:
            try:
                return int(parts[-1])
            except ValueError:
                pass
        return 0
