"""MySQL/MariaDB database backend implementation.

This module provides the MySQL backend, using aiomysql for native async
operation with connection pooling.

Features:
    - Native async driver (aiomysql)
    - Connection pooling with a bounded max size
    - Autocommit connections (one statement, one transaction)
    - Builder placeholders (?) converted to the driver's %s format

Note:
    Requires the 'aiomysql' package.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from .backend import ConnectionConfig, DatabaseBackendBase, Dialect, Params, QueryResult
from .param_converter import to_format_placeholders

if TYPE_CHECKING:
    import aiomysql  # type: ignore[import-not-found]

logger = logging.getLogger(__name__)


def _import_aiomysql() -> Any:
    """Import aiomysql with helpful error message if not installed."""
    try:
        import aiomysql

        return aiomysql
    except ImportError as e:
        raise ImportError(
            "MySQL backend requires 'aiomysql' package. Install with: pip install aiomysql"
        ) from e


class MySQLBackend(DatabaseBackendBase):
    """MySQL/MariaDB backend using aiomysql with connection pooling.

    Attributes:
        dialect: Dialect.MYSQL

    Example:
        backend = MySQLBackend()
        await backend.connect(ConnectionConfig(
            dialect=Dialect.MYSQL,
            host="localhost",
            port=3306,
            database="mydb",
            username="user",
            password="pass",
        ))
        result = await backend.query("SELECT * FROM `users` WHERE `id` = ?", (42,))
        await backend.disconnect()
    """

    dialect = Dialect.MYSQL

    def __init__(self) -> None:
        """Initialize MySQL backend."""
        self._pool: aiomysql.Pool | None = None

    async def connect(self, config: ConnectionConfig) -> None:
        """Create connection pool.

        Pool settings:
            - minsize: 1
            - maxsize: config.pool_size
            - pool_recycle: 300s (prevent stale connections)
            - connect_timeout: config.connect_timeout

        Args:
            config: Connection configuration

        Raises:
            pymysql.err.OperationalError: If connection fails
            ImportError: If aiomysql is not installed
        """
        aiomysql = _import_aiomysql()

        self._pool = await aiomysql.create_pool(
            host=config.host,
            port=config.port or 3306,
            db=config.database,
            user=config.username or "",
            password=config.password or "",
            minsize=1,
            maxsize=config.pool_size,
            pool_recycle=300,
            connect_timeout=config.connect_timeout,
            autocommit=True,
        )

        logger.debug(f"Connected to MySQL: {config.connection_url()}")

    async def disconnect(self) -> None:
        """Close connection pool gracefully.

        Waits for acquired connections to be released before closing.
        """
        if self._pool is None:
            return

        pool, self._pool = self._pool, None
        pool.close()
        await pool.wait_closed()
        logger.debug("Disconnected from MySQL")

    async def query(self, sql: str, params: Params = None) -> QueryResult:
        """Execute a row-returning statement.

        Uses DictCursor for dict-based row results.

        Args:
            sql: SQL statement (use ? for params)
            params: Positional query parameters

        Returns:
            QueryResult with rows as dicts
        """
        aiomysql = _import_aiomysql()
        pool = self._ensure_connected()
        statement, args = self._prepare(sql, params)

        async with pool.acquire() as conn:
            async with conn.cursor(aiomysql.DictCursor) as cursor:
                await cursor.execute(statement, args)
                rows = await cursor.fetchall()

        return QueryResult(rows=[dict(row) for row in rows])

    async def execute(self, sql: str, params: Params = None) -> QueryResult:
        """Execute a statement and report affected rows.

        Args:
            sql: SQL statement (use ? for params)
            params: Positional query parameters

        Returns:
            QueryResult with affected_rows
        """
        pool = self._ensure_connected()
        statement, args = self._prepare(sql, params)

        async with pool.acquire() as conn:
            async with conn.cursor() as cursor:
                await cursor.execute(statement, args)
                affected = cursor.rowcount

        return QueryResult(affected_rows=max(affected, 0))

    @property
    def is_connected(self) -> bool:
        """Check if the pool is open."""
        return self._pool is not None

    def _prepare(self, sql: str, params: Params) -> tuple[str, tuple[Any, ...] | None]:
        """Convert placeholders to %s when binding parameters.

        Without parameters, the driver sends the statement untouched, so
        literal percent signs must not be escaped.
        """
        if not params:
            return sql, None
        return to_format_placeholders(sql), self._normalize_params(params)

    def _ensure_connected(self) -> aiomysql.Pool:
        """Ensure database is connected."""
        if self._pool is None:
            raise RuntimeError("Not connected to database. Call connect() first.")
        return self._pool
