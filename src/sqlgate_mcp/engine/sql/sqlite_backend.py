"""SQLite database backend implementation.

This module provides the SQLite backend, using the stdlib sqlite3 module with
the event loop's default executor for async operation.

Features:
    - Bounded pool of sqlite3 connections (opened lazily up to pool_size)
    - WAL mode by default for concurrent reads
    - Automatic busy_timeout for lock contention handling
    - Foreign key enforcement enabled
    - Parent directory creation for fresh database files
    - Autocommit: every statement is its own transaction
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
from collections.abc import Callable
from pathlib import Path
from typing import TypeVar

from .backend import ConnectionConfig, DatabaseBackendBase, Dialect, Params, QueryResult

logger = logging.getLogger(__name__)

T = TypeVar("T")

MEMORY_PATH = ":memory:"


class _ConnectionPool:
    """Bounded pool of sqlite3 connections.

    Connections are opened on demand until ``max_size`` is reached; after
    that, callers wait for a connection to be released. An in-memory
    database is private to its connection, so it is capped at one.
    """

    def __init__(self, factory: Callable[[], sqlite3.Connection], max_size: int) -> None:
        self._factory = factory
        self._max_size = max_size
        self._idle: asyncio.Queue[sqlite3.Connection] = asyncio.Queue()
        self._all: list[sqlite3.Connection] = []
        self._open_lock = asyncio.Lock()
        self._closed = False

    @property
    def size(self) -> int:
        return len(self._all)

    async def open_one(self) -> None:
        """Open a connection and park it as idle."""
        conn = await _run(self._factory)
        self._all.append(conn)
        self._idle.put_nowait(conn)

    async def acquire(self) -> sqlite3.Connection:
        if self._closed:
            raise RuntimeError("Connection pool is closed")

        try:
            return self._idle.get_nowait()
        except asyncio.QueueEmpty:
            pass

        async with self._open_lock:
            if len(self._all) < self._max_size:
                conn = await _run(self._factory)
                self._all.append(conn)
                return conn

        return await self._idle.get()

    def release(self, conn: sqlite3.Connection) -> None:
        if self._closed:
            if conn in self._all:
                self._all.remove(conn)
            conn.close()
            return
        self._idle.put_nowait(conn)

    async def close(self) -> None:
        """Close idle connections; borrowed ones are closed on release."""
        self._closed = True
        connections: list[sqlite3.Connection] = []
        while not self._idle.empty():
            connections.append(self._idle.get_nowait())
        self._all = [conn for conn in self._all if conn not in connections]

        def _close_all() -> None:
            for conn in connections:
                conn.close()

        await _run(_close_all)


async def _run(func: Callable[[], T]) -> T:
    """Run a blocking sqlite3 call in the default executor."""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, func)


class SqliteBackend(DatabaseBackendBase):
    """SQLite backend using stdlib sqlite3 with async executor.

    Each statement borrows one connection from the pool, runs on a worker
    thread, and returns the connection. Connections are opened in autocommit
    mode, so a statement is committed as soon as it completes.

    Attributes:
        dialect: Dialect.SQLITE
        DEFAULT_PRAGMAS: PRAGMA settings applied to every new connection

    Example:
        backend = SqliteBackend()
        await backend.connect(ConnectionConfig(
            dialect=Dialect.SQLITE,
            database="/data/app.db",
        ))
        result = await backend.query('SELECT * FROM "users" WHERE "id" = ?', (42,))
        await backend.disconnect()
    """

    dialect = Dialect.SQLITE

    DEFAULT_PRAGMAS: dict[str, str | int] = {
        "journal_mode": "WAL",
        "busy_timeout": 30000,
        "synchronous": "NORMAL",
        "foreign_keys": "ON",
    }

    def __init__(self) -> None:
        """Initialize SQLite backend."""
        self._pool: _ConnectionPool | None = None
        self._config: ConnectionConfig | None = None

    async def connect(self, config: ConnectionConfig) -> None:
        """Open the pool and verify the database file can be opened.

        Creates the database file and parent directories if they don't exist.

        Args:
            config: Connection configuration; ``database`` is the file path

        Raises:
            sqlite3.Error: If the database cannot be opened
        """
        self._config = config
        path = config.database

        def _connect() -> sqlite3.Connection:
            if path != MEMORY_PATH and not path.startswith("file:"):
                Path(path).expanduser().parent.mkdir(parents=True, exist_ok=True)

            conn = sqlite3.connect(
                path,
                check_same_thread=False,
                isolation_level=None,
                timeout=config.connect_timeout,
                uri=path.startswith("file:"),
            )
            conn.row_factory = sqlite3.Row

            for pragma, value in self.DEFAULT_PRAGMAS.items():
                try:
                    conn.execute(f"PRAGMA {pragma}={value}")
                except sqlite3.Error as e:
                    logger.warning(f"Failed to set PRAGMA {pragma}={value}: {e}")

            return conn

        max_size = 1 if path == MEMORY_PATH else config.pool_size
        pool = _ConnectionPool(_connect, max_size=max_size)
        await pool.open_one()
        self._pool = pool
        logger.debug(f"Connected to SQLite database: {path} (pool max {max_size})")

    async def disconnect(self) -> None:
        """Close every pooled connection.

        Safe to call multiple times or if not connected.
        """
        if self._pool is None:
            return

        pool, self._pool = self._pool, None
        await pool.close()
        logger.debug("Disconnected from SQLite database")

    async def query(self, sql: str, params: Params = None) -> QueryResult:
        """Execute a row-returning statement.

        Args:
            sql: SQL statement (use ? for params)
            params: Positional query parameters

        Returns:
            QueryResult with rows as dicts
        """
        normalized = self._normalize_params(params)

        def _query(conn: sqlite3.Connection) -> QueryResult:
            cursor = conn.execute(sql, normalized)
            try:
                rows = [dict(row) for row in cursor.fetchall()]
            finally:
                cursor.close()
            return QueryResult(rows=rows)

        return await self._with_connection(_query)

    async def execute(self, sql: str, params: Params = None) -> QueryResult:
        """Execute a statement and report affected rows.

        Args:
            sql: SQL statement (use ? for params)
            params: Positional query parameters

        Returns:
            QueryResult with affected_rows
        """
        normalized = self._normalize_params(params)

        def _execute(conn: sqlite3.Connection) -> QueryResult:
            cursor = conn.execute(sql, normalized)
            try:
                # DDL reports -1
                affected = max(cursor.rowcount, 0)
            finally:
                cursor.close()
            return QueryResult(affected_rows=affected)

        return await self._with_connection(_execute)

    @property
    def is_connected(self) -> bool:
        """Check if the pool is open."""
        return self._pool is not None

    async def _with_connection(self, func: Callable[[sqlite3.Connection], T]) -> T:
        """Borrow a pooled connection and run ``func`` on a worker thread."""
        pool = self._ensure_connected()
        conn = await pool.acquire()
        try:
            return await _run(lambda: func(conn))
        finally:
            pool.release(conn)

    def _ensure_connected(self) -> _ConnectionPool:
        """Ensure database is connected.

        Raises:
            RuntimeError: If not connected
        """
        if self._pool is None:
            raise RuntimeError("Not connected to database. Call connect() first.")
        return self._pool
