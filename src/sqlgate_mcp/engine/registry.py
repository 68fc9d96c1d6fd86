"""Session registry: bearer tokens bound to live connection pools.

Each successful connect mints an unguessable token and binds it to a
``Session`` holding the backend (and its pool), the dialect and the database
name. The token map is guarded by one ``AsyncRWLock``: lookups share the
lock, connect/disconnect take it exclusively.

Requests lease a session for their duration. Disconnect removes the token at
once, but the pool is only closed when the last outstanding lease is
released, so statements already running on that session finish normally.

Tokens never expire; they live until disconnect or process exit.
"""

from __future__ import annotations

import logging
import secrets
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime
from urllib.parse import quote

from .auth import extract_bearer_token
from .exceptions import NotConnectedError, SqlConnectionError, UnauthenticatedError
from .models import ConnectRequest
from .rwlock import AsyncRWLock
from .settings import GatewaySettings
from .sql.backend import ConnectionConfig, DatabaseBackendBase, Dialect, create_backend

logger = logging.getLogger(__name__)

TOKEN_BYTES = 32
REDACTION_MARKER = "***"

BackendFactory = Callable[[Dialect], DatabaseBackendBase]


def _short(token: str) -> str:
    """Token prefix safe to log."""
    return f"{token[:8]}..."


def redact_password(message: str, password: str | None) -> str:
    """Remove the password (plain or URL-encoded) from an error message."""
    if not password:
        return message
    for variant in {password, quote(password, safe="")}:
        message = message.replace(variant, REDACTION_MARKER)
    return message


@dataclass
class Session:
    """A live binding between a token and one backend pool.

    Attributes:
        token: Opaque bearer token
        backend: Backend owning the session's pool
        database: Database name (SQLite: file path)
        dialect: Session dialect, fixed for its lifetime
        created_at: Creation time (UTC)
    """

    token: str
    backend: DatabaseBackendBase
    database: str
    dialect: Dialect
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    _leases: int = field(default=0, repr=False)
    _retired: bool = field(default=False, repr=False)
    _closed: bool = field(default=False, repr=False)

    @property
    def leases(self) -> int:
        return self._leases

    @property
    def retired(self) -> bool:
        return self._retired

    @property
    def closed(self) -> bool:
        return self._closed

    def acquire(self) -> None:
        self._leases += 1

    async def release(self) -> None:
        self._leases -= 1
        if self._retired and self._leases == 0:
            await self._close()

    async def retire(self) -> None:
        """Mark the session removed; close the pool once no lease holds it."""
        self._retired = True
        if self._leases == 0:
            await self._close()

    async def _close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            await self.backend.disconnect()
        except Exception as e:
            logger.warning(f"Error closing pool for session {_short(self.token)}: {e}")
        else:
            logger.info(f"Closed pool for session {_short(self.token)}")


class SessionRegistry:
    """Maps bearer tokens to sessions.

    Args:
        settings: Pool size and connect timeout for new sessions
        backend_factory: Creates a backend for a dialect (swapped out in tests)
    """

    def __init__(
        self,
        settings: GatewaySettings | None = None,
        backend_factory: BackendFactory = create_backend,
    ) -> None:
        self.settings = settings or GatewaySettings()
        self._backend_factory = backend_factory
        self._sessions: dict[str, Session] = {}
        self._lock = AsyncRWLock()

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, token: object) -> bool:
        return token in self._sessions

    def build_config(self, request: ConnectRequest) -> ConnectionConfig:
        """Translate connect credentials into a backend configuration.

        SQLite uses ``database`` as the file path and ignores the network
        fields.
        """
        if request.db_type == Dialect.SQLITE:
            return ConnectionConfig(
                dialect=Dialect.SQLITE,
                database=request.database,
                pool_size=self.settings.pool_size,
                connect_timeout=self.settings.connect_timeout,
            )
        return ConnectionConfig(
            dialect=request.db_type,
            database=request.database,
            host=request.host or None,
            port=request.port,
            username=request.username,
            password=request.password,
            pool_size=self.settings.pool_size,
            connect_timeout=self.settings.connect_timeout,
        )

    async def connect(self, request: ConnectRequest) -> Session:
        """Open a pool and register a new session for it.

        The registry is left untouched when the pool cannot be opened.

        Raises:
            SqlConnectionError: Invalid configuration or the pool could not be
                created (password removed from the message)
        """
        try:
            config = self.build_config(request)
        except ValueError as e:
            raise SqlConnectionError(str(e)) from e

        backend = self._backend_factory(config.dialect)
        try:
            await backend.connect(config)
        except Exception as e:
            message = redact_password(str(e) or type(e).__name__, request.password)
            logger.warning(f"Connection to {config.connection_url()} failed: {message}")
            raise SqlConnectionError(message) from e

        token = secrets.token_urlsafe(TOKEN_BYTES)
        session = Session(
            token=token, backend=backend, database=request.database, dialect=config.dialect
        )
        async with self._lock.write():
            self._sessions[token] = session

        logger.info(
            f"Session {_short(token)} connected to {config.connection_url()} "
            f"({len(self._sessions)} active)"
        )
        return session

    async def get(self, token: str) -> Session | None:
        async with self._lock.read():
            return self._sessions.get(token)

    async def resolve(self, authorization: str | None) -> Session:
        """Resolve an ``Authorization`` header value to its session.

        Raises:
            UnauthenticatedError: Header missing, wrong scheme, or unknown token
        """
        token = extract_bearer_token(authorization)
        session = await self.get(token)
        if session is None:
            raise UnauthenticatedError("Invalid or expired session")
        return session

    @asynccontextmanager
    async def lease(self, authorization: str | None) -> AsyncIterator[Session]:
        """Hold a session for the duration of one request.

        Raises:
            UnauthenticatedError: Token cannot be resolved
            NotConnectedError: Session's pool is no longer open
        """
        token = extract_bearer_token(authorization)
        async with self._lock.read():
            session = self._sessions.get(token)
            if session is None:
                raise UnauthenticatedError("Invalid or expired session")
            session.acquire()

        try:
            if not session.backend.is_connected:
                raise NotConnectedError("Database connection is not open")
            yield session
        finally:
            await session.release()

    async def disconnect(self, token: str) -> bool:
        """Remove a session. Unknown tokens are ignored.

        Returns:
            True if a session was removed
        """
        async with self._lock.write():
            session = self._sessions.pop(token, None)

        if session is None:
            logger.debug(f"Disconnect for unknown session {_short(token)}")
            return False

        logger.info(f"Session {_short(token)} disconnected ({len(self._sessions)} active)")
        await session.retire()
        return True

    async def close_all(self) -> None:
        """Remove every session and close pools no request is using."""
        async with self._lock.write():
            sessions = list(self._sessions.values())
            self._sessions.clear()

        for session in sessions:
            await session.retire()
        if sessions:
            logger.info(f"Closed {len(sessions)} session(s)")
