"""Gateway exceptions.

Every failure an operation can report is a ``GatewayError``. The gateway's
response boundary turns these into ``{"success": false, "error": ...}``
envelopes; anything else is a bug and propagates.
"""

from __future__ import annotations


class GatewayError(Exception):
    """Base exception for gateway errors."""

    pass


class UnauthenticatedError(GatewayError):
    """Missing, malformed or unknown bearer token."""

    pass


class InvalidRequestError(GatewayError):
    """Request failed validation (identifier, empty body, missing field)."""

    pass


class NotConnectedError(GatewayError):
    """Session resolved but its connection pool is no longer open."""

    pass


class SqlConnectionError(GatewayError):
    """Failed to establish the database connection pool."""

    pass


class SqlExecutionError(GatewayError):
    """The database engine rejected a statement."""

    pass


class IntrospectionError(GatewayError):
    """A catalog query failed."""

    pass


__all__ = [
    "GatewayError",
    "IntrospectionError",
    "InvalidRequestError",
    "NotConnectedError",
    "SqlConnectionError",
    "SqlExecutionError",
    "UnauthenticatedError",
]
