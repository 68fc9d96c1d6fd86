"""Gateway engine.

Key Components:

- SessionRegistry: Bearer tokens bound to live connection pools
- SqlGateway: Every table, schema and raw-query operation, returning the
  ``{success, data, error}`` envelope
- GatewaySettings: Pool and pagination settings from the environment
- sql: Dialect strategies, SQL builders, normalizer, introspector
"""

from .exceptions import (
    GatewayError,
    IntrospectionError,
    InvalidRequestError,
    NotConnectedError,
    SqlConnectionError,
    SqlExecutionError,
    UnauthenticatedError,
)
from .gateway import SqlGateway
from .models import ApiResponse, ConnectRequest
from .registry import Session, SessionRegistry
from .settings import GatewaySettings

__all__ = [
    "ApiResponse",
    "ConnectRequest",
    "GatewayError",
    "GatewaySettings",
    "IntrospectionError",
    "InvalidRequestError",
    "NotConnectedError",
    "Session",
    "SessionRegistry",
    "SqlConnectionError",
    "SqlExecutionError",
    "SqlGateway",
    "UnauthenticatedError",
]
