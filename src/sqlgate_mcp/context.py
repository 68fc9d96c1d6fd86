"""Shared context types for MCP server.

This module contains context types used across server and tools modules,
separated to avoid circular imports.
"""

from dataclasses import dataclass

from mcp.server.fastmcp import Context
from mcp.server.session import ServerSession

from .engine import GatewaySettings, SessionRegistry, SqlGateway


@dataclass
class AppContext:
    """Application context containing shared resources for MCP tools.

    Created once during server startup and handed to every tool through the
    Context parameter. The registry is shared by all requests; it is never a
    module-level singleton.
    """

    settings: GatewaySettings
    registry: SessionRegistry
    gateway: SqlGateway

    @classmethod
    def create(cls, settings: GatewaySettings) -> "AppContext":
        registry = SessionRegistry(settings)
        return cls(settings=settings, registry=registry, gateway=SqlGateway(registry, settings))


# Type alias for MCP tool context parameter
AppContextType = Context[ServerSession, AppContext]


__all__ = ["AppContext", "AppContextType"]
