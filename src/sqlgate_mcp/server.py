"""FastMCP server initialization for sqlgate-mcp.

This module initializes the MCP server and manages the session registry via
the lifespan context. All tool implementations are in the tools module.
"""

import logging
import os
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from mcp.server.fastmcp import FastMCP

from .context import AppContext, AppContextType
from .engine import GatewaySettings

logger = logging.getLogger(__name__)

# =============================================================================
# Lifespan Management
# =============================================================================


@asynccontextmanager
async def app_lifespan(_server: FastMCP) -> AsyncIterator[AppContext]:
    """Create the session registry on startup and close every pool on shutdown.

    Environment Variables:
        SQLGATE_POOL_SIZE: Per-session pool max size (default: 5, range: 1-20)
        SQLGATE_CONNECT_TIMEOUT: Pool creation timeout in seconds
            (default: 10, range: 1-300)
        SQLGATE_DEFAULT_PAGE_SIZE: Default row limit for reads (default: 50, range: 1-100)

    Args:
        _server: FastMCP server instance (unused, required by FastMCP signature)

    Yields:
        AppContext holding the registry and gateway
    """
    logger.info("Initializing MCP server resources...")

    settings = GatewaySettings.from_env()
    logger.info(
        f"Pool size: {settings.pool_size}, connect timeout: {settings.connect_timeout}s, "
        f"default page size: {settings.default_page_size}"
    )

    app_context = AppContext.create(settings)

    try:
        yield app_context
    finally:
        logger.info("Shutting down MCP server...")
        await app_context.registry.close_all()


# Following Python MCP naming convention: {service}_mcp
mcp = FastMCP("sqlgate_mcp", lifespan=app_lifespan)


# =============================================================================
# Server Entry Point
# =============================================================================


def main() -> None:
    """Entry point for running the MCP server.

    This function is called when the server is run directly via:
    - python -m sqlgate_mcp
    - sqlgate-mcp (console script)

    Defaults to stdio transport for MCP protocol communication.
    """
    valid_log_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
    log_level_str = os.getenv("SQLGATE_LOG_LEVEL", "INFO").upper()

    if log_level_str not in valid_log_levels:
        print(
            f"Warning: Invalid SQLGATE_LOG_LEVEL '{log_level_str}'. "
            f"Valid levels: {', '.join(sorted(valid_log_levels))}. "
            "Using INFO.",
            file=sys.stderr,
        )
        log_level_str = "INFO"

    log_level = getattr(logging, log_level_str)

    # Configure logging to stderr (MCP requirement)
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    logger.info("Starting MCP server (press Ctrl+C to stop)...")

    try:
        mcp.run()
    except KeyboardInterrupt:
        logger.info("Received interrupt signal, shutting down gracefully...")
    except Exception as e:
        logger.exception(f"Server error: {e}")
        sys.exit(1)

    logger.info("Server shutdown complete")


__all__ = [
    "mcp",
    "main",
    "AppContext",
    "AppContextType",
]
