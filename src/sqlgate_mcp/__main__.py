"""Entry point for the sqlgate-mcp MCP server.

Imports the tools module first so its @mcp.tool() decorators register on
the server instance, then starts the server.
"""


def main() -> None:
    """Register tools and start the MCP server."""
    from . import tools  # noqa: F401 - imported for side effects (decorator registration)
    from .server import main as server_main

    server_main()


if __name__ == "__main__":
    main()
