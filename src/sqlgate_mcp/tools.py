"""MCP tool implementations for the SQL gateway.

One tool per gateway operation. Every tool returns the response envelope
``{"success": bool, "data"?: ..., "error"?: str}``.

Protected tools take an ``authorization`` argument carrying the value of an
``Authorization`` header, ``Bearer <token>``, where the token comes from the
``connect`` tool.
"""

from typing import Annotated, Any, Literal

from mcp.types import ToolAnnotations
from pydantic import Field

from .context import AppContextType
from .engine import SqlGateway
from .engine.models import ApiResponse
from .server import mcp

AuthorizationArg = Annotated[
    str | None,
    Field(description="Authorization header value: 'Bearer <token>' (token from connect)"),
]
TableArg = Annotated[
    str,
    Field(description="Table name (letters, digits, _ and -; max 64 chars)", min_length=1),
]
RowIdArg = Annotated[
    str | int,
    Field(description="Primary-key value of the row"),
]
PrimaryKeyArg = Annotated[
    str | None,
    Field(description="Primary-key column (looked up from the catalog when omitted)"),
]


def _gateway(ctx: AppContextType | None) -> SqlGateway | None:
    if ctx is None:
        return None
    return ctx.request_context.lifespan_context.gateway


def _no_context() -> dict[str, Any]:
    return ApiResponse[Any].fail(
        "Server context not available. Tool requires context to access resources."
    ).to_dict()


# =============================================================================
# Connection
# =============================================================================


@mcp.tool(
    annotations=ToolAnnotations(
        title="Connect",
        readOnlyHint=False,
        destructiveHint=False,
        idempotentHint=False,  # Each call opens a new pool and token
        openWorldHint=True,
    )
)
async def connect(
    db_type: Annotated[
        Literal["postgres", "mysql", "sqlite"],
        Field(description="Database engine"),
    ],
    database: Annotated[
        str,
        Field(description="Database name (sqlite: database file path)", min_length=1),
    ],
    host: Annotated[str, Field(description="Server host (ignored for sqlite)")] = "",
    port: Annotated[
        int | None,
        Field(description="Server port (default 5432/3306)", ge=0, le=65535),
    ] = None,
    username: Annotated[str, Field(description="Database user")] = "",
    password: Annotated[str, Field(description="Database password")] = "",
    *,
    ctx: AppContextType,
) -> dict[str, Any]:
    """Open a pooled connection and return a session token for the other tools."""
    gateway = _gateway(ctx)
    if gateway is None:
        return _no_context()
    return await gateway.connect(
        {
            "db_type": db_type,
            "database": database,
            "host": host,
            "port": port,
            "username": username,
            "password": password,
        }
    )


@mcp.tool(
    annotations=ToolAnnotations(
        title="Disconnect",
        readOnlyHint=False,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    )
)
async def disconnect(
    authorization: AuthorizationArg = None,
    *,
    ctx: AppContextType,
) -> dict[str, Any]:
    """End the session. Always succeeds, also for unknown tokens."""
    gateway = _gateway(ctx)
    if gateway is None:
        return _no_context()
    return await gateway.disconnect(authorization)


@mcp.tool(
    annotations=ToolAnnotations(
        title="Connection Status",
        readOnlyHint=True,
        idempotentHint=True,
        openWorldHint=False,
    )
)
async def status(
    authorization: AuthorizationArg = None,
    *,
    ctx: AppContextType,
) -> dict[str, Any]:
    """Report whether the token has a live connection, with its database and db_type."""
    gateway = _gateway(ctx)
    if gateway is None:
        return _no_context()
    return await gateway.status(authorization)


@mcp.tool(
    annotations=ToolAnnotations(
        title="Database Info",
        readOnlyHint=True,
        idempotentHint=True,
        openWorldHint=True,
    )
)
async def database_info(
    authorization: AuthorizationArg = None,
    *,
    ctx: AppContextType,
) -> dict[str, Any]:
    """Engine name, server version and number of tables."""
    gateway = _gateway(ctx)
    if gateway is None:
        return _no_context()
    return await gateway.database_info(authorization)


# =============================================================================
# Schema
# =============================================================================


@mcp.tool(
    annotations=ToolAnnotations(
        title="List Tables",
        readOnlyHint=True,
        idempotentHint=True,
        openWorldHint=True,
    )
)
async def list_tables(
    authorization: AuthorizationArg = None,
    *,
    ctx: AppContextType,
) -> dict[str, Any]:
    """List tables and views (name, table_type TABLE|VIEW, row_count_estimate)."""
    gateway = _gateway(ctx)
    if gateway is None:
        return _no_context()
    return await gateway.list_tables(authorization)


@mcp.tool(
    annotations=ToolAnnotations(
        title="Get Table Columns",
        readOnlyHint=True,
        idempotentHint=True,
        openWorldHint=True,
    )
)
async def get_table(
    table: TableArg,
    authorization: AuthorizationArg = None,
    *,
    ctx: AppContextType,
) -> dict[str, Any]:
    """Columns of a table: name, data_type, nullable, is_primary_key, default_value."""
    gateway = _gateway(ctx)
    if gateway is None:
        return _no_context()
    return await gateway.get_table(authorization, table)


@mcp.tool(
    annotations=ToolAnnotations(
        title="Get Indexes",
        readOnlyHint=True,
        idempotentHint=True,
        openWorldHint=True,
    )
)
async def get_indexes(
    table: TableArg,
    authorization: AuthorizationArg = None,
    *,
    ctx: AppContextType,
) -> dict[str, Any]:
    """Indexes of a table with their columns in key order."""
    gateway = _gateway(ctx)
    if gateway is None:
        return _no_context()
    return await gateway.get_indexes(authorization, table)


@mcp.tool(
    annotations=ToolAnnotations(
        title="Get Foreign Keys",
        readOnlyHint=True,
        idempotentHint=True,
        openWorldHint=True,
    )
)
async def get_foreign_keys(
    table: TableArg,
    authorization: AuthorizationArg = None,
    *,
    ctx: AppContextType,
) -> dict[str, Any]:
    """Foreign keys of a table (one entry per referencing column)."""
    gateway = _gateway(ctx)
    if gateway is None:
        return _no_context()
    return await gateway.get_foreign_keys(authorization, table)


@mcp.tool(
    annotations=ToolAnnotations(
        title="Create Table",
        readOnlyHint=False,
        destructiveHint=False,
        idempotentHint=False,
        openWorldHint=True,
    )
)
async def create_table(
    name: TableArg,
    columns: Annotated[
        list[dict[str, Any]],
        Field(
            description=(
                "Column definitions: {name, data_type (TEXT|INTEGER|BOOLEAN|DATETIME|FLOAT|UUID), "
                "nullable, is_primary_key, unique, auto_increment, default_value}"
            ),
            min_length=1,
        ),
    ],
    foreign_keys: Annotated[
        list[dict[str, Any]] | None,
        Field(
            description=(
                "Foreign keys: {column, foreign_table, foreign_column, "
                "on_delete (cascade|set_null|restrict|no_action)}"
            )
        ),
    ] = None,
    authorization: AuthorizationArg = None,
    *,
    ctx: AppContextType,
) -> dict[str, Any]:
    """Create a table from logical column definitions."""
    gateway = _gateway(ctx)
    if gateway is None:
        return _no_context()
    return await gateway.create_table(
        authorization,
        {"name": name, "columns": columns, "foreign_keys": foreign_keys or []},
    )


@mcp.tool(
    annotations=ToolAnnotations(
        title="Alter Table",
        readOnlyHint=False,
        destructiveHint=True,  # DropColumn removes data
        idempotentHint=False,
        openWorldHint=True,
    )
)
async def alter_table(
    table: TableArg,
    alteration: Annotated[
        dict[str, Any],
        Field(
            description=(
                "One of {alter_type: 'RenameTable', new_name}, "
                "{alter_type: 'AddColumn', column_definition}, "
                "{alter_type: 'DropColumn', column_name}"
            )
        ),
    ],
    authorization: AuthorizationArg = None,
    *,
    ctx: AppContextType,
) -> dict[str, Any]:
    """Rename a table, add a column or drop a column."""
    gateway = _gateway(ctx)
    if gateway is None:
        return _no_context()
    return await gateway.alter_table(authorization, table, alteration)


@mcp.tool(
    annotations=ToolAnnotations(
        title="Drop Table",
        readOnlyHint=False,
        destructiveHint=True,
        idempotentHint=False,
        openWorldHint=True,
    )
)
async def drop_table(
    table: TableArg,
    authorization: AuthorizationArg = None,
    *,
    ctx: AppContextType,
) -> dict[str, Any]:
    """Drop a table."""
    gateway = _gateway(ctx)
    if gateway is None:
        return _no_context()
    return await gateway.drop_table(authorization, table)


# =============================================================================
# Rows
# =============================================================================


@mcp.tool(
    annotations=ToolAnnotations(
        title="Read Rows",
        readOnlyHint=True,
        idempotentHint=True,
        openWorldHint=True,
    )
)
async def read_rows(
    table: TableArg,
    page: Annotated[int | None, Field(description="1-based page number")] = None,
    limit: Annotated[int | None, Field(description="Rows per page (max 100)")] = None,
    sort: Annotated[str | None, Field(description="Column to sort by")] = None,
    order: Annotated[
        Literal["asc", "desc"] | None,
        Field(description="Sort direction"),
    ] = None,
    authorization: AuthorizationArg = None,
    *,
    ctx: AppContextType,
) -> dict[str, Any]:
    """Read one page of rows. Returns {rows, page, limit}."""
    gateway = _gateway(ctx)
    if gateway is None:
        return _no_context()
    return await gateway.read_rows(
        authorization, table, page=page, limit=limit, sort=sort, order=order
    )


@mcp.tool(
    annotations=ToolAnnotations(
        title="Insert Row",
        readOnlyHint=False,
        destructiveHint=False,
        idempotentHint=False,
        openWorldHint=True,
    )
)
async def insert_row(
    table: TableArg,
    row: Annotated[dict[str, Any], Field(description="Column values for the new row")],
    authorization: AuthorizationArg = None,
    *,
    ctx: AppContextType,
) -> dict[str, Any]:
    """Insert one row. Returns {message, rows_affected}."""
    gateway = _gateway(ctx)
    if gateway is None:
        return _no_context()
    return await gateway.insert_row(authorization, table, row)


@mcp.tool(
    annotations=ToolAnnotations(
        title="Update Row",
        readOnlyHint=False,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=True,
    )
)
async def update_row(
    table: TableArg,
    row_id: RowIdArg,
    row: Annotated[dict[str, Any], Field(description="Column values to set")],
    primary_key: PrimaryKeyArg = None,
    authorization: AuthorizationArg = None,
    *,
    ctx: AppContextType,
) -> dict[str, Any]:
    """Update the row whose primary key equals row_id."""
    gateway = _gateway(ctx)
    if gateway is None:
        return _no_context()
    return await gateway.update_row(authorization, table, row_id, row, primary_key=primary_key)


@mcp.tool(
    annotations=ToolAnnotations(
        title="Delete Row",
        readOnlyHint=False,
        destructiveHint=True,
        idempotentHint=True,
        openWorldHint=True,
    )
)
async def delete_row(
    table: TableArg,
    row_id: RowIdArg,
    primary_key: PrimaryKeyArg = None,
    authorization: AuthorizationArg = None,
    *,
    ctx: AppContextType,
) -> dict[str, Any]:
    """Delete the row whose primary key equals row_id."""
    gateway = _gateway(ctx)
    if gateway is None:
        return _no_context()
    return await gateway.delete_row(authorization, table, row_id, primary_key=primary_key)


# =============================================================================
# Raw SQL
# =============================================================================


@mcp.tool(
    annotations=ToolAnnotations(
        title="Execute Query",
        readOnlyHint=False,
        destructiveHint=True,  # Arbitrary SQL
        idempotentHint=False,
        openWorldHint=True,
    )
)
async def execute_query(
    sql: Annotated[str, Field(description="SQL statement", min_length=1)],
    authorization: AuthorizationArg = None,
    *,
    ctx: AppContextType,
) -> dict[str, Any]:
    """Run raw SQL. SELECT returns {rows, row_count}; others {message, rows_affected}."""
    gateway = _gateway(ctx)
    if gateway is None:
        return _no_context()
    return await gateway.execute_query(authorization, sql)
