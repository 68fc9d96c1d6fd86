"""SQL gateway operations.

``SqlGateway`` is the single entry point the outer surface calls. Every
public coroutine takes the caller's ``Authorization`` header value (except
``connect``), runs against that caller's session, and returns the response
envelope as a dict::

    {"success": true, "data": {...}}
    {"success": false, "error": "Invalid table name: users; --"}

Failures are raised internally as ``GatewayError`` subclasses and converted
to the failure envelope in one place, ``respond()``. Driver exceptions are
wrapped as ``SqlExecutionError``/``IntrospectionError`` with the engine's
message passed through verbatim.
"""

from __future__ import annotations

import functools
import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, ParamSpec

from pydantic import TypeAdapter, ValidationError

from .auth import extract_bearer_token
from .exceptions import GatewayError, InvalidRequestError, SqlExecutionError
from .models import ApiResponse, ConnectRequest
from .registry import Session, SessionRegistry
from .settings import GatewaySettings
from .sql.backend import QueryResult
from .sql.dialects import get_strategy
from .sql.identifiers import require_identifier
from .sql.introspector import SchemaIntrospector
from .sql.model import AlterTableRequest, CreateTableRequest, drop_table_sql
from .sql.normalizer import ProjectionPlan, normalize_rows
from .sql.primary_key import resolve_primary_key
from .sql.query_builder import Pagination, QueryBuilder

logger = logging.getLogger(__name__)

P = ParamSpec("P")

_alter_adapter: TypeAdapter[Any] = TypeAdapter(AlterTableRequest)


def validation_message(error: ValidationError) -> str:
    """Flatten a pydantic error into one line: ``field: message; ...``."""
    parts = []
    for item in error.errors():
        location = ".".join(str(part) for part in item.get("loc", ())) or "request"
        parts.append(f"{location}: {item.get('msg', 'invalid value')}")
    return "; ".join(parts) or str(error)


def is_select(sql: str) -> bool:
    """Route statements starting with SELECT (any case) to the row path."""
    return sql.lstrip().upper().startswith("SELECT")


def respond(
    func: Callable[P, Awaitable[Any]],
) -> Callable[P, Awaitable[dict[str, Any]]]:
    """Wrap an operation so it returns the response envelope.

    ``GatewayError`` and pydantic validation errors become the failure
    envelope; anything else is a bug and propagates.
    """

    @functools.wraps(func)
    async def wrapper(*args: P.args, **kwargs: P.kwargs) -> dict[str, Any]:
        try:
            data = await func(*args, **kwargs)
        except ValidationError as e:
            message = validation_message(e)
            logger.debug(f"{func.__name__} rejected: {message}")
            return ApiResponse[Any].fail(message).to_dict()
        except GatewayError as e:
            logger.debug(f"{func.__name__} failed: {type(e).__name__}: {e}")
            return ApiResponse[Any].fail(str(e)).to_dict()
        return ApiResponse[Any].ok(data).to_dict()

    return wrapper


class SqlGateway:
    """Table, schema and raw-query operations over registry sessions.

    Args:
        registry: Session registry shared by every request
        settings: Gateway settings (default page size)
    """

    def __init__(self, registry: SessionRegistry, settings: GatewaySettings | None = None):
        self.registry = registry
        self.settings = settings or registry.settings

    # -------------------------------------------------------------------------
    # Connection lifecycle
    # -------------------------------------------------------------------------

    @respond
    async def connect(self, request: ConnectRequest | Mapping[str, Any]) -> dict[str, Any]:
        if not isinstance(request, ConnectRequest):
            request = ConnectRequest.model_validate(request)
        session = await self.registry.connect(request)
        return {
            "token": session.token,
            "database": session.database,
            "db_type": session.dialect.value,
        }

    @respond
    async def disconnect(self, authorization: str | None) -> dict[str, Any]:
        """Remove the caller's session. Succeeds for any header value."""
        try:
            token = extract_bearer_token(authorization)
        except GatewayError:
            token = None
        if token is not None:
            await self.registry.disconnect(token)
        return {"connected": False, "database": None, "db_type": None}

    @respond
    async def status(self, authorization: str | None) -> dict[str, Any]:
        try:
            session = await self.registry.resolve(authorization)
        except GatewayError:
            return {"connected": False, "database": None, "db_type": None}
        return {
            "connected": session.backend.is_connected,
            "database": session.database,
            "db_type": session.dialect.value,
        }

    @respond
    async def database_info(self, authorization: str | None) -> dict[str, Any]:
        """Engine name, version and table count, each best effort."""
        async with self.registry.lease(authorization) as session:
            introspector = self._introspector(session)
            version = await introspector.server_version()
            table_count = await introspector.table_count()
        return {
            "database": session.database,
            "db_type": session.dialect.display_name,
            "version": version or "Unknown",
            "table_count": table_count or 0,
        }

    # -------------------------------------------------------------------------
    # Schema
    # -------------------------------------------------------------------------

    @respond
    async def list_tables(self, authorization: str | None) -> dict[str, Any]:
        async with self.registry.lease(authorization) as session:
            tables = await self._introspector(session).list_tables()
        return {"tables": [table.model_dump() for table in tables]}

    @respond
    async def get_table(self, authorization: str | None, table: str) -> dict[str, Any]:
        table = require_identifier(table, "table name")
        async with self.registry.lease(authorization) as session:
            columns = await self._introspector(session).list_columns(table)
        return {"columns": [column.model_dump() for column in columns]}

    @respond
    async def get_indexes(self, authorization: str | None, table: str) -> dict[str, Any]:
        table = require_identifier(table, "table name")
        async with self.registry.lease(authorization) as session:
            indexes = await self._introspector(session).list_indexes(table)
        return {"indexes": [index.model_dump() for index in indexes]}

    @respond
    async def get_foreign_keys(self, authorization: str | None, table: str) -> dict[str, Any]:
        table = require_identifier(table, "table name")
        async with self.registry.lease(authorization) as session:
            foreign_keys = await self._introspector(session).list_foreign_keys(table)
        return {"foreign_keys": [fk.model_dump() for fk in foreign_keys]}

    @respond
    async def create_table(
        self, authorization: str | None, request: CreateTableRequest | Mapping[str, Any]
    ) -> dict[str, Any]:
        if not isinstance(request, CreateTableRequest):
            request = CreateTableRequest.model_validate(request)
        async with self.registry.lease(authorization) as session:
            sql = request.to_sql(get_strategy(session.dialect))
            await self._execute(session, sql)
        return {"message": f"Table '{request.name}' created", "table": request.name}

    @respond
    async def alter_table(
        self, authorization: str | None, table: str, request: Any
    ) -> dict[str, Any]:
        table = require_identifier(table, "table name")
        alteration = _alter_adapter.validate_python(request)
        async with self.registry.lease(authorization) as session:
            sql = alteration.to_sql(table, get_strategy(session.dialect))
            await self._execute(session, sql)
        return {"message": f"Table '{table}' altered", "table": table}

    @respond
    async def drop_table(self, authorization: str | None, table: str) -> dict[str, Any]:
        table = require_identifier(table, "table name")
        async with self.registry.lease(authorization) as session:
            await self._execute(session, drop_table_sql(table, get_strategy(session.dialect)))
        return {"message": f"Table '{table}' dropped", "table": table}

    # -------------------------------------------------------------------------
    # Rows
    # -------------------------------------------------------------------------

    @respond
    async def read_rows(
        self,
        authorization: str | None,
        table: str,
        page: int | None = None,
        limit: int | None = None,
        sort: str | None = None,
        order: str | None = None,
    ) -> dict[str, Any]:
        """Read one page of rows.

        On PostgreSQL and MySQL the column names are probed first so every
        column is read as text; if the probe fails the read uses ``SELECT *``.
        """
        table = require_identifier(table, "table name")
        pagination = Pagination.from_request(
            page=page,
            limit=limit,
            sort=sort,
            order=order,
            default_limit=self.settings.default_page_size,
        )

        async with self.registry.lease(authorization) as session:
            strategy = get_strategy(session.dialect)
            projection = ProjectionPlan.raw()
            if strategy.requires_text_projection:
                columns = await self._introspector(session).probe_column_names(table)
                projection = ProjectionPlan.for_probe(strategy, columns)

            statement = QueryBuilder(strategy).select_page(table, pagination, projection)
            result = await self._query(session, statement.sql, statement.params)

        return {
            "rows": normalize_rows(result.rows),
            "page": pagination.page,
            "limit": pagination.limit,
        }

    @respond
    async def insert_row(
        self, authorization: str | None, table: str, row: Mapping[str, Any]
    ) -> dict[str, Any]:
        table = require_identifier(table, "table name")
        async with self.registry.lease(authorization) as session:
            statement = QueryBuilder(get_strategy(session.dialect)).insert(table, row)
            result = await self._execute(session, statement.sql, statement.params)
        return {"message": "Row inserted", "rows_affected": result.affected_rows}

    @respond
    async def update_row(
        self,
        authorization: str | None,
        table: str,
        row_id: str | int,
        row: Mapping[str, Any],
        primary_key: str | None = None,
    ) -> dict[str, Any]:
        table = require_identifier(table, "table name")
        async with self.registry.lease(authorization) as session:
            key = await self._primary_key(session, table, primary_key)
            statement = QueryBuilder(get_strategy(session.dialect)).update_by_id(
                table, key, str(row_id), row
            )
            result = await self._execute(session, statement.sql, statement.params)
        return {"message": "Row updated", "rows_affected": result.affected_rows}

    @respond
    async def delete_row(
        self,
        authorization: str | None,
        table: str,
        row_id: str | int,
        primary_key: str | None = None,
    ) -> dict[str, Any]:
        table = require_identifier(table, "table name")
        async with self.registry.lease(authorization) as session:
            key = await self._primary_key(session, table, primary_key)
            statement = QueryBuilder(get_strategy(session.dialect)).delete_by_id(
                table, key, str(row_id)
            )
            result = await self._execute(session, statement.sql, statement.params)
        return {"message": "Row deleted", "rows_affected": result.affected_rows}

    # -------------------------------------------------------------------------
    # Raw SQL
    # -------------------------------------------------------------------------

    @respond
    async def execute_query(self, authorization: str | None, sql: str) -> dict[str, Any]:
        """Run caller SQL as-is with the session's credentials.

        Statements starting with SELECT return rows; anything else returns
        the affected row count.
        """
        if not isinstance(sql, str) or not sql.strip():
            raise InvalidRequestError("Query must not be empty")

        async with self.registry.lease(authorization) as session:
            if is_select(sql):
                result = await self._query(session, sql)
                return {"rows": normalize_rows(result.rows), "row_count": result.row_count}
            result = await self._execute(session, sql)
        return {"message": "Query executed", "rows_affected": result.affected_rows}

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _introspector(self, session: Session) -> SchemaIntrospector:
        return SchemaIntrospector(session.backend, session.dialect, session.database)

    async def _primary_key(self, session: Session, table: str, supplied: str | None) -> str:
        if supplied:
            return require_identifier(supplied, "primary key column")
        return await resolve_primary_key(session.backend, session.dialect, table, session.database)

    async def _query(self, session: Session, sql: str, params: Any = None) -> QueryResult:
        logger.debug(f"[{session.dialect.value}] query: {sql}")
        try:
            return await session.backend.query(sql, params or None)
        except Exception as e:
            raise SqlExecutionError(str(e)) from e

    async def _execute(self, session: Session, sql: str, params: Any = None) -> QueryResult:
        logger.debug(f"[{session.dialect.value}] execute: {sql}")
        try:
            return await session.backend.execute(sql, params or None)
        except Exception as e:
            raise SqlExecutionError(str(e)) from e
