"""Query builder for table reads and row mutations.

Generates one complete statement per call from a validated table name, the
request's column/value pairs or pagination, and the session's dialect
strategy.

Values are either bound to placeholders or inlined as literals, chosen per
dialect by ``DialectStrategy.inline_values``. Row ids are always inlined as
escaped string literals and never type-coerced; the engine casts them to the
key column's type.

Example:
    builder = QueryBuilder(get_strategy(Dialect.SQLITE))

    builder.insert("tasks", {"name": "Task 1", "done": False})
    # -> Statement('INSERT INTO "tasks" ("name", "done") VALUES (?, ?)', ("Task 1", False))

    builder.select_page("tasks", Pagination.from_request(page=2, limit=10, sort="name"))
    # -> Statement('SELECT * FROM "tasks" ORDER BY "name" ASC LIMIT 10 OFFSET 10')
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from ..exceptions import InvalidRequestError
from .dialects import DialectStrategy
from .identifiers import require_identifier, validate_identifier
from .normalizer import ProjectionPlan

MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 50


@dataclass(frozen=True)
class Pagination:
    """Clamped pagination for a table read.

    Attributes:
        page: 1-based page number
        limit: Rows per page, 1..MAX_PAGE_SIZE
        sort: Validated sort column, or None to omit ORDER BY
        descending: Sort direction
    """

    page: int = 1
    limit: int = DEFAULT_PAGE_SIZE
    sort: str | None = None
    descending: bool = False

    @classmethod
    def from_request(
        cls,
        page: int | None = None,
        limit: int | None = None,
        sort: str | None = None,
        order: str | None = None,
        default_limit: int = DEFAULT_PAGE_SIZE,
    ) -> Pagination:
        """Build pagination from raw request values.

        Page is clamped to at least 1 and limit to 1..100. An invalid or
        missing sort column silently drops ORDER BY. Only ``desc``
        (any case) sorts descending.
        """
        page = max(1, page or 1)
        limit = default_limit if limit is None else limit
        limit = max(1, min(MAX_PAGE_SIZE, limit))
        sort_column = sort if validate_identifier(sort) else None
        descending = (order or "").strip().lower() == "desc"
        return cls(page=page, limit=limit, sort=sort_column, descending=descending)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass(frozen=True)
class Statement:
    """SQL text with its placeholder bindings."""

    sql: str
    params: tuple[Any, ...] = ()


def require_row(row: Any) -> dict[str, Any]:
    """Validate a request body as a non-empty object of valid column names.

    Raises:
        InvalidRequestError: Body is not an object, is empty, or names an
            invalid column (the offending name is in the message)
    """
    if not isinstance(row, Mapping):
        raise InvalidRequestError("Request body must be a JSON object")
    if not row:
        raise InvalidRequestError("Request body must not be empty")
    for column in row:
        if not validate_identifier(column):
            raise InvalidRequestError(f"Invalid column name: {column}")
    return dict(row)


class QueryBuilder:
    """Builds SELECT/INSERT/UPDATE/DELETE statements for one dialect.

    Attributes:
        strategy: Dialect strategy supplying quoting, placeholders and literals
        inline_values: Inline values as literals instead of binding them
    """

    def __init__(self, strategy: DialectStrategy, inline_values: bool | None = None):
        self.strategy = strategy
        self.inline_values = strategy.inline_values if inline_values is None else inline_values

    def select_page(
        self,
        table: str,
        pagination: Pagination,
        projection: ProjectionPlan | None = None,
    ) -> Statement:
        """Generate a paginated SELECT.

        Args:
            table: Table name (validated here)
            pagination: Clamped pagination
            projection: Select-list plan (default ``SELECT *``)
        """
        q = self.strategy.quote
        table = require_identifier(table, "table name")
        projection = projection or ProjectionPlan.raw()

        sql = f"SELECT {projection.select_list(self.strategy)} FROM {q(table)}"

        if pagination.sort and validate_identifier(pagination.sort):
            direction = "DESC" if pagination.descending else "ASC"
            sql += f" ORDER BY {q(pagination.sort)} {direction}"

        sql += f" LIMIT {int(pagination.limit)} OFFSET {int(pagination.offset)}"
        return Statement(sql)

    def insert(self, table: str, row: Mapping[str, Any]) -> Statement:
        """Generate INSERT for one row."""
        q = self.strategy.quote
        table = require_identifier(table, "table name")
        data = require_row(row)

        params: list[Any] = []
        columns = ", ".join(q(column) for column in data)
        values = ", ".join(self._render_value(value, params) for value in data.values())

        return Statement(f"INSERT INTO {q(table)} ({columns}) VALUES ({values})", tuple(params))

    def update_by_id(
        self, table: str, primary_key: str, row_id: str, row: Mapping[str, Any]
    ) -> Statement:
        """Generate UPDATE ... WHERE <pk> = '<row_id>'."""
        q = self.strategy.quote
        table = require_identifier(table, "table name")
        primary_key = require_identifier(primary_key, "primary key column")
        data = require_row(row)

        params: list[Any] = []
        assignments = ", ".join(
            f"{q(column)} = {self._render_value(value, params)}" for column, value in data.items()
        )
        where = f"{q(primary_key)} = {self.strategy.literal(str(row_id))}"

        return Statement(f"UPDATE {q(table)} SET {assignments} WHERE {where}", tuple(params))

    def delete_by_id(self, table: str, primary_key: str, row_id: str) -> Statement:
        """Generate DELETE ... WHERE <pk> = '<row_id>'."""
        q = self.strategy.quote
        table = require_identifier(table, "table name")
        primary_key = require_identifier(primary_key, "primary key column")

        where = f"{q(primary_key)} = {self.strategy.literal(str(row_id))}"
        return Statement(f"DELETE FROM {q(table)} WHERE {where}")

    def _render_value(self, value: Any, params: list[Any]) -> str:
        """Render one value as a literal or append it as a bound parameter.

        JSON objects and arrays are stored as their JSON text.
        """
        if value is None:
            return "NULL"
        if isinstance(value, (dict, list)):
            value = json.dumps(value)

        if not self.inline_values:
            placeholder = self.strategy.placeholder(len(params))
            params.append(value)
            return placeholder

        if isinstance(value, bool):
            return self.strategy.boolean_literal(value)
        if isinstance(value, int):
            return str(value)
        if isinstance(value, float):
            return repr(value)
        return self.strategy.literal(str(value))
