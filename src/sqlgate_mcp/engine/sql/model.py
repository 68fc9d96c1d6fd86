"""DDL intents and their compilation to dialect-specific SQL.

Callers describe tables with a small set of logical column types
(TEXT, INTEGER, BOOLEAN, DATETIME, FLOAT, UUID); unrecognized types fall
back to TEXT. Every name is validated before it is quoted into SQL.

Example:
    request = CreateTableRequest.model_validate({
        "name": "tasks",
        "columns": [
            {"name": "id", "data_type": "INTEGER", "is_primary_key": True},
            {"name": "title", "data_type": "TEXT", "nullable": False},
            {"name": "done", "data_type": "BOOLEAN", "default_value": False},
        ],
    })
    request.to_sql(get_strategy(Dialect.SQLITE))
    # -> CREATE TABLE "tasks" ("id" INTEGER PRIMARY KEY,
    #    "title" TEXT NOT NULL, "done" INTEGER DEFAULT 0)
"""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, Field

from ..exceptions import InvalidRequestError
from .dialects import DialectStrategy
from .identifiers import require_identifier

# Defaults rendered verbatim rather than as string literals
DEFAULT_KEYWORDS = frozenset(
    {"NULL", "CURRENT_TIMESTAMP", "CURRENT_DATE", "CURRENT_TIME", "TRUE", "FALSE"}
)

OnDeleteAction = Literal["cascade", "set_null", "restrict", "no_action"]


class ColumnDefinition(BaseModel):
    """Column definition for CREATE TABLE and ADD COLUMN.

    Attributes:
        name: Column name
        data_type: Logical type (TEXT, INTEGER, BOOLEAN, DATETIME, FLOAT, UUID)
        nullable: False adds NOT NULL
        is_primary_key: Column is (part of) the primary key
        unique: Adds UNIQUE
        auto_increment: Use the dialect's auto-increment integer type
        default_value: DEFAULT value (strings are quoted unless a SQL keyword)
    """

    name: str
    data_type: str = "TEXT"
    nullable: bool = True
    is_primary_key: bool = False
    unique: bool = False
    auto_increment: bool = False
    default_value: str | int | float | bool | None = None

    def to_sql(self, strategy: DialectStrategy, inline_primary_key: bool = True) -> str:
        """Generate the column definition.

        Constraints are emitted in a fixed order: NOT NULL, PRIMARY KEY,
        UNIQUE, DEFAULT.

        Args:
            strategy: Target dialect
            inline_primary_key: Emit PRIMARY KEY on the column itself
                (False when the table declares a composite key)
        """
        require_identifier(self.name, "column name")

        if self.auto_increment:
            sql_type = strategy.auto_increment_type
        else:
            sql_type = strategy.native_type(self.data_type)

        parts = [strategy.quote(self.name), sql_type]

        if not self.nullable:
            parts.append("NOT NULL")

        if self.is_primary_key and inline_primary_key:
            parts.append("PRIMARY KEY")

        if self.unique:
            parts.append("UNIQUE")

        if self.default_value is not None:
            parts.append(f"DEFAULT {self._format_default(strategy)}")

        return " ".join(parts)

    def _format_default(self, strategy: DialectStrategy) -> str:
        """Format default value for SQL."""
        value = self.default_value
        if isinstance(value, bool):
            return strategy.boolean_literal(value)
        if isinstance(value, (int, float)):
            return repr(value)
        text = str(value)
        if text.strip().upper() in DEFAULT_KEYWORDS:
            return text.strip().upper()
        return strategy.literal(text)


class ForeignKeyDefinition(BaseModel):
    """Foreign key constraint for CREATE TABLE.

    Attributes:
        column: Referencing column in the new table
        foreign_table: Referenced table
        foreign_column: Referenced column
        on_delete: Optional ON DELETE action
    """

    column: str
    foreign_table: str
    foreign_column: str
    on_delete: OnDeleteAction | None = None

    def to_sql(self, strategy: DialectStrategy) -> str:
        """Generate the FOREIGN KEY table constraint."""
        column = require_identifier(self.column, "column name")
        foreign_table = require_identifier(self.foreign_table, "table name")
        foreign_column = require_identifier(self.foreign_column, "column name")

        sql = (
            f"FOREIGN KEY ({strategy.quote(column)}) "
            f"REFERENCES {strategy.quote(foreign_table)}({strategy.quote(foreign_column)})"
        )
        if self.on_delete:
            sql += f" ON DELETE {self.on_delete.upper().replace('_', ' ')}"
        return sql


class CreateTableRequest(BaseModel):
    """CREATE TABLE intent."""

    name: str
    columns: list[ColumnDefinition]
    foreign_keys: list[ForeignKeyDefinition] = Field(default_factory=list)

    def to_sql(self, strategy: DialectStrategy) -> str:
        """Generate the CREATE TABLE statement.

        A single primary-key column carries PRIMARY KEY inline; several
        primary-key columns produce a table-level ``PRIMARY KEY (...)``.

        Raises:
            InvalidRequestError: Invalid names, no columns, duplicate columns,
                or a foreign key on an undeclared column
        """
        table = require_identifier(self.name, "table name")
        if not self.columns:
            raise InvalidRequestError("Table must have at least one column")

        seen: set[str] = set()
        for column in self.columns:
            require_identifier(column.name, "column name")
            if column.name in seen:
                raise InvalidRequestError(f"Duplicate column name: {column.name}")
            seen.add(column.name)

        for fk in self.foreign_keys:
            if fk.column not in seen:
                raise InvalidRequestError(f"Foreign key references unknown column: {fk.column}")

        primary_keys = [column.name for column in self.columns if column.is_primary_key]
        composite = len(primary_keys) > 1

        definitions = [
            column.to_sql(strategy, inline_primary_key=not composite) for column in self.columns
        ]
        if composite:
            key_list = ", ".join(strategy.quote(name) for name in primary_keys)
            definitions.append(f"PRIMARY KEY ({key_list})")
        definitions.extend(fk.to_sql(strategy) for fk in self.foreign_keys)

        return f"CREATE TABLE {strategy.quote(table)} ({', '.join(definitions)})"


class RenameTable(BaseModel):
    """ALTER TABLE ... RENAME TO."""

    alter_type: Literal["RenameTable"]
    new_name: str

    def to_sql(self, table: str, strategy: DialectStrategy) -> str:
        new_name = require_identifier(self.new_name, "table name")
        return f"ALTER TABLE {strategy.quote(table)} RENAME TO {strategy.quote(new_name)}"


class AddColumn(BaseModel):
    """ALTER TABLE ... ADD COLUMN."""

    alter_type: Literal["AddColumn"]
    column_definition: ColumnDefinition

    def to_sql(self, table: str, strategy: DialectStrategy) -> str:
        definition = self.column_definition.to_sql(strategy)
        return f"ALTER TABLE {strategy.quote(table)} ADD COLUMN {definition}"


class DropColumn(BaseModel):
    """ALTER TABLE ... DROP COLUMN."""

    alter_type: Literal["DropColumn"]
    column_name: str

    def to_sql(self, table: str, strategy: DialectStrategy) -> str:
        column = require_identifier(self.column_name, "column name")
        return f"ALTER TABLE {strategy.quote(table)} DROP COLUMN {strategy.quote(column)}"


AlterTableRequest = Annotated[
    RenameTable | AddColumn | DropColumn,
    Field(discriminator="alter_type"),
]


def drop_table_sql(table: str, strategy: DialectStrategy) -> str:
    """Generate DROP TABLE for a validated table name."""
    return f"DROP TABLE {strategy.quote(require_identifier(table, 'table name'))}"
