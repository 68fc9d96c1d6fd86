"""Request and response models shared by the gateway and the MCP tools."""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .sql.backend import Dialect

T = TypeVar("T")

DIALECT_ALIASES = {"postgresql": "postgres", "mariadb": "mysql", "sqlite3": "sqlite"}


class ConnectRequest(BaseModel):
    """Credentials for opening a session.

    For SQLite, ``database`` is the database file path and the network
    fields are ignored.
    """

    host: str = ""
    port: int | None = Field(default=None, description="Server port (default per dialect)")
    database: str = Field(min_length=1)
    username: str = ""
    password: str = ""
    db_type: Dialect

    @field_validator("db_type", mode="before")
    @classmethod
    def _normalize_db_type(cls, v: Any) -> Any:
        """Accept dialect names in any case, plus common aliases."""
        if isinstance(v, str):
            name = v.strip().lower()
            return DIALECT_ALIASES.get(name, name)
        return v

    @field_validator("port", mode="before")
    @classmethod
    def _validate_port(cls, v: Any) -> int | None:
        """Validate port, allowing None."""
        if v is None or v == "":
            return None
        try:
            port = int(v)
        except (ValueError, TypeError) as e:
            raise ValueError(f"Invalid port value: {v}") from e
        if not 0 <= port <= 65535:
            raise ValueError("port must be between 0 and 65535")
        # 0 means "not given"
        return port or None


class ApiResponse(BaseModel, Generic[T]):
    """Envelope shared by every operation."""

    success: bool
    data: T | None = None
    error: str | None = None

    @classmethod
    def ok(cls, data: T) -> ApiResponse[T]:
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str) -> ApiResponse[T]:
        return cls(success=False, error=error)

    def to_dict(self) -> dict[str, Any]:
        """Serialize without the unused member of data/error.

        Nulls inside ``data`` (row values, status fields) are kept.
        """
        payload = self.model_dump(mode="json")
        if self.success:
            payload.pop("error", None)
        else:
            payload.pop("data", None)
        return payload


class _SchemaInfo(BaseModel):
    model_config = ConfigDict(frozen=True)


class TableInfo(_SchemaInfo):
    """A table or view in the session's database."""

    name: str
    table_type: str = Field(description="TABLE or VIEW")
    row_count_estimate: int | None = None


class ColumnInfo(_SchemaInfo):
    """One column of a table."""

    name: str
    data_type: str
    nullable: bool
    is_primary_key: bool = False
    default_value: str | None = None


class IndexInfo(_SchemaInfo):
    """One index of a table with its columns in key order."""

    name: str
    column_names: list[str] = Field(default_factory=list)
    is_unique: bool = False
    is_primary: bool = False


class ForeignKeyInfo(_SchemaInfo):
    """One column of a foreign-key constraint."""

    constraint_name: str
    column_name: str
    foreign_table: str
    foreign_column: str
