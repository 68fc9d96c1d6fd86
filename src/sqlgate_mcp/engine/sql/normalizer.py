"""Result normalization.

Drivers hand back rows of native Python values whose types depend on the
engine and the column. The normalizer turns every row into an ordered
mapping of column name to one of ``str | int | float | bool | None``.

Each cell goes through a coercion chain: an ordered list of typed
extractors, each of which either returns a scalar or raises. The first
extractor that succeeds wins; a cell no extractor accepts becomes ``None``.
New fallback types are added to ``DEFAULT_EXTRACTORS`` and nowhere else.

Order of the chain:
    1. text
    2. 64-bit integer (booleans excluded)
    3. float (also decimals)
    4. boolean
    5. raw bytes, decoded as UTF-8
    6. temporal and UUID values, rendered as text

This module also owns the projection plan used before table reads. On
PostgreSQL and MySQL, reads select every column through a text cast so
temporal and binary types reach the normalizer as text. The plan is either
CAST (catalog probe succeeded) or RAW (``SELECT *``); both are built
explicitly so each path can be tested on its own.
"""

from __future__ import annotations

import datetime
import uuid
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any

from .dialects import DialectStrategy
from .identifiers import validate_identifier

Scalar = str | int | float | bool | None
Extractor = Callable[[Any], Scalar]

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1


def extract_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    raise TypeError(f"not text: {type(value).__name__}")


def extract_integer(value: Any) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        if INT64_MIN <= value <= INT64_MAX:
            return value
        raise ValueError("integer out of 64-bit range")
    raise TypeError(f"not an integer: {type(value).__name__}")


def extract_float(value: Any) -> float:
    if isinstance(value, float):
        return value
    if isinstance(value, Decimal):
        return float(value)
    raise TypeError(f"not a float: {type(value).__name__}")


def extract_boolean(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    raise TypeError(f"not a boolean: {type(value).__name__}")


def extract_bytes(value: Any) -> str:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode("utf-8")
    raise TypeError(f"not bytes: {type(value).__name__}")


def extract_temporal(value: Any) -> str:
    if isinstance(value, (datetime.datetime, datetime.date, datetime.time)):
        return value.isoformat()
    if isinstance(value, (datetime.timedelta, uuid.UUID)):
        return str(value)
    raise TypeError(f"not temporal: {type(value).__name__}")


DEFAULT_EXTRACTORS: tuple[Extractor, ...] = (
    extract_text,
    extract_integer,
    extract_float,
    extract_boolean,
    extract_bytes,
    extract_temporal,
)


class RowNormalizer:
    """Applies the coercion chain to driver rows.

    Example:
        normalizer = RowNormalizer()
        normalizer.normalize_row({"id": 1, "data": b"abc", "tags": ["x"]})
        # -> {"id": 1, "data": "abc", "tags": None}
    """

    def __init__(self, extractors: Iterable[Extractor] = DEFAULT_EXTRACTORS) -> None:
        self.extractors = tuple(extractors)

    def coerce(self, value: Any) -> Scalar:
        """Return the first successful extraction, or None."""
        for extract in self.extractors:
            try:
                return extract(value)
            except (TypeError, ValueError):
                continue
        return None

    def normalize_row(self, row: Mapping[str, Any]) -> dict[str, Scalar]:
        """Normalize one row, keeping every column in driver order."""
        return {column: self.coerce(value) for column, value in row.items()}

    def normalize_rows(self, rows: Iterable[Mapping[str, Any]]) -> list[dict[str, Scalar]]:
        return [self.normalize_row(row) for row in rows]


default_normalizer = RowNormalizer()


def normalize_rows(rows: Iterable[Mapping[str, Any]]) -> list[dict[str, Scalar]]:
    """Normalize rows with the default coercion chain."""
    return default_normalizer.normalize_rows(rows)


class ProjectionMode(Enum):
    """How a table read builds its select list."""

    CAST = "cast"
    RAW = "raw"


@dataclass(frozen=True)
class ProjectionPlan:
    """Select list for a table read.

    Attributes:
        mode: CAST (every column read as text) or RAW (``SELECT *``)
        columns: Probed column names, in table order (CAST only)
    """

    mode: ProjectionMode
    columns: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def raw(cls) -> ProjectionPlan:
        return cls(ProjectionMode.RAW)

    @classmethod
    def cast(cls, columns: Iterable[str]) -> ProjectionPlan:
        return cls(ProjectionMode.CAST, tuple(columns))

    @classmethod
    def for_probe(cls, strategy: DialectStrategy, columns: list[str] | None) -> ProjectionPlan:
        """Choose the plan from a catalog probe result.

        Falls back to RAW when the dialect needs no cast, the probe failed
        (``None``), found no columns, or returned a name that is not a valid
        identifier.
        """
        if not strategy.requires_text_projection or not columns:
            return cls.raw()
        if not all(validate_identifier(column) for column in columns):
            return cls.raw()
        return cls.cast(columns)

    def select_list(self, strategy: DialectStrategy) -> str:
        """Render the select list for this plan."""
        if self.mode == ProjectionMode.RAW or not self.columns:
            return "*"

        parts = []
        for column in self.columns:
            expression = strategy.text_projection(column)
            parts.append(expression if expression is not None else strategy.quote(column))
        return ", ".join(parts)
