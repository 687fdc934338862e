"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Data store request/response types and protocol.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import Any, Literal, Protocol, runtime_checkable

from ..errors import StoreRequestError
from ..types import Row

# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

NO_ROWS_CODE = "PGRST116"


@dataclass(frozen=True, slots=True)
class StoreError:
    """Server- or transport-reported failure."""

    message: str
    code: str | None = None
    status: int | None = None
    details: str | None = None


@dataclass(frozen=True, slots=True)
class StoreResult:
    """``{data, error}`` envelope returned by every store call."""

    data: Any = None
    error: StoreError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> Any:
        """
        Return ``data``.

        Raises:
            StoreRequestError: If the result carries an error.
        """
        if self.error is not None:
            raise StoreRequestError(
                self.error.message, code=self.error.code, status=self.error.status
            )
        return self.data


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

FilterOp = Literal["eq", "neq", "gt", "gte", "lt", "lte", "in", "ilike"]


def _like_to_regex(pattern: str) -> re.Pattern[str]:
    parts = (re.escape(chunk) for chunk in pattern.split("%"))
    return re.compile(".*".join(parts), re.IGNORECASE | re.DOTALL)


def plain_value(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (list, tuple, set, frozenset)):
        return [plain_value(v) for v in value]
    return value


@dataclass(frozen=True, slots=True)
class Filter:
    column: str
    op: FilterOp
    value: Any

    def matches(self, row: Row) -> bool:
        actual = row.get(self.column)
        expected = plain_value(self.value)
        if self.op == "eq":
            return actual == expected
        if self.op == "neq":
            return actual != expected
        if self.op == "in":
            return actual in expected
        if actual is None:
            return False
        if self.op == "ilike":
            return _like_to_regex(str(expected)).fullmatch(str(actual)) is not None
        if self.op == "gt":
            return actual > expected
        if self.op == "gte":
            return actual >= expected
        if self.op == "lt":
            return actual < expected
        if self.op == "lte":
            return actual <= expected
        raise ValueError(f"Unknown filter op: {self.op}")


@dataclass(frozen=True, slots=True)
class Embed:
    """Foreign-key join rendered as ``table(columns)`` in the select list."""

    table: str
    foreign_key: str
    columns: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class SelectQuery:
    """
    Immutable select request built with chained helpers.

    Example::

        SelectQuery("sewer_quality_data").eq("plant_id", pid).order("created_at", descending=True)
    """

    table: str
    columns: str = "*"
    filters: tuple[Filter, ...] = ()
    embeds: tuple[Embed, ...] = ()
    order_by: str | None = None
    descending: bool = False
    limit: int | None = None
    single: bool = False

    def where(self, column: str, op: FilterOp, value: Any) -> "SelectQuery":
        return replace(self, filters=self.filters + (Filter(column, op, value),))

    def eq(self, column: str, value: Any) -> "SelectQuery":
        return self.where(column, "eq", value)

    def neq(self, column: str, value: Any) -> "SelectQuery":
        return self.where(column, "neq", value)

    def gt(self, column: str, value: Any) -> "SelectQuery":
        return self.where(column, "gt", value)

    def gte(self, column: str, value: Any) -> "SelectQuery":
        return self.where(column, "gte", value)

    def lt(self, column: str, value: Any) -> "SelectQuery":
        return self.where(column, "lt", value)

    def lte(self, column: str, value: Any) -> "SelectQuery":
        return self.where(column, "lte", value)

    def in_(self, column: str, values: Any) -> "SelectQuery":
        """Match rows whose `column` is one of `values`."""
        return self.where(column, "in", tuple(values))

    def ilike(self, column: str, pattern: str) -> "SelectQuery":
        return self.where(column, "ilike", pattern)

    def embed(self, table: str, foreign_key: str, *columns: str) -> "SelectQuery":
        return replace(self, embeds=self.embeds + (Embed(table, foreign_key, tuple(columns)),))

    def order(self, column: str, *, descending: bool = False) -> "SelectQuery":
        return replace(self, order_by=column, descending=descending)

    def limit_to(self, count: int) -> "SelectQuery":
        if count < 0:
            raise ValueError("limit must be >= 0")
        return replace(self, limit=count)

    def one(self) -> "SelectQuery":
        return replace(self, single=True)

    def select_list(self) -> str:
        parts = [self.columns]
        for embed in self.embeds:
            parts.append(f"{embed.table}({','.join(embed.columns) or '*'})")
        return ",".join(parts)


# ---------------------------------------------------------------------------
# Store protocol
# ---------------------------------------------------------------------------


@runtime_checkable
class DataStore(Protocol):
    """Hosted relational store surface; errors come back in ``StoreResult``."""

    async def select(self, query: SelectQuery) -> StoreResult: ...

    async def insert(self, table: str, rows: Row | list[Row]) -> StoreResult: ...

    async def update(self, table: str, values: Row, *, match: Mapping[str, Any]) -> StoreResult: ...

    async def delete(self, table: str, *, match: Mapping[str, Any]) -> StoreResult: ...


@dataclass(slots=True)
class StoreCallLog:
    """Per-operation call counters kept by in-process stores."""

    counts: dict[str, int] = field(default_factory=dict)

    def record(self, operation: str, table: str) -> None:
        name = f"{operation}:{table}"
        self.counts[name] = self.counts.get(name, 0) + 1

    def count(self, operation: str, table: str) -> int:
        return self.counts.get(f"{operation}:{table}", 0)
