"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

In-memory data store implementation.
"""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from ..types import Row
from .types import NO_ROWS_CODE, SelectQuery, StoreCallLog, StoreError, StoreResult


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class InMemoryDataStore:
    """
    In-process relational store using dict-of-lists tables.

    Suitable for local development and testing. Rows are lost on process
    restart. ``latency_s`` keeps each request suspended for that long, and
    ``fail_next`` queues errors for upcoming calls.
    """

    def __init__(
        self,
        tables: Mapping[str, list[Row]] | None = None,
        *,
        latency_s: float = 0.0,
    ) -> None:
        self._tables: dict[str, list[Row]] = {
            name: [dict(row) for row in rows] for name, rows in (tables or {}).items()
        }
        self.latency_s = latency_s
        self.calls = StoreCallLog()
        self._failures: dict[tuple[str, str], list[StoreError]] = {}

    def seed(self, table: str, rows: list[Row]) -> None:
        self._tables.setdefault(table, []).extend(dict(row) for row in rows)

    def rows(self, table: str) -> list[Row]:
        return [dict(row) for row in self._tables.get(table, [])]

    def fail_next(
        self,
        operation: str,
        table: str,
        error: StoreError | None = None,
        *,
        times: int = 1,
    ) -> None:
        """Make the next `times` calls of `operation` on `table` fail."""
        err = error or StoreError("Injected failure", code="injected")
        self._failures.setdefault((operation, table), []).extend([err] * times)

    async def _enter(self, operation: str, table: str) -> StoreError | None:
        self.calls.record(operation, table)
        await asyncio.sleep(self.latency_s)
        queued = self._failures.get((operation, table))
        if queued:
            return queued.pop(0)
        return None

    async def select(self, query: SelectQuery) -> StoreResult:
        error = await self._enter("select", query.table)
        if error is not None:
            return StoreResult(error=error)

        rows = [
            dict(row)
            for row in self._tables.get(query.table, [])
            if all(f.matches(row) for f in query.filters)
        ]
        if query.order_by is not None:
            column = query.order_by
            rows.sort(
                key=lambda r: (r.get(column) is None, r.get(column)),
                reverse=query.descending,
            )
        if query.limit is not None:
            rows = rows[: query.limit]
        for embed in query.embeds:
            related = {r.get("id"): r for r in self._tables.get(embed.table, [])}
            for row in rows:
                match = related.get(row.get(embed.foreign_key))
                if match is None:
                    row[embed.table] = None
                elif embed.columns:
                    row[embed.table] = {c: match.get(c) for c in embed.columns}
                else:
                    row[embed.table] = dict(match)

        if query.single:
            if len(rows) != 1:
                return StoreResult(
                    error=StoreError(
                        "JSON object requested, multiple (or no) rows returned",
                        code=NO_ROWS_CODE,
                        status=406,
                    )
                )
            return StoreResult(data=rows[0])
        return StoreResult(data=rows)

    async def insert(self, table: str, rows: Row | list[Row]) -> StoreResult:
        error = await self._enter("insert", table)
        if error is not None:
            return StoreResult(error=error)
        batch = [rows] if isinstance(rows, dict) else list(rows)
        inserted: list[Row] = []
        for row in batch:
            stamp = _now_iso()
            record = {"id": uuid.uuid4().hex, "created_at": stamp, "updated_at": stamp, **row}
            self._tables.setdefault(table, []).append(record)
            inserted.append(dict(record))
        return StoreResult(data=inserted)

    async def update(self, table: str, values: Row, *, match: Mapping[str, Any]) -> StoreResult:
        error = await self._enter("update", table)
        if error is not None:
            return StoreResult(error=error)
        updated: list[Row] = []
        for row in self._tables.get(table, []):
            if all(row.get(k) == v for k, v in match.items()):
                row.update(values)
                row["updated_at"] = _now_iso()
                updated.append(dict(row))
        return StoreResult(data=updated)

    async def delete(self, table: str, *, match: Mapping[str, Any]) -> StoreResult:
        error = await self._enter("delete", table)
        if error is not None:
            return StoreResult(error=error)
        if not match:
            return StoreResult(
                error=StoreError("DELETE requires a filter", code="21000", status=400)
            )
        kept: list[Row] = []
        deleted: list[Row] = []
        for row in self._tables.get(table, []):
            if all(row.get(k) == v for k, v in match.items()):
                deleted.append(dict(row))
            else:
                kept.append(row)
        self._tables[table] = kept
        return StoreResult(data=deleted)
