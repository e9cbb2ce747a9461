"""
In-memory data store for development and tests.

Does not touch the network, but honours the same contract as the REST
adapter, including the unique user_id on member_profiles and the error
types raised on failure.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from copy import deepcopy
from datetime import datetime, timezone
from uuid import uuid4

from lodge_portal.shared.exceptions import BackendConnectionError, StoreError
from lodge_portal.store.interface import DataStore, Filter, Row

UNIQUE_COLUMNS: dict[str, tuple[str, ...]] = {
    "member_profiles": ("user_id",),
    "site_settings": ("setting_key",),
}


class InMemoryDataStore(DataStore):
    """Table-of-rows store with injectable failures and latency."""

    def __init__(self, tables: dict[str, list[Row]] | None = None) -> None:
        self._tables: dict[str, list[Row]] = {
            name: [dict(row) for row in rows] for name, rows in (tables or {}).items()
        }
        self.unavailable = False
        self.latency: dict[str, float] = {}
        self._failures: dict[str, list[StoreError]] = {}
        self.calls: list[tuple[str, str]] = []

    # -- test hooks ---------------------------------------------------------

    def fail_next(self, operation: str, message: str, status_code: int = 400) -> None:
        """Make the next ``operation`` call ("select", "insert", ...) fail."""
        self._failures.setdefault(operation, []).append(StoreError(message, status_code=status_code))

    def rows(self, table: str) -> list[Row]:
        return deepcopy(self._tables.get(table, []))

    # -- internals ----------------------------------------------------------

    async def _enter(self, operation: str, table: str) -> None:
        self.calls.append((operation, table))
        delay = self.latency.get(operation, 0.0)
        if delay:
            await asyncio.sleep(delay)
        if self.unavailable:
            raise BackendConnectionError(details={"table": table})
        pending = self._failures.get(operation)
        if pending:
            raise pending.pop(0)

    def _table(self, table: str) -> list[Row]:
        return self._tables.setdefault(table, [])

    @staticmethod
    def _matches(row: Row, filters: Sequence[Filter]) -> bool:
        return all(f.matches(row) for f in filters)

    def _check_unique(self, table: str, row: Row, ignore: Row | None = None) -> None:
        for column in UNIQUE_COLUMNS.get(table, ()):
            value = row.get(column)
            if value is None:
                continue
            for existing in self._table(table):
                if existing is ignore:
                    continue
                if existing.get(column) == value:
                    raise StoreError(
                        f'duplicate key value violates unique constraint "{table}_{column}_key"',
                        status_code=409,
                        code="23505",
                    )

    # -- DataStore ----------------------------------------------------------

    async def select(
        self,
        table: str,
        *,
        filters: Sequence[Filter] = (),
        columns: str = "*",
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[Row]:
        await self._enter("select", table)
        rows = [row for row in self._table(table) if self._matches(row, filters)]
        if order_by:
            present = [r for r in rows if r.get(order_by) is not None]
            missing = [r for r in rows if r.get(order_by) is None]
            rows = sorted(present, key=lambda r: r[order_by], reverse=descending) + missing
        if limit is not None:
            rows = rows[:limit]
        if columns != "*":
            wanted = [c.strip() for c in columns.split(",")]
            rows = [{c: row.get(c) for c in wanted} for row in rows]
        return deepcopy(rows)

    async def insert(self, table: str, rows: Sequence[Row]) -> list[Row]:
        await self._enter("insert", table)
        now = datetime.now(timezone.utc).isoformat()
        stored: list[Row] = []
        for row in rows:
            new_row = {"id": str(uuid4()), "created_at": now, "updated_at": now, **row}
            self._check_unique(table, new_row)
            self._table(table).append(new_row)
            stored.append(new_row)
        return deepcopy(stored)

    async def update(
        self,
        table: str,
        values: Row,
        *,
        filters: Sequence[Filter],
    ) -> list[Row]:
        await self._enter("update", table)
        updated: list[Row] = []
        for row in self._table(table):
            if self._matches(row, filters):
                self._check_unique(table, {**row, **values}, ignore=row)
                row.update(values)
                row["updated_at"] = datetime.now(timezone.utc).isoformat()
                updated.append(row)
        return deepcopy(updated)

    async def delete(self, table: str, *, filters: Sequence[Filter]) -> list[Row]:
        await self._enter("delete", table)
        kept: list[Row] = []
        removed: list[Row] = []
        for row in self._table(table):
            (removed if self._matches(row, filters) else kept).append(row)
        self._tables[table] = kept
        return deepcopy(removed)

    async def count(self, table: str, *, filters: Sequence[Filter] = ()) -> int:
        await self._enter("count", table)
        return sum(1 for row in self._table(table) if self._matches(row, filters))
