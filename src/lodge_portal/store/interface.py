"""
Data store interface definition.

The hosted backend exposes table-shaped resources; this is the minimal
contract the facade and the profile loader rely on.
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

Row = dict[str, Any]


class FilterOp(str, Enum):
    """Comparison operators understood by every adapter."""

    EQ = "eq"
    NEQ = "neq"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    IS = "is"


@dataclass(frozen=True)
class Filter:
    """A single column condition."""

    column: str
    op: FilterOp
    value: Any

    def matches(self, row: Row) -> bool:
        actual = row.get(self.column)
        if self.op is FilterOp.IS:
            return actual is self.value or actual == self.value
        if self.op is FilterOp.EQ:
            return actual == self.value
        if self.op is FilterOp.NEQ:
            return actual != self.value
        if actual is None:
            return False
        if self.op is FilterOp.GT:
            return actual > self.value
        if self.op is FilterOp.GTE:
            return actual >= self.value
        if self.op is FilterOp.LT:
            return actual < self.value
        return actual <= self.value


def eq(column: str, value: Any) -> Filter:
    return Filter(column, FilterOp.EQ, value)


def gt(column: str, value: Any) -> Filter:
    return Filter(column, FilterOp.GT, value)


class DataStore(ABC):
    """Abstract interface for the remote data store.

    Every method may raise StoreError when the store rejects the request,
    or BackendConnectionError when it cannot be reached.
    """

    @abstractmethod
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
        """Read rows matching all filters."""
        ...

    @abstractmethod
    async def insert(self, table: str, rows: Sequence[Row]) -> list[Row]:
        """Insert rows and return them as stored."""
        ...

    @abstractmethod
    async def update(
        self,
        table: str,
        values: Row,
        *,
        filters: Sequence[Filter],
    ) -> list[Row]:
        """Update matching rows and return them as stored."""
        ...

    @abstractmethod
    async def delete(self, table: str, *, filters: Sequence[Filter]) -> list[Row]:
        """Delete matching rows and return what was deleted."""
        ...

    @abstractmethod
    async def count(self, table: str, *, filters: Sequence[Filter] = ()) -> int:
        """Count matching rows; also serves as the connectivity probe."""
        ...

    async def close(self) -> None:
        """Release any held resources."""
        return None
