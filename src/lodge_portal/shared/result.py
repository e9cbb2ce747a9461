"""
Typed success/failure values.

Used where callers must handle both outcomes explicitly instead of relying
on an exception crossing an await boundary.
"""

from __future__ import annotations

from collections.abc import Awaitable
from dataclasses import dataclass
from typing import Generic, TypeVar, Union

from lodge_portal.shared.exceptions import AppException

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def is_ok(self) -> bool:
        return True

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Err:
    error: AppException

    @property
    def is_ok(self) -> bool:
        return False

    @property
    def message(self) -> str:
        return self.error.message

    def unwrap(self) -> None:
        raise self.error


Result = Union[Ok[T], Err]


async def capture(awaitable: Awaitable[T]) -> Ok[T] | Err:
    """Await and wrap the outcome; only AppException subclasses become Err."""
    try:
        return Ok(await awaitable)
    except AppException as exc:
        return Err(exc)
