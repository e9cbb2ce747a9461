"""
Timeout policy for backend calls.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from dataclasses import dataclass
from typing import TypeVar

from lodge_portal.config import Settings, get_settings
from lodge_portal.shared.exceptions import OperationTimeoutError

T = TypeVar("T")


@dataclass(frozen=True)
class TimeoutPolicy:
    """Per-category timeouts, in seconds."""

    probe: float = 3.0
    quick_read: float = 10.0
    write: float = 60.0
    bulk_read: float = 90.0

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "TimeoutPolicy":
        settings = settings or get_settings()
        return cls(
            probe=settings.probe_timeout_seconds,
            quick_read=settings.quick_read_timeout_seconds,
            write=settings.write_timeout_seconds,
            bulk_read=settings.bulk_read_timeout_seconds,
        )


async def with_timeout(awaitable: Awaitable[T], seconds: float, operation: str) -> T:
    """Race ``awaitable`` against a timer.

    The first to finish wins; if the timer does, the operation is abandoned and
    its eventual result is never observed.

    Raises:
        OperationTimeoutError: If the operation did not finish in time.
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=seconds)
    except asyncio.TimeoutError as e:
        raise OperationTimeoutError(operation, seconds) from e
