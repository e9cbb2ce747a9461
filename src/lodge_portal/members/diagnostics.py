"""
Backend connection diagnostics.

Runs the same calls the portal depends on, one step at a time, and reports the
first step that failed. Served by the service at ``/health/backend``.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from lodge_portal.auth.session_store import SessionStore
from lodge_portal.members.loader import PROFILES_TABLE
from lodge_portal.shared.exceptions import AppException, StoreError
from lodge_portal.shared.logging import get_logger
from lodge_portal.shared.timeouts import TimeoutPolicy, with_timeout
from lodge_portal.store.interface import DataStore, eq

logger = get_logger(__name__)


class CheckStep(str, Enum):
    BASIC_CONNECTION = "basic_connection"
    AUTHENTICATION = "authentication"
    PROFILE_QUERY = "profile_query"
    DIRECTORY_READ = "directory_read"


@dataclass
class ConnectionReport:
    success: bool = True
    failed_step: CheckStep | None = None
    error: str | None = None
    timings_ms: dict[str, int] = field(default_factory=dict)
    user_email: str | None = None
    profile_count: int | None = None
    profile_found: bool | None = None
    sample_size: int | None = None

    def fail(self, step: CheckStep, error: str) -> "ConnectionReport":
        self.success = False
        self.failed_step = step
        self.error = error
        return self

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "failed_step": self.failed_step.value if self.failed_step else None,
            "error": self.error,
            "timings_ms": dict(self.timings_ms),
            "user_email": self.user_email,
            "profile_count": self.profile_count,
            "profile_found": self.profile_found,
            "sample_size": self.sample_size,
        }


async def run_connection_check(
    store: DataStore,
    session_store: SessionStore,
    policy: TimeoutPolicy | None = None,
) -> ConnectionReport:
    """Probe the backend step by step; stops at the first failure."""
    policy = policy or TimeoutPolicy.from_settings()
    report = ConnectionReport()

    async def timed(step: CheckStep, call, seconds: float):
        started = time.monotonic()
        try:
            return await with_timeout(call, seconds, step.value)
        finally:
            report.timings_ms[step.value] = int((time.monotonic() - started) * 1000)

    try:
        report.profile_count = await timed(
            CheckStep.BASIC_CONNECTION,
            store.count(PROFILES_TABLE),
            policy.quick_read,
        )
    except (AppException, StoreError) as e:
        return _failed(report, CheckStep.BASIC_CONNECTION, e)

    try:
        session = await timed(
            CheckStep.AUTHENTICATION,
            session_store.get_current_session(),
            policy.quick_read,
        )
    except AppException as e:
        return _failed(report, CheckStep.AUTHENTICATION, e)

    if session is not None:
        report.user_email = session.identity.email
        try:
            rows = await timed(
                CheckStep.PROFILE_QUERY,
                store.select(PROFILES_TABLE, filters=[eq("user_id", session.user_id)], limit=1),
                policy.quick_read,
            )
        except (AppException, StoreError) as e:
            return _failed(report, CheckStep.PROFILE_QUERY, e)
        report.profile_found = bool(rows)

    try:
        sample = await timed(
            CheckStep.DIRECTORY_READ,
            store.select(PROFILES_TABLE, columns="id,full_name,role", limit=5),
            policy.quick_read,
        )
    except (AppException, StoreError) as e:
        return _failed(report, CheckStep.DIRECTORY_READ, e)
    report.sample_size = len(sample)

    logger.info("Connection check passed", extra={"timings_ms": report.timings_ms})
    return report


def _failed(report: ConnectionReport, step: CheckStep, error: Exception) -> ConnectionReport:
    message = getattr(error, "message", None) or str(error)
    logger.error(
        "Connection check failed",
        extra={"step": step.value, "error": message, "timings_ms": report.timings_ms},
    )
    return report.fail(step, message)
