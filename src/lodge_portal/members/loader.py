"""
Profile loader: fetches the member profile for a signed-in identity.

Load policy:
- a lightweight connectivity probe runs first with a short timeout; if it
  fails the load is abandoned with a connection error and the main query is
  never attempted, so a dead backend cannot hang the caller;
- the main query has its own timeout;
- zero rows is not an error: the identity simply has no profile yet.

All outcomes are returned as a Result rather than raised.
"""

from __future__ import annotations

import time

from pydantic import ValidationError as PydanticValidationError

from lodge_portal.auth.models import Identity
from lodge_portal.members.schemas import MemberProfile
from lodge_portal.shared.exceptions import (
    AppException,
    BackendConnectionError,
    ServerError,
    StoreError,
)
from lodge_portal.shared.logging import get_logger
from lodge_portal.shared.result import Err, Ok, Result
from lodge_portal.shared.timeouts import TimeoutPolicy, with_timeout
from lodge_portal.store.interface import DataStore, eq

logger = get_logger(__name__)

PROFILES_TABLE = "member_profiles"


class ProfileLoader:
    """Loads ``member_profiles`` rows by ``user_id``."""

    def __init__(self, store: DataStore, policy: TimeoutPolicy | None = None) -> None:
        self._store = store
        self._policy = policy or TimeoutPolicy.from_settings()

    async def probe(self) -> None:
        """Check the store answers at all.

        Raises:
            BackendConnectionError: On any failure, including a timeout.
        """
        try:
            await with_timeout(
                self._store.count(PROFILES_TABLE),
                self._policy.probe,
                "Connection check",
            )
        except (AppException, StoreError) as e:
            raise BackendConnectionError(
                details={"cause": str(e)},
            ) from e

    async def load(self, identity: Identity) -> Result[MemberProfile | None]:
        started = time.monotonic()
        try:
            await self.probe()
        except BackendConnectionError as e:
            logger.warning(
                "Profile load abandoned; backend unreachable",
                extra={"user_id": identity.id, "cause": e.details.get("cause")},
            )
            return Err(e)

        try:
            rows = await with_timeout(
                self._store.select(
                    PROFILES_TABLE,
                    filters=[eq("user_id", identity.id)],
                    limit=1,
                ),
                self._policy.quick_read,
                "Load profile",
            )
        except StoreError as e:
            logger.error(
                "Profile query failed",
                extra={"user_id": identity.id, "cause": e.message},
            )
            return Err(
                ServerError(
                    f"Load profile failed: {e.message}",
                    details={"cause": e.message},
                )
            )
        except AppException as e:
            logger.error(
                "Profile query failed",
                extra={"user_id": identity.id, "code": e.code, "cause": e.message},
            )
            return Err(e)

        elapsed_ms = int((time.monotonic() - started) * 1000)
        if not rows:
            logger.info(
                "No profile yet for user",
                extra={"user_id": identity.id, "elapsed_ms": elapsed_ms},
            )
            return Ok(None)

        try:
            profile = MemberProfile.model_validate(rows[0])
        except PydanticValidationError as e:
            logger.error(
                "Profile row could not be parsed",
                extra={"user_id": identity.id, "cause": str(e)},
            )
            return Err(ServerError("Load profile failed: malformed profile row", details={"cause": str(e)}))

        logger.info(
            "Profile loaded",
            extra={
                "user_id": identity.id,
                "role": profile.role.value,
                "status": profile.status.value,
                "elapsed_ms": elapsed_ms,
            },
        )
        return Ok(profile)
