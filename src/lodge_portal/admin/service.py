"""
User deletion: removes a member's profile row and their identity.

The profile row goes first, then the identity. If the identity delete fails
the removed row is written back, so a failed deletion leaves the member as
they were rather than signed in with no profile.
"""

from __future__ import annotations

from lodge_portal.admin.identity_admin import IdentityAdmin
from lodge_portal.admin.schemas import DeleteUserResponse
from lodge_portal.members.api import parse_profile, run_store_call
from lodge_portal.members.loader import PROFILES_TABLE
from lodge_portal.members.schemas import MemberProfile
from lodge_portal.shared.exceptions import (
    AppException,
    AuthError,
    NotFoundError,
    ServerError,
    ValidationError,
)
from lodge_portal.shared.logging import get_logger
from lodge_portal.shared.timeouts import TimeoutPolicy
from lodge_portal.store.interface import DataStore, Row, eq

logger = get_logger(__name__)


class UserDeletionService:
    """Admin-only deletion of a user and their member profile."""

    def __init__(
        self,
        store: DataStore,
        identity_admin: IdentityAdmin,
        policy: TimeoutPolicy | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            store: Data store opened with the service role key.
            identity_admin: Identity provider admin API.
            policy: Timeouts per operation category.
        """
        self._store = store
        self._identities = identity_admin
        self._policy = policy or TimeoutPolicy.from_settings()

    async def require_admin(self, caller_id: str) -> MemberProfile:
        """Return the caller's profile if they are an active admin.

        Raises:
            AuthError: 403 when the caller has no profile or is not an active admin.
            ServerError: The caller's profile row could not be read.
        """
        rows = await run_store_call(
            "Load caller profile",
            self._store.select(PROFILES_TABLE, filters=[eq("user_id", caller_id)], limit=1),
            self._policy.quick_read,
        )
        profile = parse_profile("Load caller profile", rows[0]) if rows else None
        if profile is None or not profile.is_admin:
            logger.warning(
                "Delete user denied",
                extra={
                    "caller_id": caller_id,
                    "caller_role": profile.role.value if profile else None,
                    "caller_status": profile.status.value if profile else None,
                },
            )
            raise AuthError("Insufficient permissions", status_code=403)
        return profile

    async def delete_user(self, caller_id: str, user_id: str | None) -> DeleteUserResponse:
        """Delete ``user_id`` on behalf of ``caller_id``.

        Raises:
            AuthError: Caller is not an active admin, or targets themselves.
            ValidationError: No target given.
            NotFoundError: Target identity does not exist.
            ServerError: A delete step failed.
        """
        await self.require_admin(caller_id)

        if not (user_id or "").strip():
            raise ValidationError("user_id is required", field="user_id")
        if user_id == caller_id:
            raise AuthError("Cannot delete your own account", status_code=403)

        logger.info("Attempting to delete user", extra={"target_user_id": user_id, "caller_id": caller_id})

        identity = await self._identities.get_user(user_id)
        if identity is None:
            await self._remove_orphaned_profile(user_id)
            raise NotFoundError("User not found in authentication system")

        removed = await run_store_call(
            "Delete member profile",
            self._store.delete(PROFILES_TABLE, filters=[eq("user_id", user_id)]),
            self._policy.write,
        )

        try:
            await self._identities.delete_user(user_id)
        except AppException as e:
            logger.error(
                "Identity delete failed after profile delete",
                extra={"target_user_id": user_id, "error": e.message, "profiles_removed": len(removed)},
            )
            await self._restore_profiles(user_id, removed)
            raise ServerError(
                f"Failed to delete user authentication record: {e.message}",
                details={"cause": e.message},
            ) from e

        logger.info("User successfully deleted", extra={"target_user_id": user_id, "caller_id": caller_id})
        return DeleteUserResponse(user_id=user_id)

    async def _remove_orphaned_profile(self, user_id: str) -> None:
        try:
            removed = await run_store_call(
                "Delete orphaned profile",
                self._store.delete(PROFILES_TABLE, filters=[eq("user_id", user_id)]),
                self._policy.write,
            )
        except AppException as e:
            logger.error(
                "Error deleting orphaned profile",
                extra={"target_user_id": user_id, "error": e.message},
            )
            return
        if removed:
            logger.warning("Orphaned profile removed", extra={"target_user_id": user_id})

    async def _restore_profiles(self, user_id: str, rows: list[Row]) -> None:
        if not rows:
            return
        try:
            await run_store_call(
                "Restore member profile",
                self._store.insert(PROFILES_TABLE, rows),
                self._policy.write,
            )
        except AppException as e:
            logger.error(
                "Profile restore failed; identity left without profile",
                extra={"target_user_id": user_id, "error": e.message},
            )
            return
        logger.info("Profile restored after failed identity delete", extra={"target_user_id": user_id})
