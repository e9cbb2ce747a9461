"""
Member profile API: CRUD over ``member_profiles`` with a uniform policy.

Every operation validates its input before touching the store, runs under the
timeout for its category, and re-raises store-reported errors as
``ServerError("<operation> failed: <store message>")``. Connection and timeout
errors pass through unchanged so callers can tell them apart.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from datetime import date, datetime, timezone
from typing import Any, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from lodge_portal.admin.client import PrivilegedFunctionsClient
from lodge_portal.auth.models import Session
from lodge_portal.members.loader import PROFILES_TABLE
from lodge_portal.members.schemas import (
    DirectoryEntry,
    MemberAdminUpdate,
    MemberProfile,
    MemberProfileCreate,
    MemberProfileUpdate,
    MemberRole,
    MemberStatus,
)
from lodge_portal.members.validation import (
    validate_position,
    validate_profile_fields,
)
from lodge_portal.shared.exceptions import (
    AuthError,
    NotFoundError,
    ServerError,
    StoreError,
    ValidationError,
)
from lodge_portal.shared.logging import get_logger
from lodge_portal.shared.timeouts import TimeoutPolicy, with_timeout
from lodge_portal.store.interface import DataStore, Row, eq

logger = get_logger(__name__)

T = TypeVar("T")

SessionGetter = Callable[[], Session | None]


async def run_store_call(operation: str, call: Awaitable[T], seconds: float) -> T:
    """Run one store call under a timeout, normalising store-reported errors.

    Raises:
        ServerError: The store rejected the request.
        OperationTimeoutError: The call did not finish in ``seconds``.
        BackendConnectionError: The store could not be reached.
    """
    try:
        return await with_timeout(call, seconds, operation)
    except StoreError as e:
        logger.error(
            "Store call failed",
            extra={"operation": operation, "cause": e.message, "store_code": e.code},
        )
        raise ServerError(
            f"{operation} failed: {e.message}",
            details={"cause": e.message, "store_code": e.code, "hint": e.hint},
        ) from e


def parse_profile(operation: str, row: Row) -> MemberProfile:
    """Parse one `member_profiles` row.

    Raises:
        ServerError: The row does not match the profile schema.
    """
    try:
        return MemberProfile.model_validate(row)
    except PydanticValidationError as e:
        logger.error(
            "Profile row could not be parsed",
            extra={"operation": operation, "user_id": row.get("user_id"), "cause": str(e)},
        )
        raise ServerError(f"{operation} failed: malformed profile row", details={"cause": str(e)}) from e


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


M = TypeVar("M", bound=BaseModel)


def _coerce(model: type[M], updates: M | Mapping[str, Any]) -> M:
    if isinstance(updates, model):
        return updates
    try:
        return model(**updates)
    except PydanticValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(p) for p in first.get("loc", ())) or None
        raise ValidationError(f"Invalid value for {field}" if field else "Invalid update", field=field) from e


class MemberProfileApi:
    """Facade over the data store for member profiles."""

    def __init__(
        self,
        store: DataStore,
        policy: TimeoutPolicy | None = None,
        functions_client: PrivilegedFunctionsClient | None = None,
        current_session: SessionGetter | None = None,
    ) -> None:
        """Initialize the facade.

        Args:
            store: Data store holding ``member_profiles``.
            policy: Timeouts per operation category.
            functions_client: Client for the privileged delete-user function.
            current_session: Returns the signed-in session, if any.
        """
        self._store = store
        self._policy = policy or TimeoutPolicy.from_settings()
        self._functions = functions_client
        self._current_session = current_session or (lambda: None)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_member_profile(self, user_id: str) -> MemberProfile | None:
        """Fetch the profile for an identity, or None if it has none yet."""
        rows = await run_store_call(
            "Fetch member profile",
            self._store.select(PROFILES_TABLE, filters=[eq("user_id", user_id)], limit=1),
            self._policy.quick_read,
        )
        return parse_profile("Fetch member profile", rows[0]) if rows else None

    async def get_member_profile_by_id(self, profile_id: str) -> MemberProfile:
        rows = await run_store_call(
            "Fetch member profile",
            self._store.select(PROFILES_TABLE, filters=[eq("id", profile_id)], limit=1),
            self._policy.quick_read,
        )
        if not rows:
            raise NotFoundError("Member profile not found", details={"id": profile_id})
        return parse_profile("Fetch member profile", rows[0])

    async def list_member_profiles(
        self,
        status: MemberStatus | None = None,
    ) -> list[MemberProfile]:
        """All profiles ordered by name, optionally filtered by status."""
        filters = [eq("status", status.value)] if status is not None else []
        rows = await run_store_call(
            "List member profiles",
            self._store.select(PROFILES_TABLE, filters=filters, order_by="full_name"),
            self._policy.bulk_read,
        )
        return [parse_profile("List member profiles", row) for row in rows]

    async def list_directory(self) -> list[DirectoryEntry]:
        """Active members as shown in the directory."""
        profiles = await self.list_member_profiles(MemberStatus.ACTIVE)
        return [DirectoryEntry.from_profile(p) for p in profiles]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create_member_profile(
        self,
        user_id: str,
        full_name: str,
        *,
        role: MemberRole = MemberRole.MEMBER,
        status: MemberStatus = MemberStatus.PENDING,
        position: str | None = None,
        contact_email: str | None = None,
        contact_phone: str | None = None,
        share_contact_info: bool = False,
        needs_password_reset: bool = False,
        join_date: datetime | date | None = None,
    ) -> MemberProfile:
        """Create the profile row for a new identity.

        Raises:
            ValidationError: Before any store call if a field is invalid.
            ServerError: If the store rejects the insert.
        """
        if not (user_id or "").strip():
            raise ValidationError("User ID is required", field="user_id")
        fields = validate_profile_fields(
            {
                "full_name": full_name,
                "position": position,
                "contact_email": contact_email,
                "contact_phone": contact_phone,
            }
        )
        payload = MemberProfileCreate(
            user_id=user_id,
            role=role,
            status=status,
            share_contact_info=share_contact_info,
            needs_password_reset=needs_password_reset,
            join_date=join_date,
            **fields,
        )

        rows = await run_store_call(
            "Create member profile",
            self._store.insert(PROFILES_TABLE, [payload.model_dump(mode="json", exclude_none=True)]),
            self._policy.write,
        )
        if not rows:
            raise ServerError("Create member profile failed: no row returned")
        profile = parse_profile("Create member profile", rows[0])
        logger.info(
            "Member profile created",
            extra={"user_id": user_id, "role": profile.role.value, "status": profile.status.value},
        )
        return profile

    async def update_member_profile(
        self,
        user_id: str,
        updates: MemberProfileUpdate | Mapping[str, Any],
    ) -> MemberProfile | None:
        """Apply owner-editable changes. Returns None if the profile does not exist."""
        model = _coerce(MemberProfileUpdate, updates)
        values = validate_profile_fields(model.model_dump(exclude_unset=True))
        return await self._update("Update member profile", user_id, values)

    async def admin_update_member(
        self,
        user_id: str,
        updates: MemberAdminUpdate | Mapping[str, Any],
    ) -> MemberProfile | None:
        """Apply admin-only changes (role, status, office)."""
        model = _coerce(MemberAdminUpdate, updates)
        values = model.model_dump(mode="json", exclude_unset=True)
        if "position" in values:
            values["position"] = validate_position(values["position"])
        profile = await self._update("Update member", user_id, values)
        if profile is not None:
            logger.info(
                "Member updated by admin",
                extra={"user_id": user_id, "fields": sorted(values)},
            )
        return profile

    async def clear_password_reset(self, user_id: str) -> MemberProfile | None:
        return await self._update(
            "Clear password reset",
            user_id,
            {"needs_password_reset": False},
        )

    async def _update(self, operation: str, user_id: str, values: Row) -> MemberProfile | None:
        if not values:
            return await self.get_member_profile(user_id)
        rows = await run_store_call(
            operation,
            self._store.update(
                PROFILES_TABLE,
                {**values, "updated_at": _now()},
                filters=[eq("user_id", user_id)],
            ),
            self._policy.write,
        )
        return parse_profile(operation, rows[0]) if rows else None

    # ------------------------------------------------------------------
    # Privileged
    # ------------------------------------------------------------------

    async def delete_user(self, user_id: str) -> dict[str, Any]:
        """Delete an identity and its profile through the privileged function.

        Raises:
            ValidationError: Deleting your own account, or no user id given.
            AuthError: Not signed in, or the function refused the caller.
            NotFoundError: The target does not exist.
            ServerError: Any other failure reported by the function.
        """
        if not (user_id or "").strip():
            raise ValidationError("User ID is required", field="user_id")

        session = self._current_session()
        if session is not None and session.user_id == user_id:
            raise ValidationError("Cannot delete your own account", field="user_id")
        if session is None:
            raise AuthError("Not signed in")
        if self._functions is None:
            raise ServerError("Delete user failed: no privileged function configured")

        logger.info(
            "Deleting user",
            extra={"target_user_id": user_id, "caller_id": session.user_id},
        )
        return await with_timeout(
            self._functions.delete_user(user_id, session.access_token),
            self._policy.write,
            "Delete user",
        )
