"""
Account flows: sign-in, sign-up and the forced password reset.
"""

from __future__ import annotations

from dataclasses import dataclass

from lodge_portal.auth.context import AuthContext
from lodge_portal.auth.models import Identity, Session
from lodge_portal.auth.session_store import SessionStore
from lodge_portal.members.api import MemberProfileApi
from lodge_portal.members.schemas import MemberProfile
from lodge_portal.members.validation import PASSWORD_MIN, validate_sign_up
from lodge_portal.shared.exceptions import AuthError, ValidationError
from lodge_portal.shared.logging import get_logger
from lodge_portal.shared.result import capture

logger = get_logger(__name__)


@dataclass(frozen=True)
class SignUpOutcome:
    identity: Identity
    session: Session | None
    # None when the profile insert failed; an admin can still create it later.
    profile: MemberProfile | None

    @property
    def confirmation_pending(self) -> bool:
        return self.session is None


class AccountService:
    """Coordinates the session store and the member profile API."""

    def __init__(
        self,
        session_store: SessionStore,
        member_api: MemberProfileApi,
        auth_context: AuthContext | None = None,
    ) -> None:
        self._sessions = session_store
        self._members = member_api
        self._context = auth_context

    async def sign_in(self, email: str, password: str) -> Session:
        """Sign in with email and password.

        Raises:
            ValidationError: Email or password missing.
            AuthError: The provider rejected the credentials.
        """
        if not (email or "").strip():
            raise ValidationError("Email is required", field="email")
        if not password:
            raise ValidationError("Password is required", field="password")
        try:
            return await self._sessions.sign_in_with_password(email.strip(), password)
        except AuthError as e:
            logger.warning("Sign in rejected", extra={"error": e.message})
            raise

    async def sign_up(self, email: str, password: str, full_name: str) -> SignUpOutcome:
        """Create an account and its pending member profile.

        Input is validated before the provider is called. A failed profile
        insert is logged but does not fail the sign-up.
        """
        email, name = validate_sign_up(email, password, full_name)

        result = await self._sessions.sign_up(email, password)
        logger.info(
            "Account created",
            extra={"user_id": result.identity.id, "confirmation_pending": result.session is None},
        )

        created = await capture(self._members.create_member_profile(result.identity.id, name))
        profile: MemberProfile | None = created.value if created.is_ok else None
        if not created.is_ok:
            logger.warning(
                "Could not create member profile",
                extra={"user_id": result.identity.id, "code": created.error.code, "error": created.message},
            )

        return SignUpOutcome(identity=result.identity, session=result.session, profile=profile)

    async def reset_password(self, new_password: str) -> Identity:
        """Set a new password and clear the forced-reset flag.

        Raises:
            ValidationError: Password too short.
            AuthError: Not signed in, or the provider refused the change.
        """
        if len(new_password or "") < PASSWORD_MIN:
            raise ValidationError("Password must be at least 6 characters", field="password")

        try:
            identity = await self._sessions.update_user(password=new_password)
        except AuthError as e:
            raise AuthError(f"Failed to update password: {e.message}", status_code=e.status_code) from e

        await self._members.clear_password_reset(identity.id)
        logger.info("Password reset completed", extra={"user_id": identity.id})

        if self._context is not None:
            await self._context.refresh_profile()
        return identity
