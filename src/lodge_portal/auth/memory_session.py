"""
In-memory session store for development and tests.

Never talks to the identity provider, but emits the same events and raises
the same errors as the Supabase adapter.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass, field
from uuid import uuid4

from lodge_portal.auth.models import Identity, Session, SessionEventType
from lodge_portal.auth.session_store import SessionStore, SignUpResult
from lodge_portal.shared.exceptions import AppException, AuthError


@dataclass
class _Account:
    identity: Identity
    password: str


@dataclass
class InMemorySessionStore(SessionStore):
    """Accounts keyed by email; one current session."""

    accounts: dict[str, _Account] = field(default_factory=dict)
    # Raised by the next get_current_session / sign_out call, then cleared.
    get_session_error: AppException | None = None
    sign_out_error: AppException | None = None

    def __post_init__(self) -> None:
        SessionStore.__init__(self)

    def add_account(self, email: str, password: str, user_id: str | None = None) -> Identity:
        identity = Identity(id=user_id or str(uuid4()), email=email, email_verified=True)
        self.accounts[email.lower()] = _Account(identity=identity, password=password)
        return identity

    def _new_session(self, identity: Identity) -> Session:
        return Session(
            access_token=f"mem-{secrets.token_urlsafe(16)}",
            refresh_token=f"mem-refresh-{secrets.token_urlsafe(16)}",
            identity=identity,
        )

    def sign_in_as(self, identity: Identity) -> Session:
        """Start a session and emit SIGNED_IN without credentials."""
        session = self._new_session(identity)
        self._set_session(SessionEventType.SIGNED_IN, session)
        return session

    def restore(self, session: Session | None) -> None:
        """Seed the current session silently, as if loaded from storage."""
        self._session = session

    async def get_current_session(self) -> Session | None:
        if self.get_session_error is not None:
            error, self.get_session_error = self.get_session_error, None
            raise error
        return self._session

    async def sign_in_with_password(self, email: str, password: str) -> Session:
        account = self.accounts.get(email.strip().lower())
        if account is None or account.password != password:
            raise AuthError("Invalid login credentials")
        return self.sign_in_as(account.identity)

    async def sign_up(self, email: str, password: str) -> SignUpResult:
        if email.strip().lower() in self.accounts:
            raise AuthError("User already registered")
        identity = self.add_account(email.strip(), password)
        session = self.sign_in_as(identity)
        return SignUpResult(identity=identity, session=session)

    async def sign_out(self) -> None:
        if self.sign_out_error is not None:
            error, self.sign_out_error = self.sign_out_error, None
            raise error
        self._set_session(SessionEventType.SIGNED_OUT, None)

    async def update_user(self, *, password: str) -> Identity:
        if self._session is None:
            raise AuthError("Not signed in")
        identity = self._session.identity
        if identity.email:
            self.accounts[identity.email.lower()] = _Account(identity=identity, password=password)
        return identity

    async def refresh_session(self) -> Session:
        if self._session is None:
            raise AuthError("No session to refresh")
        session = self._new_session(self._session.identity)
        self._set_session(SessionEventType.TOKEN_REFRESHED, session)
        return session
