"""
Shared fixtures: settings, in-memory adapters, identities and profile rows.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Callable
from typing import Any
from uuid import uuid4

import pytest
import pytest_asyncio

from lodge_portal.auth.context import AuthContext, AuthState, ProfilePhase, SessionPhase
from lodge_portal.auth.memory_session import InMemorySessionStore
from lodge_portal.auth.models import Identity, Session
from lodge_portal.config import ProviderType, Settings
from lodge_portal.members.loader import ProfileLoader
from lodge_portal.members.schemas import MemberProfile
from lodge_portal.shared.timeouts import TimeoutPolicy
from lodge_portal.store.memory import InMemoryDataStore

JWT_SECRET = "test-secret-key-with-enough-length-for-hs256"

ADMIN_ID = "11111111-1111-1111-1111-111111111111"
MEMBER_ID = "22222222-2222-2222-2222-222222222222"
PENDING_ID = "33333333-3333-3333-3333-333333333333"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        supabase_url="https://lodge.test/",
        supabase_anon_key="anon-key",
        supabase_service_role_key="service-role-key",
        supabase_jwt_secret=JWT_SECRET,
        session_provider=ProviderType.MEMORY,
        data_store_provider=ProviderType.MEMORY,
    )


@pytest.fixture
def policy() -> TimeoutPolicy:
    # Short timeouts so timeout paths finish quickly.
    return TimeoutPolicy(probe=0.2, quick_read=0.3, write=0.5, bulk_read=0.5)


def profile_row(
    user_id: str,
    *,
    full_name: str = "Test Brother",
    role: str | None = "member",
    status: str | None = "active",
    **extra: Any,
) -> dict[str, Any]:
    row: dict[str, Any] = {
        "id": str(uuid4()),
        "user_id": user_id,
        "full_name": full_name,
        "role": role,
        "status": status,
        "share_contact_info": False,
        "needs_password_reset": False,
        "created_at": "2024-01-01T00:00:00+00:00",
        "updated_at": "2024-01-01T00:00:00+00:00",
    }
    row.update(extra)
    return row


@pytest.fixture
def make_profile_row() -> Callable[..., dict[str, Any]]:
    return profile_row


@pytest.fixture
def admin_identity() -> Identity:
    return Identity(id=ADMIN_ID, email="secretary@lodge.test", email_verified=True)


@pytest.fixture
def member_identity() -> Identity:
    return Identity(id=MEMBER_ID, email="brother@lodge.test", email_verified=True)


@pytest.fixture
def pending_identity() -> Identity:
    return Identity(id=PENDING_ID, email="candidate@lodge.test")


@pytest.fixture
def data_store() -> InMemoryDataStore:
    return InMemoryDataStore(
        {
            "member_profiles": [
                profile_row(ADMIN_ID, full_name="Worshipful Master", role="admin"),
                profile_row(MEMBER_ID, full_name="Brother Member", contact_email="brother@lodge.test"),
                profile_row(PENDING_ID, full_name="New Candidate", status="pending"),
            ]
        }
    )


@pytest.fixture
def session_store(
    admin_identity: Identity,
    member_identity: Identity,
    pending_identity: Identity,
) -> InMemorySessionStore:
    store = InMemorySessionStore()
    store.add_account("secretary@lodge.test", "admin-pass", user_id=admin_identity.id)
    store.add_account("brother@lodge.test", "member-pass", user_id=member_identity.id)
    store.add_account("candidate@lodge.test", "pending-pass", user_id=pending_identity.id)
    return store


@pytest.fixture
def loader(data_store: InMemoryDataStore, policy: TimeoutPolicy) -> ProfileLoader:
    return ProfileLoader(data_store, policy)


@pytest_asyncio.fixture
async def auth_context(
    session_store: InMemorySessionStore,
    loader: ProfileLoader,
) -> AsyncGenerator[AuthContext, None]:
    context = AuthContext(session_store, loader)
    yield context
    await context.stop()


def make_session(identity: Identity) -> Session:
    return Session(access_token=f"token-{identity.id}", identity=identity, refresh_token="refresh")


def make_state(
    identity: Identity | None = None,
    profile: MemberProfile | None = None,
    *,
    session_phase: SessionPhase = SessionPhase.READY,
    profile_phase: ProfilePhase | None = None,
    error: str | None = None,
) -> AuthState:
    """Build a settled auth snapshot for guard tests."""
    if profile_phase is None:
        profile_phase = ProfilePhase.LOADED if identity is not None else ProfilePhase.IDLE
    return AuthState(
        session_phase=session_phase,
        profile_phase=profile_phase,
        identity=make_session(identity) if identity is not None else None,
        profile=profile,
        error=error,
    )


def make_profile(user_id: str = MEMBER_ID, **kwargs: Any) -> MemberProfile:
    return MemberProfile.model_validate(profile_row(user_id, **kwargs))
