"""Tests for the member profile API."""

from unittest.mock import AsyncMock

import pytest

from lodge_portal.admin.client import PrivilegedFunctionsClient
from lodge_portal.auth.models import Identity
from lodge_portal.members.api import MemberProfileApi
from lodge_portal.members.schemas import MemberAdminUpdate, MemberRole, MemberStatus
from lodge_portal.shared.exceptions import (
    AuthError,
    BackendConnectionError,
    NotFoundError,
    OperationTimeoutError,
    ServerError,
    ValidationError,
)
from lodge_portal.shared.timeouts import TimeoutPolicy
from lodge_portal.store.interface import eq
from lodge_portal.store.memory import InMemoryDataStore

from conftest import ADMIN_ID, MEMBER_ID, PENDING_ID, make_session


@pytest.fixture
def functions_client() -> AsyncMock:
    client = AsyncMock(spec=PrivilegedFunctionsClient)
    client.delete_user.return_value = {"message": "User and profile deleted successfully"}
    return client


@pytest.fixture
def api(
    data_store: InMemoryDataStore,
    policy: TimeoutPolicy,
    functions_client: AsyncMock,
    admin_identity: Identity,
) -> MemberProfileApi:
    session = make_session(admin_identity)
    return MemberProfileApi(data_store, policy, functions_client, current_session=lambda: session)


class TestReads:
    @pytest.mark.asyncio
    async def test_get_member_profile(self, api: MemberProfileApi) -> None:
        profile = await api.get_member_profile(MEMBER_ID)
        assert profile.full_name == "Brother Member"

    @pytest.mark.asyncio
    async def test_missing_profile_is_none(self, api: MemberProfileApi) -> None:
        assert await api.get_member_profile("nobody") is None

    @pytest.mark.asyncio
    async def test_get_by_id_not_found(self, api: MemberProfileApi) -> None:
        with pytest.raises(NotFoundError):
            await api.get_member_profile_by_id("missing-id")

    @pytest.mark.asyncio
    async def test_get_by_id(self, api: MemberProfileApi, data_store: InMemoryDataStore) -> None:
        row_id = data_store.rows("member_profiles")[0]["id"]
        profile = await api.get_member_profile_by_id(row_id)
        assert profile.id == row_id

    @pytest.mark.asyncio
    async def test_list_ordered_by_name(self, api: MemberProfileApi) -> None:
        profiles = await api.list_member_profiles()
        assert [p.full_name for p in profiles] == ["Brother Member", "New Candidate", "Worshipful Master"]

    @pytest.mark.asyncio
    async def test_list_by_status(self, api: MemberProfileApi) -> None:
        pending = await api.list_member_profiles(MemberStatus.PENDING)
        assert [p.user_id for p in pending] == [PENDING_ID]

    @pytest.mark.asyncio
    async def test_directory_only_active_and_hides_contacts(self, api: MemberProfileApi) -> None:
        entries = await api.list_directory()
        assert {e.user_id for e in entries} == {ADMIN_ID, MEMBER_ID}
        assert all(e.contact_email is None for e in entries)


class TestErrorPolicy:
    @pytest.mark.asyncio
    async def test_store_error_prefixed_with_operation(
        self,
        api: MemberProfileApi,
        data_store: InMemoryDataStore,
    ) -> None:
        data_store.fail_next("select", "JWT expired")
        with pytest.raises(ServerError) as exc_info:
            await api.get_member_profile(MEMBER_ID)
        assert exc_info.value.message == "Fetch member profile failed: JWT expired"
        assert exc_info.value.details["cause"] == "JWT expired"

    @pytest.mark.asyncio
    async def test_timeout_distinct_from_store_error(
        self,
        api: MemberProfileApi,
        data_store: InMemoryDataStore,
    ) -> None:
        data_store.latency["select"] = 1.0
        with pytest.raises(OperationTimeoutError) as exc_info:
            await api.list_member_profiles()
        assert exc_info.value.operation == "List member profiles"

    @pytest.mark.asyncio
    async def test_connection_error_passes_through(
        self,
        api: MemberProfileApi,
        data_store: InMemoryDataStore,
    ) -> None:
        data_store.unavailable = True
        with pytest.raises(BackendConnectionError):
            await api.get_member_profile(MEMBER_ID)

    @pytest.mark.asyncio
    async def test_malformed_row_is_server_error(
        self,
        api: MemberProfileApi,
        data_store: InMemoryDataStore,
    ) -> None:
        await data_store.update("member_profiles", {"status": "weird"}, filters=[eq("user_id", MEMBER_ID)])

        with pytest.raises(ServerError) as exc_info:
            await api.get_member_profile(MEMBER_ID)
        assert exc_info.value.message == "Fetch member profile failed: malformed profile row"

        with pytest.raises(ServerError, match="^List member profiles failed: malformed profile row"):
            await api.list_member_profiles()

        row_id = next(r["id"] for r in data_store.rows("member_profiles") if r["user_id"] == MEMBER_ID)
        with pytest.raises(ServerError, match="malformed profile row"):
            await api.get_member_profile_by_id(row_id)


class TestCreate:
    @pytest.mark.asyncio
    async def test_creates_pending_member(self, api: MemberProfileApi) -> None:
        profile = await api.create_member_profile("new-user", "  Hiram Abiff ")
        assert profile.full_name == "Hiram Abiff"
        assert profile.status == MemberStatus.PENDING
        assert profile.role == MemberRole.MEMBER
        assert not profile.is_admin

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name", ["", "A", "x" * 101])
    async def test_invalid_name_rejected_before_store(
        self,
        api: MemberProfileApi,
        data_store: InMemoryDataStore,
        name: str,
    ) -> None:
        with pytest.raises(ValidationError):
            await api.create_member_profile("new-user", name)
        assert data_store.calls == []

    @pytest.mark.asyncio
    async def test_invalid_email_rejected_before_store(
        self,
        api: MemberProfileApi,
        data_store: InMemoryDataStore,
    ) -> None:
        with pytest.raises(ValidationError, match="valid email"):
            await api.create_member_profile("new-user", "Hiram", contact_email="nope")
        assert data_store.calls == []

    @pytest.mark.asyncio
    async def test_duplicate_profile_normalised(self, api: MemberProfileApi) -> None:
        with pytest.raises(ServerError, match="^Create member profile failed: duplicate key"):
            await api.create_member_profile(MEMBER_ID, "Second Profile")


class TestUpdate:
    @pytest.mark.asyncio
    async def test_owner_update(self, api: MemberProfileApi) -> None:
        profile = await api.update_member_profile(
            MEMBER_ID,
            {"contact_phone": "01923 855123", "share_contact_info": True},
        )
        assert profile.contact_phone == "01923 855123"
        assert profile.share_contact_info

    @pytest.mark.asyncio
    async def test_owner_cannot_change_role(self, api: MemberProfileApi, data_store: InMemoryDataStore) -> None:
        with pytest.raises(ValidationError):
            await api.update_member_profile(MEMBER_ID, {"role": "admin"})
        assert data_store.calls == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name", ["  ", None])
    async def test_blank_name_rejected(self, api: MemberProfileApi, name: str | None) -> None:
        with pytest.raises(ValidationError, match="Full name is required"):
            await api.update_member_profile(MEMBER_ID, {"full_name": name})

    @pytest.mark.asyncio
    async def test_update_missing_profile_is_none(self, api: MemberProfileApi) -> None:
        assert await api.update_member_profile("nobody", {"share_contact_info": True}) is None

    @pytest.mark.asyncio
    async def test_admin_approves_member(self, api: MemberProfileApi) -> None:
        profile = await api.admin_update_member(
            PENDING_ID,
            MemberAdminUpdate(status=MemberStatus.ACTIVE, position="Inner Guard"),
        )
        assert profile.status == MemberStatus.ACTIVE
        assert profile.position == "Inner Guard"

    @pytest.mark.asyncio
    async def test_admin_position_too_long(self, api: MemberProfileApi) -> None:
        with pytest.raises(ValidationError):
            await api.admin_update_member(PENDING_ID, {"position": "P" * 51})

    @pytest.mark.asyncio
    async def test_clear_password_reset(self, api: MemberProfileApi, data_store: InMemoryDataStore) -> None:
        await data_store.update("member_profiles", {"needs_password_reset": True}, filters=[])
        profile = await api.clear_password_reset(MEMBER_ID)
        assert profile.needs_password_reset is False

    @pytest.mark.asyncio
    async def test_update_store_error(self, api: MemberProfileApi, data_store: InMemoryDataStore) -> None:
        data_store.fail_next("update", "new row violates row-level security policy")
        with pytest.raises(ServerError, match="^Update member profile failed: new row violates"):
            await api.update_member_profile(MEMBER_ID, {"share_contact_info": True})


class TestDeleteUser:
    @pytest.mark.asyncio
    async def test_own_account_rejected_before_request(
        self,
        api: MemberProfileApi,
        functions_client: AsyncMock,
        data_store: InMemoryDataStore,
    ) -> None:
        with pytest.raises(ValidationError) as exc_info:
            await api.delete_user(ADMIN_ID)
        assert exc_info.value.message == "Cannot delete your own account"
        functions_client.delete_user.assert_not_called()
        assert data_store.calls == []

    @pytest.mark.asyncio
    async def test_delegates_with_caller_token(
        self,
        api: MemberProfileApi,
        functions_client: AsyncMock,
    ) -> None:
        result = await api.delete_user(MEMBER_ID)
        functions_client.delete_user.assert_awaited_once_with(MEMBER_ID, f"token-{ADMIN_ID}")
        assert result["message"] == "User and profile deleted successfully"

    @pytest.mark.asyncio
    async def test_requires_signed_in_caller(
        self,
        data_store: InMemoryDataStore,
        policy: TimeoutPolicy,
        functions_client: AsyncMock,
    ) -> None:
        api = MemberProfileApi(data_store, policy, functions_client)
        with pytest.raises(AuthError, match="Not signed in"):
            await api.delete_user(MEMBER_ID)

    @pytest.mark.asyncio
    async def test_empty_user_id(self, api: MemberProfileApi) -> None:
        with pytest.raises(ValidationError, match="User ID is required"):
            await api.delete_user("")

    @pytest.mark.asyncio
    async def test_function_errors_propagate(
        self,
        api: MemberProfileApi,
        functions_client: AsyncMock,
    ) -> None:
        functions_client.delete_user.side_effect = NotFoundError("User not found in authentication system")
        with pytest.raises(NotFoundError):
            await api.delete_user(MEMBER_ID)
