"""
Identity provider admin API.

Looks up and deletes identities with the service role key. Only the
privileged endpoint holds that key; nothing on the member side uses this.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

import httpx

from lodge_portal.auth.models import Identity
from lodge_portal.config import ProviderType, Settings, get_settings
from lodge_portal.shared.exceptions import BackendConnectionError, ServerError
from lodge_portal.shared.logging import get_logger

logger = get_logger(__name__)


class IdentityAdmin(ABC):
    """Admin operations on identities."""

    @abstractmethod
    async def get_user(self, user_id: str) -> Identity | None:
        """Return the identity, or None if it does not exist."""
        ...

    @abstractmethod
    async def delete_user(self, user_id: str) -> None:
        """Delete the identity.

        Raises:
            ServerError: The provider refused.
        """
        ...

    async def close(self) -> None:
        return None


def _provider_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase or "Identity provider error"
    if isinstance(body, dict):
        for key in ("msg", "message", "error_description", "error"):
            if body.get(key):
                return str(body[key])
    return response.reason_phrase or "Identity provider error"


class IdentityAdminClient(IdentityAdmin):
    """GoTrue admin endpoints under ``/auth/v1/admin/users``."""

    def __init__(
        self,
        settings: Settings | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            settings: Application settings. Uses default if not provided.
            http_client: HTTP client for making requests. Creates new if not provided.
        """
        self._settings = settings or get_settings()
        self._http_client = http_client
        self._owns_client = http_client is None

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self._settings.http_timeout_seconds)
        return self._http_client

    async def close(self) -> None:
        """Close HTTP client if owned."""
        if self._owns_client and self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    def _headers(self) -> dict[str, str]:
        key = self._settings.supabase_service_role_key
        return {"apikey": key, "Authorization": f"Bearer {key}"}

    async def _request(self, method: str, user_id: str) -> httpx.Response:
        client = await self._get_http_client()
        url = f"{self._settings.auth_url}/admin/users/{user_id}"
        try:
            return await client.request(method, url, headers=self._headers())
        except httpx.TransportError as e:
            logger.error(
                "Identity admin API unreachable",
                extra={"method": method, "target_user_id": user_id, "error": str(e)},
            )
            raise BackendConnectionError(
                message="Authentication service unavailable",
                details={"error": str(e)},
            ) from e

    async def get_user(self, user_id: str) -> Identity | None:
        response = await self._request("GET", user_id)
        if response.status_code == 404:
            return None
        if response.is_error:
            raise ServerError(
                f"User lookup failed: {_provider_message(response)}",
                details={"provider_status": response.status_code},
            )
        payload = response.json()
        return Identity.from_provider(payload.get("user") or payload)

    async def delete_user(self, user_id: str) -> None:
        response = await self._request("DELETE", user_id)
        if response.is_error:
            raise ServerError(
                _provider_message(response),
                details={"provider_status": response.status_code},
            )


class InMemoryIdentityAdmin(IdentityAdmin):
    """Identity registry for local runs and tests."""

    def __init__(self, identities: list[Identity] | None = None) -> None:
        self.identities: dict[str, Identity] = {i.id: i for i in identities or []}
        # Raised by the next delete_user call, then cleared.
        self.delete_error: ServerError | None = None

    def add(self, identity: Identity) -> Identity:
        self.identities[identity.id] = identity
        return identity

    async def get_user(self, user_id: str) -> Identity | None:
        return self.identities.get(user_id)

    async def delete_user(self, user_id: str) -> None:
        if self.delete_error is not None:
            error, self.delete_error = self.delete_error, None
            raise error
        if self.identities.pop(user_id, None) is None:
            raise ServerError("User not found")


def get_identity_admin(settings: Settings | None = None) -> IdentityAdmin:
    """Create the identity admin adapter matching ``Settings.session_provider``."""
    cfg = settings or get_settings()
    if cfg.session_provider == ProviderType.SUPABASE:
        return IdentityAdminClient(cfg)
    if cfg.session_provider == ProviderType.MEMORY:
        return InMemoryIdentityAdmin()
    raise ValueError(f"Unsupported session provider: {cfg.session_provider}")
