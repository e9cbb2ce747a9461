"""
Client for the privileged delete-user function.

The caller's own bearer token is forwarded; the function decides whether the
caller may delete anyone.
"""

from typing import Any

import httpx

from lodge_portal.config import Settings, get_settings
from lodge_portal.shared.exceptions import (
    AuthError,
    BackendConnectionError,
    NotFoundError,
    ServerError,
)
from lodge_portal.shared.logging import get_logger

logger = get_logger(__name__)


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase or "Request failed"
    if isinstance(body, dict):
        for key in ("error", "message", "msg"):
            if body.get(key):
                return str(body[key])
    return response.reason_phrase or "Request failed"


class PrivilegedFunctionsClient:
    """Calls server-side functions that need elevated rights."""

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

    async def delete_user(self, user_id: str, access_token: str) -> dict[str, Any]:
        """Ask the privileged function to delete a user and their profile.

        Args:
            user_id: Identity to delete.
            access_token: The calling admin's bearer token.

        Returns:
            The function's confirmation body.

        Raises:
            AuthError: On 401 or 403.
            NotFoundError: On 404.
            ServerError: On any other non-2xx response. The function body's
                ``error`` is surfaced verbatim, without an operation prefix;
                the function already words it in context.
            BackendConnectionError: If the function cannot be reached.
        """
        client = await self._get_http_client()
        url = self._settings.delete_user_url
        try:
            response = await client.post(
                url,
                json={"user_id": user_id},
                headers={
                    "Authorization": f"Bearer {access_token}",
                    "apikey": self._settings.supabase_anon_key,
                },
            )
        except httpx.TransportError as e:
            logger.error(
                "Delete-user function unreachable",
                extra={"url": url, "error": str(e)},
            )
            raise BackendConnectionError(
                message="Delete user service unavailable",
                details={"url": url, "error": str(e)},
            ) from e

        if response.is_success:
            logger.info("User deleted", extra={"target_user_id": user_id})
            try:
                return response.json()
            except ValueError:
                return {}

        message = _error_message(response)
        logger.warning(
            "Delete-user function refused",
            extra={
                "target_user_id": user_id,
                "status_code": response.status_code,
                "error": message,
            },
        )
        if response.status_code in (401, 403):
            raise AuthError(message, status_code=response.status_code)
        if response.status_code == 404:
            raise NotFoundError(message)
        raise ServerError(message, status_code=response.status_code)
