"""
Supabase auth (GoTrue) session store adapter.
"""

from datetime import datetime, timedelta, timezone
from typing import Any

import httpx

from lodge_portal.auth.models import Identity, Session, SessionEventType
from lodge_portal.auth.session_store import SessionStore, SignUpResult
from lodge_portal.config import Settings, get_settings
from lodge_portal.shared.exceptions import AuthError, BackendConnectionError
from lodge_portal.shared.logging import get_logger

logger = get_logger(__name__)

# Refresh slightly before the provider's expiry so a token never lapses mid-request.
EXPIRY_MARGIN = timedelta(seconds=30)


def _provider_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.reason_phrase or "Authentication failed"
    if isinstance(body, dict):
        for key in ("error_description", "msg", "message", "error"):
            if body.get(key):
                return str(body[key])
    return response.reason_phrase or "Authentication failed"


class SupabaseSessionStore(SessionStore):
    """Session store backed by the Supabase auth REST API."""

    def __init__(
        self,
        settings: Settings | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the adapter.

        Args:
            settings: Application settings. Uses default if not provided.
            http_client: HTTP client for making requests. Creates new if not provided.
        """
        super().__init__()
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

    async def _call(
        self,
        method: str,
        path: str,
        *,
        operation: str,
        json: dict[str, Any] | None = None,
        params: dict[str, str] | None = None,
        bearer: str | None = None,
    ) -> httpx.Response:
        client = await self._get_http_client()
        headers = {"apikey": self._settings.supabase_anon_key}
        if bearer:
            headers["Authorization"] = f"Bearer {bearer}"

        try:
            response = await client.request(
                method,
                f"{self._settings.auth_url}{path}",
                json=json,
                params=params,
                headers=headers,
            )
        except httpx.TransportError as e:
            logger.error(
                "Identity provider unreachable",
                extra={"operation": operation, "error": str(e)},
            )
            raise BackendConnectionError(
                message="Authentication service unavailable",
                details={"operation": operation, "error": str(e)},
            ) from e

        if response.is_error:
            message = _provider_message(response)
            logger.warning(
                "Identity provider rejected request",
                extra={"operation": operation, "status_code": response.status_code},
            )
            raise AuthError(
                message=message,
                status_code=403 if response.status_code == 403 else 401,
                details={"operation": operation, "provider_status": response.status_code},
            )
        return response

    def _is_expired(self, session: Session) -> bool:
        if session.expires_at is None:
            return False
        return session.expires_at - EXPIRY_MARGIN <= datetime.now(timezone.utc)

    async def get_current_session(self) -> Session | None:
        session = self._session
        if session is None:
            return None
        if self._is_expired(session) and session.refresh_token:
            return await self.refresh_session()
        return session

    async def sign_in_with_password(self, email: str, password: str) -> Session:
        response = await self._call(
            "POST",
            "/token",
            operation="sign_in",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        session = Session.from_provider(response.json())
        logger.info("User signed in", extra={"user_id": session.user_id})
        self._set_session(SessionEventType.SIGNED_IN, session)
        return session

    async def sign_up(self, email: str, password: str) -> SignUpResult:
        response = await self._call(
            "POST",
            "/signup",
            operation="sign_up",
            json={"email": email, "password": password},
        )
        payload = response.json()

        # With email confirmation enabled the provider returns a bare user.
        if "access_token" in payload:
            session = Session.from_provider(payload)
            logger.info("User signed up", extra={"user_id": session.user_id})
            self._set_session(SessionEventType.SIGNED_IN, session)
            return SignUpResult(identity=session.identity, session=session)

        identity = Identity.from_provider(payload.get("user") or payload)
        logger.info(
            "User signed up; confirmation pending",
            extra={"user_id": identity.id},
        )
        return SignUpResult(identity=identity)

    async def sign_out(self) -> None:
        token = self.access_token()
        if token:
            await self._call("POST", "/logout", operation="sign_out", bearer=token)
        logger.info("User signed out")
        self._set_session(SessionEventType.SIGNED_OUT, None)

    async def update_user(self, *, password: str) -> Identity:
        token = self.access_token()
        if not token:
            raise AuthError("Not signed in")
        response = await self._call(
            "PUT",
            "/user",
            operation="update_user",
            json={"password": password},
            bearer=token,
        )
        identity = Identity.from_provider(response.json())
        if self._session is not None:
            self._session = Session(
                access_token=self._session.access_token,
                refresh_token=self._session.refresh_token,
                expires_at=self._session.expires_at,
                identity=identity,
            )
        return identity

    async def refresh_session(self) -> Session:
        current = self._session
        if current is None or not current.refresh_token:
            raise AuthError("No session to refresh")
        response = await self._call(
            "POST",
            "/token",
            operation="refresh_session",
            params={"grant_type": "refresh_token"},
            json={"refresh_token": current.refresh_token},
        )
        session = Session.from_provider(response.json())
        self._set_session(SessionEventType.TOKEN_REFRESHED, session)
        return session
