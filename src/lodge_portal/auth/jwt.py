"""JWT handling for Supabase access tokens."""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt
from jwt.exceptions import ExpiredSignatureError, InvalidTokenError

from lodge_portal.config import Settings, get_settings
from lodge_portal.shared.exceptions import AuthError
from lodge_portal.shared.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class TokenClaims:
    user_id: str
    email: str | None
    role: str | None
    expires_at: datetime | None


class JWTHandler:
    """Verifies access tokens issued by the identity provider."""

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()

    def create_access_token(
        self,
        user_id: str,
        email: str | None = None,
        expires_in: timedelta = timedelta(hours=1),
        additional_claims: dict[str, Any] | None = None,
    ) -> str:
        """Mint a token the way the provider does; used for local runs and tests."""
        now = datetime.now(timezone.utc)
        payload: dict[str, Any] = {
            "sub": user_id,
            "email": email,
            "role": "authenticated",
            "aud": self._settings.jwt_audience,
            "iat": now,
            "exp": now + expires_in,
        }
        if additional_claims:
            payload.update(additional_claims)

        return jwt.encode(
            payload,
            self._settings.supabase_jwt_secret,
            algorithm=self._settings.jwt_algorithm,
        )

    def decode_token(self, token: str) -> dict[str, Any]:
        """Decode and validate a JWT token."""
        try:
            return jwt.decode(
                token,
                self._settings.supabase_jwt_secret,
                algorithms=[self._settings.jwt_algorithm],
                audience=self._settings.jwt_audience,
            )
        except ExpiredSignatureError as e:
            logger.warning("Token expired")
            raise AuthError("Token expired") from e
        except InvalidTokenError as e:
            logger.warning("Invalid token", extra={"error": str(e)})
            raise AuthError("Invalid token") from e

    def verify(self, token: str) -> TokenClaims:
        payload = self.decode_token(token)
        subject = payload.get("sub")
        if not subject:
            raise AuthError("Invalid token")
        exp = payload.get("exp")
        return TokenClaims(
            user_id=str(subject),
            email=payload.get("email"),
            role=payload.get("role"),
            expires_at=datetime.fromtimestamp(exp, tz=timezone.utc) if exp else None,
        )
