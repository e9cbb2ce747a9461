"""
Identity, session and session-event models.

Identities are owned by the identity provider; this package only reads them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


@dataclass(frozen=True)
class Identity:
    """An authenticated user as reported by the identity provider."""

    id: str
    email: str | None = None
    email_verified: bool = False
    user_metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_provider(cls, payload: dict[str, Any]) -> "Identity":
        return cls(
            id=str(payload["id"]),
            email=payload.get("email"),
            email_verified=bool(payload.get("email_confirmed_at") or payload.get("confirmed_at")),
            user_metadata=dict(payload.get("user_metadata") or {}),
        )


@dataclass(frozen=True)
class Session:
    """A signed-in session: the identity plus its bearer tokens."""

    access_token: str
    identity: Identity
    refresh_token: str | None = None
    expires_at: datetime | None = None

    @property
    def user_id(self) -> str:
        return self.identity.id

    @classmethod
    def from_provider(cls, payload: dict[str, Any]) -> "Session":
        expires_at = payload.get("expires_at")
        return cls(
            access_token=payload["access_token"],
            refresh_token=payload.get("refresh_token"),
            expires_at=(
                datetime.fromtimestamp(int(expires_at), tz=timezone.utc)
                if expires_at is not None
                else None
            ),
            identity=Identity.from_provider(payload["user"]),
        )


class SessionEventType(str, Enum):
    """Session change notifications."""

    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"


@dataclass(frozen=True)
class SessionEvent:
    type: SessionEventType
    session: Session | None = None
