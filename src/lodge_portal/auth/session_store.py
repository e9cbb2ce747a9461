"""
Session store interface definition.

Wraps the identity provider's session/token lifecycle. Session changes are
delivered over a message-passing channel: every subscriber owns a queue and
reads events in the order they were emitted.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass

from lodge_portal.auth.models import Identity, Session, SessionEvent, SessionEventType
from lodge_portal.shared.logging import get_logger

logger = get_logger(__name__)

_CLOSED = object()


class SessionSubscription:
    """One consumer's view of the session event stream.

    Async-iterate to receive events; ``close()`` is the unsubscribe handle and
    ends the iteration once queued events have been drained.
    """

    def __init__(self, channel: "SessionEventChannel") -> None:
        self._channel = channel
        self._queue: asyncio.Queue[object] = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _deliver(self, event: SessionEvent) -> None:
        if not self._closed:
            self._queue.put_nowait(event)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._channel._remove(self)
        self._queue.put_nowait(_CLOSED)

    def __aiter__(self) -> "SessionSubscription":
        return self

    async def __anext__(self) -> SessionEvent:
        item = await self._queue.get()
        if item is _CLOSED:
            raise StopAsyncIteration
        return item  # type: ignore[return-value]


class SessionEventChannel:
    """Fan-out of session events to every open subscription."""

    def __init__(self) -> None:
        self._subscriptions: list[SessionSubscription] = []

    def subscribe(self) -> SessionSubscription:
        subscription = SessionSubscription(self)
        self._subscriptions.append(subscription)
        return subscription

    def publish(self, event: SessionEvent) -> None:
        logger.debug(
            "Session event",
            extra={
                "event_type": event.type.value,
                "user_id": event.session.user_id if event.session else None,
                "subscribers": len(self._subscriptions),
            },
        )
        for subscription in list(self._subscriptions):
            subscription._deliver(event)

    def _remove(self, subscription: SessionSubscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)


@dataclass(frozen=True)
class SignUpResult:
    """Outcome of a sign-up: the new identity, and a session unless
    the provider requires email confirmation first."""

    identity: Identity
    session: Session | None = None


class SessionStore(ABC):
    """Abstract interface for the identity provider's session lifecycle.

    Failures surface as AuthError (provider rejected credentials or token)
    or BackendConnectionError (provider unreachable).
    """

    def __init__(self) -> None:
        self._channel = SessionEventChannel()
        self._session: Session | None = None

    @property
    def current_session(self) -> Session | None:
        """Last known session, without any I/O."""
        return self._session

    def access_token(self) -> str | None:
        return self._session.access_token if self._session else None

    def subscribe(self) -> SessionSubscription:
        """Open a subscription to SIGNED_IN / SIGNED_OUT / TOKEN_REFRESHED events."""
        return self._channel.subscribe()

    def _set_session(self, event_type: SessionEventType, session: Session | None) -> None:
        self._session = session
        self._channel.publish(SessionEvent(event_type, session))

    @abstractmethod
    async def get_current_session(self) -> Session | None:
        """Return the current session, refreshing it first if it has expired."""
        ...

    @abstractmethod
    async def sign_in_with_password(self, email: str, password: str) -> Session:
        ...

    @abstractmethod
    async def sign_up(self, email: str, password: str) -> SignUpResult:
        ...

    @abstractmethod
    async def sign_out(self) -> None:
        ...

    @abstractmethod
    async def update_user(self, *, password: str) -> Identity:
        ...

    @abstractmethod
    async def refresh_session(self) -> Session:
        ...

    async def close(self) -> None:
        return None
