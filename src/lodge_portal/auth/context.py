"""
Auth context: the single writer of authentication state.

Combines the session store and the profile loader into one immutable
``AuthState`` snapshot. It is constructed explicitly and handed to whoever
needs it (route navigator, pages); nothing reaches it through a global.

Lifecycle:
    start()  subscribe to session events, resolve the current session
    stop()   unsubscribe; loads still in flight are discarded on completion

Session events are consumed by one task in emission order. Each profile load
runs in its own task tagged with a generation number; a load whose generation
was superseded (newer load, sign-out, stop) never writes state.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any

from lodge_portal.auth.models import Identity, Session, SessionEvent, SessionEventType
from lodge_portal.auth.session_store import SessionStore, SessionSubscription
from lodge_portal.members.loader import ProfileLoader
from lodge_portal.members.schemas import MemberProfile
from lodge_portal.shared.exceptions import (
    AppException,
    AuthError,
    BackendConnectionError,
    OperationTimeoutError,
)
from lodge_portal.shared.logging import get_logger

logger = get_logger(__name__)

StateListener = Callable[["AuthState"], None]

# Failures after which the last known profile is still the best answer.
TRANSIENT_ERRORS = (BackendConnectionError, OperationTimeoutError)


class SessionPhase(str, Enum):
    INITIALIZING = "initializing"
    READY = "ready"


class ProfilePhase(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    FAILED = "failed"


@dataclass(frozen=True)
class AuthState:
    """Immutable snapshot of authentication state.

    The derived flags are computed on every read and never stored.
    """

    session_phase: SessionPhase = SessionPhase.INITIALIZING
    profile_phase: ProfilePhase = ProfilePhase.IDLE
    identity: Session | None = None
    profile: MemberProfile | None = None
    error: str | None = None

    @property
    def loading(self) -> bool:
        return (
            self.session_phase == SessionPhase.INITIALIZING
            or self.profile_phase == ProfilePhase.LOADING
        )

    @property
    def user(self) -> Identity | None:
        return self.identity.identity if self.identity else None

    @property
    def is_admin(self) -> bool:
        return self.profile is not None and self.profile.is_admin

    @property
    def needs_password_reset(self) -> bool:
        return self.profile is not None and self.profile.needs_password_reset


class AuthContext:
    """Owns the session subscription and every write to ``AuthState``."""

    def __init__(self, session_store: SessionStore, profile_loader: ProfileLoader) -> None:
        self._store = session_store
        self._loader = profile_loader
        self._state = AuthState()
        self._active = False
        self._generation = 0
        self._subscription: SessionSubscription | None = None
        self._consumer: asyncio.Task[None] | None = None
        self._load_tasks: set[asyncio.Task[None]] = set()
        self._listeners: list[StateListener] = []
        self._changed = asyncio.Event()
        self._session_ready = asyncio.Event()

    # ------------------------------------------------------------------
    # Readers
    # ------------------------------------------------------------------

    @property
    def state(self) -> AuthState:
        return self._state

    @property
    def active(self) -> bool:
        return self._active

    def on_change(self, listener: StateListener) -> Callable[[], None]:
        """Register a listener called with every new snapshot; returns its remover."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    async def wait_until_settled(self, timeout: float | None = None) -> AuthState:
        """Wait until neither the session nor the profile is loading."""

        async def _wait() -> None:
            while self._state.loading:
                await self._changed.wait()

        await asyncio.wait_for(_wait(), timeout)
        return self._state

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> AuthState:
        """Mount: subscribe, then resolve the current session.

        Returns once the session phase is ready; the profile may still be loading.
        """
        if self._active:
            return self._state
        self._active = True
        self._session_ready = asyncio.Event()
        self._write(session_phase=SessionPhase.INITIALIZING, error=None)

        # Subscribe before the initial lookup so no event is missed; the consumer
        # handles the lookup first and queued events after it, in order.
        self._subscription = self._store.subscribe()
        self._consumer = asyncio.create_task(self._consume(self._subscription))
        await self._session_ready.wait()
        return self._state

    async def stop(self) -> None:
        """Unmount: unsubscribe and disown any in-flight load."""
        if not self._active:
            return
        self._active = False
        self._generation += 1

        if self._subscription is not None:
            self._subscription.close()
            self._subscription = None

        consumer, self._consumer = self._consumer, None
        if consumer is not None and not consumer.done():
            consumer.cancel()
            try:
                await consumer
            except asyncio.CancelledError:
                pass
        # A consumer cancelled before its first step never reaches its finally.
        self._session_ready.set()

        logger.debug("Auth context stopped", extra={"loads_in_flight": len(self._load_tasks)})

    async def __aenter__(self) -> "AuthContext":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.stop()

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def refresh_profile(self) -> AuthState:
        """Re-fetch the profile, keeping the current one until the result lands."""
        session = self._state.identity
        if session is None or not self._active:
            return self._state
        await self._begin_load(session)
        return self._state

    async def force_refresh(self) -> AuthState:
        """Drop the cached profile immediately, then re-fetch it."""
        session = self._state.identity
        if session is None or not self._active:
            self._generation += 1
            self._write(profile=None, profile_phase=ProfilePhase.IDLE, error=None)
            return self._state
        await self._begin_load(session, clear_profile=True)
        return self._state

    async def sign_out(self) -> None:
        """Sign out through the session store.

        Raises:
            AuthError: If the provider refused or could not be reached.
        """
        self._write(error=None)
        try:
            await self._store.sign_out()
        except AppException as e:
            logger.error("Sign out failed", extra={"code": e.code, "error": e.message})
            self._write(error=e.message)
            if isinstance(e, AuthError):
                raise
            raise AuthError(e.message, details={"cause": e.code}) from e

        self._clear_identity()

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def _consume(self, subscription: SessionSubscription) -> None:
        try:
            await self._initialize()
        finally:
            # start() waits on this; release it even when stop() cancels the lookup.
            self._session_ready.set()
        async for event in subscription:
            if not self._active:
                break
            self._handle_event(event)

    async def _initialize(self) -> None:
        try:
            session = await self._store.get_current_session()
        except Exception as e:
            # Fail open to the signed-out view rather than staying in initializing.
            message = e.message if isinstance(e, AppException) else str(e) or "Failed to authenticate"
            logger.error("Initial session lookup failed", extra={"error": message}, exc_info=True)
            self._write(
                session_phase=SessionPhase.READY,
                identity=None,
                profile=None,
                profile_phase=ProfilePhase.IDLE,
                error=message,
            )
            self._session_ready.set()
            return

        if session is None:
            logger.info("No initial session")
            self._write(
                session_phase=SessionPhase.READY,
                identity=None,
                profile=None,
                profile_phase=ProfilePhase.IDLE,
            )
        else:
            logger.info("Initial session found", extra={"user_id": session.user_id})
            self._spawn_load(session, session_phase=SessionPhase.READY)
        self._session_ready.set()

    def _handle_event(self, event: SessionEvent) -> None:
        logger.info(
            "Auth state change",
            extra={
                "event_type": event.type.value,
                "user_id": event.session.user_id if event.session else None,
            },
        )
        if event.type == SessionEventType.SIGNED_OUT:
            self._clear_identity()
            return

        if event.session is None:
            logger.warning("Session event without a session", extra={"event_type": event.type.value})
            return

        # SIGNED_IN and TOKEN_REFRESHED both re-fetch: an admin may have changed
        # the profile (e.g. approved the member) since it was last read.
        self._spawn_load(event.session)

    def _clear_identity(self) -> None:
        self._generation += 1
        self._write(
            identity=None,
            profile=None,
            profile_phase=ProfilePhase.IDLE,
            error=None,
        )

    def _spawn_load(
        self,
        session: Session,
        *,
        clear_profile: bool = False,
        **changes: Any,
    ) -> asyncio.Task[None]:
        self._generation += 1
        generation = self._generation

        changes.update(identity=session, profile_phase=ProfilePhase.LOADING, error=None)
        if clear_profile:
            changes["profile"] = None
        self._write(**changes)

        task = asyncio.create_task(self._run_load(session.identity, generation))
        self._load_tasks.add(task)
        task.add_done_callback(self._load_tasks.discard)
        return task

    async def _begin_load(self, session: Session, *, clear_profile: bool = False) -> None:
        await self._spawn_load(session, clear_profile=clear_profile)

    async def _run_load(self, identity: Identity, generation: int) -> None:
        try:
            result = await self._loader.load(identity)
        except Exception as e:
            logger.exception("Profile load crashed", extra={"user_id": identity.id})
            if self._is_current(generation):
                self._write(profile_phase=ProfilePhase.FAILED, profile=None, error=str(e))
            return

        if not self._is_current(generation):
            logger.debug(
                "Discarding superseded profile load",
                extra={"user_id": identity.id, "generation": generation},
            )
            return

        if result.is_ok:
            self._write(profile_phase=ProfilePhase.LOADED, profile=result.value)
            return

        error = result.error
        changes: dict[str, Any] = {"profile_phase": ProfilePhase.FAILED, "error": error.message}
        if not isinstance(error, TRANSIENT_ERRORS):
            changes["profile"] = None
        self._write(**changes)

    def _is_current(self, generation: int) -> bool:
        return self._active and generation == self._generation

    def _write(self, **changes: Any) -> None:
        self._state = replace(self._state, **changes)

        changed, self._changed = self._changed, asyncio.Event()
        changed.set()

        for listener in list(self._listeners):
            try:
                listener(self._state)
            except Exception:
                logger.exception("Auth state listener failed")
