"""
Route guard: pure access decisions over an ``AuthState`` snapshot.

Checks run in a fixed order and the first match wins:

1. still loading               -> RENDER_LOADING
2. no identity                 -> REDIRECT_LOGIN (carries the requested path)
3. no profile / not active     -> REDIRECT_PENDING
4. role below the requirement  -> REDIRECT_MEMBERS
5. otherwise                   -> RENDER

Loading is checked before identity so a session that is still resolving never
flashes the login page.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from lodge_portal.auth.context import AuthState
from lodge_portal.members.schemas import MemberStatus
from lodge_portal.routing.roles import Role


class Outcome(str, Enum):
    RENDER_LOADING = "render_loading"
    REDIRECT_LOGIN = "redirect_login"
    REDIRECT_PENDING = "redirect_pending"
    REDIRECT_MEMBERS = "redirect_members"
    RENDER = "render"


@dataclass(frozen=True)
class GuardDecision:
    outcome: Outcome
    # Path to send the user to, filled in by the navigator.
    redirect_to: str | None = None
    # Originally requested path, kept for post-login return.
    return_to: str | None = None

    @property
    def allowed(self) -> bool:
        return self.outcome == Outcome.RENDER

    @property
    def is_redirect(self) -> bool:
        return self.outcome not in (Outcome.RENDER, Outcome.RENDER_LOADING)


def _precheck(state: AuthState, requested_path: str | None) -> GuardDecision | None:
    if state.loading:
        return GuardDecision(Outcome.RENDER_LOADING)
    if state.identity is None:
        return GuardDecision(Outcome.REDIRECT_LOGIN, return_to=requested_path)
    if state.profile is None or state.profile.status != MemberStatus.ACTIVE:
        return GuardDecision(Outcome.REDIRECT_PENDING)
    return None


def decide(
    state: AuthState,
    required_role: Role | str | None = None,
    requested_path: str | None = None,
) -> GuardDecision:
    """Decide whether a route may render for the given state.

    Args:
        state: Current auth snapshot.
        required_role: Minimum role the route declares, if any.
        requested_path: Path being navigated to; echoed back on REDIRECT_LOGIN.

    Returns:
        The guard decision. Identical inputs always give identical decisions.
    """
    early = _precheck(state, requested_path)
    if early is not None:
        return early

    if required_role is not None:
        required = Role.from_value(required_role)
        actual = Role.from_value(state.profile.role)
        if required is None or actual is None or not actual.has_permission(required):
            return GuardDecision(Outcome.REDIRECT_MEMBERS)

    return GuardDecision(Outcome.RENDER)


def decide_admin(state: AuthState, requested_path: str | None = None) -> GuardDecision:
    """Strict guard for admin-only pages: the role must be exactly admin."""
    early = _precheck(state, requested_path)
    if early is not None:
        return early

    if not state.is_admin:
        return GuardDecision(Outcome.REDIRECT_MEMBERS)
    return GuardDecision(Outcome.RENDER)
