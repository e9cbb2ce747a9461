"""
Route declarations and navigation.

Protected routes declare the role they need; public pages are simply not
declared. The navigator matches a path to its declaration, runs the guard and
turns the outcome into a concrete redirect target.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from urllib.parse import quote

from lodge_portal.auth.context import AuthState
from lodge_portal.config import Settings, get_settings
from lodge_portal.routing.guard import GuardDecision, Outcome, decide, decide_admin
from lodge_portal.routing.roles import Role
from lodge_portal.shared.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class RouteDeclaration:
    path: str
    required_role: Role | None = None
    # Admin-only page: exact admin role, no hierarchy traversal.
    strict_admin: bool = False

    def matches(self, path: str) -> bool:
        if self.path == "/":
            return path == "/"
        return path == self.path or path.startswith(self.path.rstrip("/") + "/")


DEFAULT_ROUTES = (
    RouteDeclaration("/members", Role.MEMBER),
    RouteDeclaration("/directory", Role.MEMBER),
    RouteDeclaration("/profile", Role.MEMBER),
    RouteDeclaration("/documents", Role.MEMBER),
    RouteDeclaration("/admin", Role.ADMIN, strict_admin=True),
    RouteDeclaration("/cms", Role.ADMIN, strict_admin=True),
)


class RouteTable:
    """Protected routes, matched by longest path prefix."""

    def __init__(self, routes: Iterable[RouteDeclaration] = DEFAULT_ROUTES) -> None:
        self._routes = sorted(routes, key=lambda r: len(r.path), reverse=True)

    def __iter__(self):
        return iter(self._routes)

    def __len__(self) -> int:
        return len(self._routes)

    def match(self, path: str) -> RouteDeclaration | None:
        clean = _strip_query(path)
        for route in self._routes:
            if route.matches(clean):
                return route
        return None


@dataclass(frozen=True)
class Navigation:
    """Result of resolving one navigation."""

    path: str
    route: RouteDeclaration | None = None
    # None for public pages and for the password-reset redirect.
    decision: GuardDecision | None = None
    redirect_to: str | None = None

    @property
    def loading(self) -> bool:
        return self.decision is not None and self.decision.outcome == Outcome.RENDER_LOADING

    @property
    def render(self) -> bool:
        return self.redirect_to is None and not self.loading


class Navigator:
    """Resolves paths against the route table for a given auth snapshot."""

    def __init__(
        self,
        routes: RouteTable | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._routes = routes or RouteTable()
        self._settings = settings or get_settings()

    @property
    def routes(self) -> RouteTable:
        return self._routes

    def login_url(self, return_to: str | None = None) -> str:
        login = self._settings.login_path
        if not return_to:
            return login
        return f"{login}?next={quote(return_to, safe='/')}"

    def resolve(self, path: str, state: AuthState) -> Navigation:
        route = self._routes.match(path)
        if route is None:
            return Navigation(path=path)

        reset_path = self._settings.password_reset_path
        if (
            not state.loading
            and state.identity is not None
            and state.needs_password_reset
            and _strip_query(path) != reset_path
        ):
            logger.debug(
                "Password reset required",
                extra={"path": path, "user_id": state.identity.user_id},
            )
            return Navigation(path=path, route=route, redirect_to=reset_path)

        if route.strict_admin:
            decision = decide_admin(state, requested_path=path)
        else:
            decision = decide(state, route.required_role, requested_path=path)

        redirect_to = self._redirect_for(decision)
        if redirect_to is not None:
            logger.debug(
                "Guard redirect",
                extra={"path": path, "outcome": decision.outcome.value, "redirect_to": redirect_to},
            )
            decision = GuardDecision(decision.outcome, redirect_to, decision.return_to)

        return Navigation(path=path, route=route, decision=decision, redirect_to=redirect_to)

    def _redirect_for(self, decision: GuardDecision) -> str | None:
        if decision.outcome == Outcome.REDIRECT_LOGIN:
            return self.login_url(decision.return_to)
        if decision.outcome == Outcome.REDIRECT_PENDING:
            return self._settings.pending_path
        if decision.outcome == Outcome.REDIRECT_MEMBERS:
            return self._settings.members_path
        return None


def _strip_query(path: str) -> str:
    return path.split("?", 1)[0].split("#", 1)[0] or "/"
