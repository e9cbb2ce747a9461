"""Route guard and navigation."""

from lodge_portal.routing.guard import GuardDecision, Outcome, decide, decide_admin
from lodge_portal.routing.roles import Role
from lodge_portal.routing.routes import Navigation, Navigator, RouteDeclaration, RouteTable

__all__ = [
    "GuardDecision",
    "Navigation",
    "Navigator",
    "Outcome",
    "Role",
    "RouteDeclaration",
    "RouteTable",
    "decide",
    "decide_admin",
]
