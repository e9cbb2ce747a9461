"""
Role ordering for route access.

Privilege is an explicit partial order: ``admin > member``. A role satisfies a
requirement when it ranks at or above it.
"""

from enum import Enum


class Role(str, Enum):
    """Lodge roles with hierarchical ordering."""

    ADMIN = "admin"
    MEMBER = "member"

    @classmethod
    def from_value(cls, value: object) -> "Role | None":
        """Convert a stored role to Role, or None when it is not a known role."""
        raw = getattr(value, "value", value)
        try:
            return cls(raw)
        except ValueError:
            return None

    @property
    def rank(self) -> int:
        return _HIERARCHY[self]

    def has_permission(self, required_role: "Role") -> bool:
        """Check if this role has permission for the required role.

        Role hierarchy: admin > member

        Args:
            required_role: The minimum required role.

        Returns:
            True if this role has sufficient permissions.
        """
        return self.rank >= required_role.rank


_HIERARCHY = {
    Role.ADMIN: 2,
    Role.MEMBER: 1,
}
