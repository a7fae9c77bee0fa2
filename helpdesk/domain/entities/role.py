"""Closed set of user roles and the capabilities each one carries."""

from __future__ import annotations

from enum import Enum
from typing import Iterable


class Role(str, Enum):
    """Roles a helpdesk account can hold."""

    ADMIN = "admin"
    AGENT = "agent"
    CLIENT = "client"

    @classmethod
    def parse(cls, value: str | None) -> "Role | None":
        """Return the role named ``value`` or ``None`` when it is unknown."""

        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


class Capability(str, Enum):
    """Actions guarded by role checks."""

    RECEIVE_NOTIFICATIONS = "receive_notifications"
    ANNOUNCE = "announce"
    VIEW_DASHBOARD_UPDATES = "view_dashboard_updates"


ROLE_CAPABILITIES: dict[Role, frozenset[Capability]] = {
    Role.ADMIN: frozenset(Capability),
    Role.AGENT: frozenset(
        {Capability.RECEIVE_NOTIFICATIONS, Capability.VIEW_DASHBOARD_UPDATES}
    ),
    Role.CLIENT: frozenset({Capability.RECEIVE_NOTIFICATIONS}),
}


def has_capability(role: Role, capability: Capability) -> bool:
    """Return ``True`` when ``role`` grants ``capability``."""

    return capability in ROLE_CAPABILITIES.get(role, frozenset())


def roles_with(capability: Capability) -> tuple[Role, ...]:
    """Return every role granting ``capability`` in declaration order."""

    return tuple(role for role in Role if has_capability(role, capability))


def authorize(principal, roles: Iterable[Role]) -> bool:
    """Return ``True`` when ``principal`` holds one of ``roles``."""

    return principal is not None and principal.role in set(roles)


__all__ = [
    "Capability",
    "ROLE_CAPABILITIES",
    "Role",
    "authorize",
    "has_capability",
    "roles_with",
]
