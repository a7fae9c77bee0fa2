"""Domain entities describing accounts and authenticated identities."""

from dataclasses import dataclass

from .role import Role

USER_STATUS_ACTIVE = "active"


@dataclass(frozen=True)
class Principal:
    """Identity and role resolved from a signed token."""

    id: int
    role: Role


@dataclass
class User:
    """Core attributes describing a helpdesk account."""

    id: int
    username: str
    email: str
    role: Role
    status: str = USER_STATUS_ACTIVE

    @property
    def is_active(self) -> bool:
        return self.status == USER_STATUS_ACTIVE

    def to_principal(self) -> Principal:
        return Principal(id=self.id, role=self.role)


__all__ = ["Principal", "USER_STATUS_ACTIVE", "User"]
