"""Authenticated caller identity supplied by the auth collaborator."""

from dataclasses import dataclass
from enum import Enum


class UserRole(str, Enum):
    """Caller role, ordered CUSTOMER < STAFF < ADMIN."""
    CUSTOMER = "CUSTOMER"
    STAFF = "STAFF"
    ADMIN = "ADMIN"

    @property
    def rank(self) -> int:
        return _ROLE_RANKS[self]

    def satisfies(self, required: "UserRole") -> bool:
        """Return True if this role is at least ``required``."""
        return self.rank >= UserRole(required).rank


_ROLE_RANKS = {
    UserRole.CUSTOMER: 0,
    UserRole.STAFF: 1,
    UserRole.ADMIN: 2,
}


@dataclass(frozen=True)
class Principal:
    """Fixed-shape capability record passed into every rule check."""

    user_id: str
    role: UserRole = UserRole.CUSTOMER

    def owns(self, user_id: str) -> bool:
        return self.user_id == user_id
