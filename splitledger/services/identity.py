"""
Identity Provider

The ledger never authenticates anyone itself. It asks an identity
provider for the current principal and, when adding members by email,
whether that email already belongs to a registered user.
"""

from abc import ABC, abstractmethod
from typing import Optional

from splitledger.models.group import Principal


class IdentityProvider(ABC):
    """Abstract source of authenticated principals."""

    @abstractmethod
    def current_principal(self) -> Optional[Principal]:
        """The signed-in principal, or None when nobody is signed in."""
        pass

    @abstractmethod
    async def get_user_by_email(self, email: str) -> Optional[Principal]:
        """
        Look up a registered user's profile by email (case-insensitive).

        Returns:
            The matching principal, or None
        """
        pass


class InMemoryIdentityProvider(IdentityProvider):
    """
    Process-local user directory.

    Used by tests and local runs; register users, then sign one in.
    """

    def __init__(self, users: Optional[list[Principal]] = None):
        self._users: dict[str, Principal] = {}
        self._current: Optional[Principal] = None
        for user in users or []:
            self.register(user)

    def register(self, principal: Principal) -> Principal:
        self._users[principal.id] = principal
        return principal

    def sign_in(self, principal_id: str) -> Principal:
        principal = self._users[principal_id]
        self._current = principal
        return principal

    def sign_out(self) -> None:
        self._current = None

    def current_principal(self) -> Optional[Principal]:
        return self._current

    async def get_user_by_email(self, email: str) -> Optional[Principal]:
        if not email:
            return None
        wanted = email.strip().lower()
        for user in self._users.values():
            if user.email and user.email.lower() == wanted:
                return user
        return None
