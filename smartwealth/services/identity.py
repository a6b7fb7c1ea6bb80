"""
Identity

Supplies the current user's id, which scopes every storage instance.
Only the storage factory and the UI see identity; the ledger functions
operate on records that were already scoped.
"""

from abc import ABC, abstractmethod
from typing import Optional

from pydantic import BaseModel, Field

from smartwealth.config import IdentitySettings, get_settings


class UserIdentity(BaseModel):
    """The signed-in user."""

    user_id: str = Field(..., min_length=1, description="Opaque user id")
    display_name: str = "User"

    @property
    def initial(self) -> str:
        return self.display_name[:1].upper() or "?"


class IdentityProvider(ABC):
    """Source of the current user."""

    @abstractmethod
    def current_user(self) -> Optional[UserIdentity]:
        """Return the signed-in user, or None when nobody is signed in."""
        pass


class SettingsIdentityProvider(IdentityProvider):
    """
    Single-user identity taken from configuration.

    Suits a personal deployment where the operator is the only user.
    """

    def __init__(self, settings: Optional[IdentitySettings] = None):
        self._settings = settings or get_settings().identity

    def current_user(self) -> Optional[UserIdentity]:
        return UserIdentity(
            user_id=self._settings.id,
            display_name=self._settings.display_name,
        )
