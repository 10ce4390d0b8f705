"""Identity of the user performing an operation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional

from talenthub.core.constants import GROUP_NAME_FALLBACK
from talenthub.notifications.display import resolve_display_name


@dataclass(frozen=True)
class Actor:
    """The signed-in user an operation is performed on behalf of."""

    user_id: str
    email: str = ""
    name: str = GROUP_NAME_FALLBACK
    is_admin: bool = False

    @classmethod
    def from_user(
        cls, user: Mapping[str, Any], fallback: str = GROUP_NAME_FALLBACK
    ) -> Actor:
        """Build an actor from a ``users`` document (with ``uid`` or ``id``)."""
        return cls(
            user_id=str(user.get("uid") or user.get("id") or ""),
            email=str(user.get("email") or ""),
            name=resolve_display_name(user, fallback),
            is_admin=bool(user.get("isAdmin", False)),
        )

    @property
    def label(self) -> str:
        """Value recorded in ``approvedBy``-style audit fields."""
        return self.email or self.user_id

    def matches(self, user_id: Optional[str], email: Optional[str] = None) -> bool:
        """Return True when ``user_id``/``email`` identify this actor."""
        if user_id and user_id == self.user_id:
            return True
        return bool(email and self.email and email.lower() == self.email.lower())
