"""Display-name resolution for notification messages."""

from __future__ import annotations

import re
from typing import Any, Mapping, Optional

from talenthub.core.constants import GROUP_NAME_FALLBACK


def _clean(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def name_from_email(email: Optional[str]) -> str:
    """Turn ``jane.doe@example.com`` into ``Jane Doe``."""
    local = _clean(email).split("@", 1)[0]
    words = [w for w in re.split(r"[._\-+]+", local) if w]
    return " ".join(w.capitalize() for w in words)


def resolve_display_name(
    profile: Optional[Mapping[str, Any]], fallback: str = GROUP_NAME_FALLBACK
) -> str:
    """Return the best human-readable name for ``profile``.

    Priority: explicit display name, then first and last name, then the
    email local part in title case, then ``fallback``.
    """
    if not profile:
        return fallback

    display_name = _clean(profile.get("displayName")) or _clean(profile.get("name"))
    if display_name:
        return display_name

    full_name = " ".join(
        part
        for part in (_clean(profile.get("firstName")), _clean(profile.get("lastName")))
        if part
    )
    if full_name:
        return full_name

    for key in ("email", "userEmail", "authorEmail"):
        from_email = name_from_email(profile.get(key))
        if from_email:
            return from_email

    return fallback
