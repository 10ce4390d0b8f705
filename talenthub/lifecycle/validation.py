"""Input checks shared by lifecycle operations."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

from talenthub.core import constants
from talenthub.errors import ValidationError

if TYPE_CHECKING:
    from talenthub.store.models import Member


def require_reason(reason: Optional[str]) -> str:
    """Return the stripped reason or raise ValidationError when it is blank."""
    cleaned = (reason or "").strip()
    if not cleaned:
        raise ValidationError("A rejection reason is required.")
    return cleaned


def require_content(content: Optional[str], max_length: int, label: str) -> str:
    """Return stripped text content, enforcing presence and length."""
    cleaned = (content or "").strip()
    if not cleaned:
        raise ValidationError(f"{label} cannot be empty.")
    if len(cleaned) > max_length:
        raise ValidationError(f"{label} must be less than {max_length} characters.")
    return cleaned


def membership_id(parent_id: str, user_id: Optional[str], email: Optional[str]) -> str:
    """Deterministic membership document id, so a user is added at most once."""
    key = user_id or (email or "").strip().lower()
    if not key:
        raise ValidationError("A member needs a user id or an email address.")
    return f"{parent_id}_{key}"


def validate_evaluations(
    evaluations: Any, members: list[Member]
) -> list[dict[str, Any]]:
    """Check badge evaluations against the group's team members.

    Every active non-admin member must be evaluated exactly once, and each
    evaluation must name a known badge category, badge level and
    contribution level. Returns the evaluations in a normalized form, joined
    with the member rows they refer to.
    """
    if evaluations is None:
        evaluations = []
    if not isinstance(evaluations, list):
        raise ValidationError("Evaluations must be a list.")

    team = {m.user_email.lower(): m for m in members if m.user_email}
    team.update({m.user_id: m for m in members if m.user_id})
    evaluated: dict[str, dict[str, Any]] = {}
    for entry in evaluations:
        if not isinstance(entry, dict):
            raise ValidationError("Each evaluation must be an object.")
        key = str(entry.get("memberId") or "").strip() or (
            str(entry.get("memberEmail") or "").strip().lower()
        )
        member = team.get(key)
        if member is None:
            raise ValidationError(f"{key or 'Evaluation'} is not on this team.")
        if member.id in evaluated:
            raise ValidationError(f"{member.user_email} is evaluated twice.")
        category = entry.get("badgeCategory")
        level = entry.get("badgeLevel")
        contribution = entry.get("contribution")
        if category not in constants.BADGE_CATEGORIES:
            raise ValidationError(f"Unknown badge category: {category}")
        if level not in constants.BADGE_LEVELS:
            raise ValidationError(f"Unknown badge level: {level}")
        if contribution not in constants.CONTRIBUTION_LEVELS:
            raise ValidationError(f"Unknown contribution level: {contribution}")
        skills = entry.get("skillsDisplayed") or []
        if not isinstance(skills, list):
            raise ValidationError("skillsDisplayed must be a list.")
        evaluated[member.id] = {
            "memberId": member.user_id or None,
            "memberEmail": member.user_email,
            "memberName": member.user_name or member.user_email,
            "role": member.project_role or constants.DEFAULT_MEMBER_PROJECT_ROLE,
            "badgeCategory": category,
            "badgeLevel": level,
            "contribution": contribution,
            "skillsDisplayed": [str(s).strip() for s in skills if str(s).strip()],
            "adminNotes": (entry.get("adminNotes") or "").strip(),
        }

    missing = [m.user_email or m.user_id for m in members if m.id not in evaluated]
    if missing:
        raise ValidationError(f"Missing evaluations for: {', '.join(missing)}")
    return list(evaluated.values())
