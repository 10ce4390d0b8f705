"""Outcome summaries returned by lifecycle operations."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from talenthub.notifications.dispatcher import DispatchOutcome
from talenthub.notifications.services import FanoutResult


@dataclass
class TransitionResult:
    """Separates the core state change from its best-effort side effects.

    The core change has always been persisted when a result exists; callers
    can retry only the failed notifications or email.
    """

    action: str
    entity_id: str
    group_id: Optional[str] = None
    notifications: FanoutResult = field(default_factory=FanoutResult)
    email: Optional[DispatchOutcome] = None
    emails: list[DispatchOutcome] = field(default_factory=list)
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def email_failed(self) -> bool:
        outcomes = ([self.email] if self.email is not None else []) + self.emails
        return any(not o.ok and not o.skipped for o in outcomes)

    @property
    def side_effects_ok(self) -> bool:
        return self.notifications.ok and not self.email_failed

    @property
    def message(self) -> str:
        failures = []
        if not self.notifications.ok:
            failures.append("some in-app notifications failed")
        if self.email_failed:
            failures.append("email notification failed")
        if not failures:
            return "Action succeeded."
        return f"Action succeeded, {' and '.join(failures)}."

    def to_dict(self) -> dict[str, Any]:
        core: dict[str, Any] = {
            "succeeded": True,
            "action": self.action,
            "entityId": self.entity_id,
        }
        if self.group_id:
            core["groupId"] = self.group_id
        core.update(self.details)
        return {
            "core": core,
            "sideEffects": {
                "ok": self.side_effects_ok,
                "notifications": self.notifications.to_dict(),
                "email": self.email.to_dict() if self.email else None,
                "emails": [e.to_dict() for e in self.emails],
            },
        }
