"""Notification fan-out to computed audiences."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Optional

from firebase_admin import firestore

from talenthub.core import constants
from talenthub.store.models import CompanyMember, GroupMember, Member

if TYPE_CHECKING:
    from talenthub.core.types import NotificationDocument
    from talenthub.store.services import EntityStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Recipient:
    """A single notification recipient."""

    user_id: Optional[str] = None
    email: Optional[str] = None
    name: Optional[str] = None

    @property
    def key(self) -> str:
        return self.user_id or (self.email or "").lower()

    @classmethod
    def from_member(cls, member: Member) -> Recipient:
        return cls(
            user_id=member.user_id or None,
            email=member.user_email or None,
            name=member.user_name or None,
        )


@dataclass
class NotificationEvent:
    """What happened, independent of who is told about it."""

    type: str
    title: str
    message: str
    related_ids: dict[str, str] = field(default_factory=dict)
    priority: str = "normal"
    action_url: Optional[str] = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_document(self, recipient: Recipient) -> NotificationDocument:
        """Build the persisted document for ``recipient``."""
        related = {k: v for k, v in self.related_ids.items() if v}
        doc: dict[str, Any] = {
            **self.extra,
            **related,
            "type": self.type,
            "title": self.title,
            "message": self.message,
            "relatedIds": related,
            "priority": self.priority,
            "read": False,
            "createdAt": firestore.SERVER_TIMESTAMP,
        }
        if self.action_url:
            doc["actionUrl"] = self.action_url
        if recipient.user_id:
            doc["userId"] = recipient.user_id
        if recipient.email:
            doc["recipientEmail"] = recipient.email
        return doc  # type: ignore[return-value]


@dataclass(frozen=True)
class Audience:
    """A set of recipients computed at delivery time."""

    kind: str
    target_id: Optional[str] = None
    recipient: Optional[Recipient] = None

    @classmethod
    def group(cls, group_id: str) -> Audience:
        return cls("group", target_id=group_id)

    @classmethod
    def company(cls, company_id: str) -> Audience:
        return cls("company", target_id=company_id)

    @classmethod
    def user(
        cls,
        user_id: Optional[str] = None,
        email: Optional[str] = None,
        name: Optional[str] = None,
    ) -> Audience:
        return cls("user", recipient=Recipient(user_id or None, email or None, name))

    def resolve(self, store: EntityStore) -> list[Recipient]:
        """Return the active recipients, in membership order."""
        if self.kind == "user":
            return [self.recipient] if self.recipient else []
        if self.kind == "group":
            model: type[Member] = GroupMember
            parent_field = "groupId"
        elif self.kind == "company":
            model = CompanyMember
            parent_field = "companyId"
        else:
            raise ValueError(f"Unknown audience kind: {self.kind}")
        members = store.query_models(model, (parent_field, "==", self.target_id))
        return [Recipient.from_member(m) for m in members if m.is_active]


@dataclass
class FanoutResult:
    """How many notifications were written and what went wrong."""

    written: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.failed == 0 and not self.errors

    def merge(self, other: FanoutResult) -> FanoutResult:
        self.written += other.written
        self.failed += other.failed
        self.errors.extend(other.errors)
        return self

    def to_dict(self) -> dict[str, Any]:
        return {"written": self.written, "failed": self.failed, "errors": self.errors}


class NotificationFanout:
    """Write one notification per audience member.

    Delivery is fire-and-forget: failures are logged and reported in the
    returned :class:`FanoutResult`, never raised to the caller.
    """

    def __init__(
        self, store: EntityStore, batch_limit: int = constants.FIRESTORE_BATCH_LIMIT
    ) -> None:
        self.store = store
        self.batch_limit = batch_limit

    def notify(
        self,
        event: NotificationEvent,
        audience: Audience,
        exclude_user_id: Optional[str] = None,
        exclude_email: Optional[str] = None,
    ) -> FanoutResult:
        """Notify every active member of ``audience`` except the actor."""
        result = FanoutResult()
        try:
            recipients = audience.resolve(self.store)
        except Exception as e:
            logger.error(
                f"Could not resolve {audience.kind} audience "
                f"{audience.target_id} for {event.type}: {e}"
            )
            result.errors.append(f"audience: {e}")
            return result

        excluded_email = (exclude_email or "").lower()
        seen: set[str] = set()
        targets: list[Recipient] = []
        for recipient in recipients:
            if not recipient.key or recipient.key in seen:
                continue
            if exclude_user_id and recipient.user_id == exclude_user_id:
                continue
            if excluded_email and (recipient.email or "").lower() == excluded_email:
                continue
            seen.add(recipient.key)
            targets.append(recipient)

        for start in range(0, len(targets), self.batch_limit):
            chunk = targets[start : start + self.batch_limit]
            try:
                batch = self.store.db.batch()
                for recipient in chunk:
                    ref = self.store.ref(constants.NOTIFICATIONS)
                    batch.set(ref, event.to_document(recipient))
                batch.commit()
                result.written += len(chunk)
            except Exception as e:
                logger.error(
                    f"Failed to write {len(chunk)} {event.type} notification(s): {e}"
                )
                result.failed += len(chunk)
                result.errors.append(str(e))
        return result
