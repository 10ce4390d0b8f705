"""Normalized entity models for the document store.

Every document read through :class:`~talenthub.store.services.EntityStore`
is converted into one of these dataclasses, which fill missing fields with
the platform defaults once. Business logic never sees a missing key.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Optional

from talenthub.core import constants

logger = logging.getLogger(__name__)

_reported_legacy_statuses: set[tuple[str, str]] = set()
_report_lock = threading.Lock()


class ProjectStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    COMPLETED = "completed"


class EventStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class CompletionStatus(str, Enum):
    PENDING_ADMIN_APPROVAL = "pending_admin_approval"
    ADMIN_APPROVED = "admin_approved"
    ADMIN_REJECTED = "admin_rejected"
    COMPLETED = "completed"


class GroupStatus(str, Enum):
    ACTIVE = "active"
    READY_FOR_BADGE_ASSIGNMENT = "ready_for_badge_assignment"
    COMPLETED = "completed"


class CompanyStatus(str, Enum):
    ACTIVE = "active"
    ENDED = "ended"


class ApplicationStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class MemberRole(str, Enum):
    ADMIN = "admin"
    MEMBER = "member"


class MemberStatus(str, Enum):
    ACTIVE = "active"
    REMOVED = "removed"


TERMINAL_PROJECT_STATUSES = frozenset(
    {ProjectStatus.APPROVED, ProjectStatus.REJECTED, ProjectStatus.COMPLETED}
)
TERMINAL_EVENT_STATUSES = frozenset({EventStatus.APPROVED, EventStatus.REJECTED})
TERMINAL_COMPLETION_STATUSES = frozenset(
    {
        CompletionStatus.ADMIN_APPROVED,
        CompletionStatus.ADMIN_REJECTED,
        CompletionStatus.COMPLETED,
    }
)
TERMINAL_APPLICATION_STATUSES = frozenset(
    {ApplicationStatus.APPROVED, ApplicationStatus.REJECTED}
)


def normalize_status(enum_cls: type[Enum], raw: Any, default: Enum) -> Any:
    """Collapse a stored status string into ``enum_cls``.

    Legacy spellings ("submitted", "pending_approval", missing values) and
    anything unrecognised map to ``default``. Each distinct unrecognised
    value is logged once so the data can be migrated.
    """
    if isinstance(raw, enum_cls):
        return raw
    if isinstance(raw, str):
        try:
            return enum_cls(raw)
        except ValueError:
            pass
    if raw not in (None, "", "submitted", "pending", "pending_approval"):
        key = (enum_cls.__name__, str(raw))
        with _report_lock:
            if key not in _reported_legacy_statuses:
                _reported_legacy_statuses.add(key)
                logger.warning(
                    f"Unrecognised {enum_cls.__name__} value {raw!r}; "
                    f"treating it as {default.value!r}."
                )
    return default


def _text(data: dict[str, Any], *keys: str, default: str = "") -> str:
    """Return the first non-blank string among ``keys``."""
    for key in keys:
        value = data.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return default


def _int(value: Any, default: int = 0) -> int:
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return int(value)
    return default


def _dict(value: Any) -> dict[str, Any]:
    return dict(value) if isinstance(value, dict) else {}


def _list(value: Any) -> list[Any]:
    return list(value) if isinstance(value, (list, tuple)) else []


@dataclass
class Project:
    """A client project submission."""

    collection: ClassVar[str] = constants.PROJECTS

    id: str
    title: str = "Untitled Project"
    description: str = "No description provided"
    contact_email: str = ""
    contact_name: str = "Project Owner"
    company_name: str = ""
    owner_user_id: str = "unknown"
    status: ProjectStatus = ProjectStatus.PENDING
    group_id: Optional[str] = None
    timeline: str = "flexible"
    budget: str = "free"
    required_skills: str = "Not specified"
    experience_level: str = "any-level"
    project_type: str = "general"
    raw: dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, doc_id: str, data: dict[str, Any]) -> Project:
        """Build a project from a raw document."""
        required_skills = data.get("requiredSkills")
        if isinstance(required_skills, list):
            required_skills = ", ".join(str(s) for s in required_skills if s)
        return cls(
            id=doc_id,
            title=_text(data, "projectTitle", "title", default=cls.title),
            description=_text(
                data, "projectDescription", "description", default=cls.description
            ),
            contact_email=_text(data, "contactEmail"),
            contact_name=_text(data, "contactName", default=cls.contact_name),
            company_name=_text(data, "companyName"),
            owner_user_id=_text(data, "submitterId", default=cls.owner_user_id),
            status=normalize_status(
                ProjectStatus, data.get("status"), ProjectStatus.PENDING
            ),
            group_id=data.get("groupId") or None,
            timeline=_text(data, "timeline", default=cls.timeline),
            budget=_text(data, "budget", default=cls.budget),
            required_skills=(
                required_skills.strip()
                if isinstance(required_skills, str) and required_skills.strip()
                else cls.required_skills
            ),
            experience_level=_text(
                data, "experienceLevel", default=cls.experience_level
            ),
            project_type=_text(data, "projectType", default=cls.project_type),
            raw=dict(data),
        )

    def to_payload(self) -> dict[str, Any]:
        """Return the sanitized ``projectData`` shape used by emails."""
        return {
            "projectId": self.id,
            "projectTitle": self.title,
            "projectDescription": self.description,
            "contactEmail": self.contact_email,
            "contactName": self.contact_name,
            "companyName": self.company_name,
            "submitterId": self.owner_user_id,
            "timeline": self.timeline,
            "budget": self.budget,
            "requiredSkills": self.required_skills,
            "experienceLevel": self.experience_level,
            "projectType": self.project_type,
        }


@dataclass
class Event:
    """A tech event submission."""

    collection: ClassVar[str] = constants.EVENTS

    id: str
    title: str = "Untitled Event"
    organizer_email: str = ""
    organizer_name: str = "Event Organizer"
    owner_user_id: str = "unknown"
    status: EventStatus = EventStatus.PENDING
    selected_project_ids: frozenset[str] = frozenset()
    banner_url: Optional[str] = None
    is_active: bool = False
    raw: dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, doc_id: str, data: dict[str, Any]) -> Event:
        """Build an event from a raw document."""
        selected = _list(data.get("selectedProjects") or data.get("selectedProjectIds"))
        return cls(
            id=doc_id,
            title=_text(data, "eventTitle", "title", default=cls.title),
            organizer_email=_text(data, "organizerEmail"),
            organizer_name=_text(data, "organizerName", default=cls.organizer_name),
            owner_user_id=_text(data, "submitterId", default=cls.owner_user_id),
            status=normalize_status(EventStatus, data.get("status"), EventStatus.PENDING),
            selected_project_ids=frozenset(
                p if isinstance(p, str) else str(p.get("id", ""))
                for p in selected
                if p
            ),
            banner_url=data.get("bannerImageUrl") or data.get("bannerUrl") or None,
            is_active=bool(data.get("isActive", False)),
            raw=dict(data),
        )

    def to_payload(self) -> dict[str, Any]:
        """Return the ``eventData`` shape used by emails."""
        return {
            "eventId": self.id,
            "eventTitle": self.title,
            "organizerEmail": self.organizer_email,
            "organizerName": self.organizer_name,
            "hasEventGroup": False,
            "eventGroupId": None,
            "eventGroupMessage": "",
        }


@dataclass
class CompletionRequest:
    """A group's request to have its project marked complete."""

    collection: ClassVar[str] = constants.COMPLETION_REQUESTS

    id: str
    group_id: str = ""
    project_id: Optional[str] = None
    project_title: str = "Untitled Project"
    admin_email: str = ""
    admin_name: str = "Project Owner"
    admin_user_id: Optional[str] = None
    status: CompletionStatus = CompletionStatus.PENDING_ADMIN_APPROVAL
    admin_approval: dict[str, Any] = field(default_factory=dict)
    raw: dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, doc_id: str, data: dict[str, Any]) -> CompletionRequest:
        """Build a completion request from a raw document."""
        approval = {
            "approved": False,
            "approvedAt": None,
            "approvedBy": None,
            "rejectionReason": None,
        }
        approval.update(_dict(data.get("adminApproval")))
        return cls(
            id=doc_id,
            group_id=_text(data, "groupId"),
            project_id=data.get("projectId") or None,
            project_title=_text(data, "projectTitle", default=cls.project_title),
            admin_email=_text(data, "adminEmail", "groupAdminEmail"),
            admin_name=_text(data, "adminName", default=cls.admin_name),
            admin_user_id=data.get("adminId") or None,
            status=normalize_status(
                CompletionStatus,
                data.get("status"),
                CompletionStatus.PENDING_ADMIN_APPROVAL,
            ),
            admin_approval=approval,
            raw=dict(data),
        )

    def to_payload(self) -> dict[str, Any]:
        """Return the ``completionData`` shape used by emails."""
        return {
            "requestId": self.id,
            "groupId": self.group_id,
            "projectId": self.project_id,
            "projectTitle": self.project_title,
            "adminEmail": self.admin_email,
            "adminName": self.admin_name,
        }


DEFAULT_COMPLETION_STATUS: dict[str, Any] = {
    "isReadyForCompletion": False,
    "submittedForReview": False,
    "adminApproved": False,
    "completionInitiatedAt": None,
    "completionFormSubmittedAt": None,
    "completedAt": None,
    "certificatesGenerated": False,
}


@dataclass
class Group:
    """A project team group."""

    collection: ClassVar[str] = constants.GROUPS

    id: str
    name: str = "Untitled Group"
    project_id: Optional[str] = None
    event_id: Optional[str] = None
    admin_email: str = ""
    admin_name: str = "Project Owner"
    admin_user_id: Optional[str] = None
    status: GroupStatus = GroupStatus.ACTIVE
    member_count: int = 0
    max_members: int = constants.DEFAULT_MAX_MEMBERS
    completion_status: dict[str, Any] = field(
        default_factory=lambda: dict(DEFAULT_COMPLETION_STATUS)
    )
    raw: dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, doc_id: str, data: dict[str, Any]) -> Group:
        """Build a group from a raw document."""
        completion = dict(DEFAULT_COMPLETION_STATUS)
        completion.update(_dict(data.get("completionStatus")))
        return cls(
            id=doc_id,
            name=_text(data, "projectTitle", "groupName", "name", default=cls.name),
            project_id=data.get("projectId") or data.get("originalProjectId") or None,
            event_id=data.get("eventId") or None,
            admin_email=_text(data, "adminEmail"),
            admin_name=_text(data, "adminName", default=cls.admin_name),
            admin_user_id=data.get("adminId") or None,
            status=normalize_status(GroupStatus, data.get("status"), GroupStatus.ACTIVE),
            member_count=_int(data.get("memberCount")),
            max_members=_int(data.get("maxMembers"), cls.max_members),
            completion_status=completion,
            raw=dict(data),
        )

    @property
    def is_standalone(self) -> bool:
        """Return True when the group is linked to neither a project nor an event."""
        return not self.project_id and not self.event_id


@dataclass
class Member:
    """A membership row in ``group_members`` or ``company_members``."""

    id: str
    parent_id: str = ""
    user_id: str = ""
    user_email: str = ""
    user_name: str = ""
    role: MemberRole = MemberRole.MEMBER
    status: MemberStatus = MemberStatus.ACTIVE
    project_role: Optional[str] = None
    raw: dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, doc_id: str, data: dict[str, Any]) -> Member:
        """Build a membership from a raw document."""
        return cls(
            id=doc_id,
            parent_id=_text(data, "groupId", "companyId"),
            user_id=_text(data, "userId"),
            user_email=_text(data, "userEmail", "email"),
            user_name=_text(data, "userName", "displayName"),
            role=normalize_status(MemberRole, data.get("role"), MemberRole.MEMBER),
            status=normalize_status(
                MemberStatus, data.get("status"), MemberStatus.ACTIVE
            ),
            project_role=data.get("projectRole") or None,
            raw=dict(data),
        )

    @property
    def is_active(self) -> bool:
        return self.status is MemberStatus.ACTIVE

    @property
    def is_admin(self) -> bool:
        return self.role is MemberRole.ADMIN


@dataclass
class GroupMember(Member):
    collection: ClassVar[str] = constants.GROUP_MEMBERS


@dataclass
class CompanyMember(Member):
    collection: ClassVar[str] = constants.COMPANY_MEMBERS


@dataclass
class Company:
    """A company page."""

    collection: ClassVar[str] = constants.COMPANIES

    id: str
    name: str = "Unknown Company"
    admin_user_id: Optional[str] = None
    admin_email: str = ""
    status: CompanyStatus = CompanyStatus.ACTIVE
    member_count: int = 0
    raw: dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, doc_id: str, data: dict[str, Any]) -> Company:
        """Build a company from a raw document."""
        return cls(
            id=doc_id,
            name=_text(data, "companyName", "name", default=cls.name),
            admin_user_id=data.get("createdBy") or data.get("adminId") or None,
            admin_email=_text(data, "adminEmail", "createdByEmail"),
            status=normalize_status(
                CompanyStatus, data.get("status"), CompanyStatus.ACTIVE
            ),
            member_count=_int(data.get("memberCount")),
            raw=dict(data),
        )

    @property
    def is_ended(self) -> bool:
        return self.status is CompanyStatus.ENDED


@dataclass
class Application:
    """A user's application to join a project group."""

    collection: ClassVar[str] = constants.PROJECT_APPLICATIONS

    id: str
    project_id: str = ""
    applicant_user_id: str = ""
    applicant_email: str = ""
    applicant_name: str = ""
    project_role: str = constants.DEFAULT_MEMBER_PROJECT_ROLE
    status: ApplicationStatus = ApplicationStatus.PENDING
    raw: dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, doc_id: str, data: dict[str, Any]) -> Application:
        """Build an application from a raw document."""
        return cls(
            id=doc_id,
            project_id=_text(data, "projectId"),
            applicant_user_id=_text(data, "applicantId", "userId"),
            applicant_email=_text(data, "applicantEmail", "email"),
            applicant_name=_text(data, "applicantName", "name"),
            project_role=_text(
                data, "projectRole", "role", default=cls.project_role
            ),
            status=normalize_status(
                ApplicationStatus, data.get("status"), ApplicationStatus.PENDING
            ),
            raw=dict(data),
        )

    def to_payload(self) -> dict[str, Any]:
        """Return the ``applicationData`` shape used by emails."""
        return {
            "applicationId": self.id,
            "projectId": self.project_id,
            "applicantEmail": self.applicant_email,
            "applicantName": self.applicant_name,
            "projectRole": self.project_role,
        }


@dataclass
class Post:
    """A post in a group, company or the community feed."""

    id: str
    parent_id: str = ""
    author_id: str = ""
    author_name: str = ""
    title: str = ""
    content: str = ""
    likes: list[str] = field(default_factory=list)
    like_count: int = 0
    comment_count: int = 0
    is_system_post: bool = False
    raw: dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, doc_id: str, data: dict[str, Any]) -> Post:
        """Build a post from a raw document."""
        return cls(
            id=doc_id,
            parent_id=_text(data, "groupId", "companyId"),
            author_id=_text(data, "authorId"),
            author_name=_text(data, "authorName", "authorDisplayName"),
            title=_text(data, "title"),
            content=_text(data, "content"),
            likes=[u for u in _list(data.get("likes")) if isinstance(u, str)],
            like_count=_int(data.get("likeCount")),
            comment_count=_int(data.get("commentCount", data.get("replyCount"))),
            is_system_post=bool(data.get("isSystemPost", False)),
            raw=dict(data),
        )


@dataclass
class Comment:
    """A reply to a post."""

    id: str
    post_id: str = ""
    parent_id: str = ""
    author_id: str = ""
    content: str = ""
    raw: dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, doc_id: str, data: dict[str, Any]) -> Comment:
        """Build a comment from a raw document."""
        return cls(
            id=doc_id,
            post_id=_text(data, "postId"),
            parent_id=_text(data, "groupId", "companyId"),
            author_id=_text(data, "authorId"),
            content=_text(data, "content"),
            raw=dict(data),
        )
