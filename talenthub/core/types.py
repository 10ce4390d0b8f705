"""Core data types for the talenthub application."""

from typing import Any, Dict, Optional, TypedDict  # noqa: UP035


class RelatedIds(TypedDict, total=False):
    """Entities a notification points back to."""

    groupId: str
    projectId: str
    eventId: str
    companyId: str
    postId: str
    completionRequestId: str
    applicationId: str


class _NotificationDocumentBase(TypedDict):
    type: str
    title: str
    message: str
    read: bool
    createdAt: Any


class NotificationDocument(_NotificationDocumentBase, total=False):
    """Persisted notification as read by the notifications page."""

    userId: str
    recipientEmail: str
    relatedIds: RelatedIds
    priority: str
    actionUrl: str


class APIResponse(TypedDict):
    """Generic API response structure."""

    success: bool
    message: str
    data: Optional[Dict[str, Any]]  # noqa: UP006
