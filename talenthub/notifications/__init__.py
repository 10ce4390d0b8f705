"""Notification fan-out, email dispatch and the email relay blueprint."""

from flask import Blueprint

bp = Blueprint("notifications", __name__, url_prefix="/api/notifications")

from . import routes  # noqa: E402
from .dispatcher import DispatchOutcome, EmailDispatcher  # noqa: E402
from .display import resolve_display_name  # noqa: E402
from .services import (  # noqa: E402
    Audience,
    FanoutResult,
    NotificationEvent,
    NotificationFanout,
    Recipient,
)

__all__ = [
    "Audience",
    "DispatchOutcome",
    "EmailDispatcher",
    "FanoutResult",
    "NotificationEvent",
    "NotificationFanout",
    "Recipient",
    "resolve_display_name",
    "routes",
]
