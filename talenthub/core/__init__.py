"""Core module for the talenthub application."""

from .types import APIResponse, NotificationDocument, RelatedIds

__all__ = ["APIResponse", "NotificationDocument", "RelatedIds"]
