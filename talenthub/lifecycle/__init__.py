"""Lifecycle state machines and the operations that hang off them."""

from .content import COMPANY_SCOPE, GROUP_SCOPE, SCOPES, ContentService, PostScope
from .membership import MembershipService
from .results import TransitionResult
from .services import LifecycleEngine

__all__ = [
    "COMPANY_SCOPE",
    "GROUP_SCOPE",
    "SCOPES",
    "ContentService",
    "LifecycleEngine",
    "MembershipService",
    "PostScope",
    "TransitionResult",
]
