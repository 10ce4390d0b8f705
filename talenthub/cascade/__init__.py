"""Cascading deletion engine."""

from .receipts import CascadeError, DeletionReceipt
from .services import CONFIRMATION_PHRASES, CascadeDeletionEngine, require_confirmation
from .tasks import CascadeJob, start_cascade_job

__all__ = [
    "CONFIRMATION_PHRASES",
    "CascadeDeletionEngine",
    "CascadeError",
    "CascadeJob",
    "DeletionReceipt",
    "require_confirmation",
    "start_cascade_job",
]
