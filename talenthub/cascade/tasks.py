"""Background execution of cascade deletions."""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Any, Callable, Optional

from firebase_admin import firestore

from talenthub.core import constants

if TYPE_CHECKING:
    from flask import Flask

    from talenthub.auth.models import Actor
    from talenthub.store.services import EntityStore

    from .receipts import DeletionReceipt

logger = logging.getLogger(__name__)


class CascadeJob:
    """A cascade running on its own thread, independent of the request.

    The job record in ``cascade_jobs`` moves from ``running`` to
    ``completed``, ``partial`` or ``failed`` and holds the final receipt.
    """

    def __init__(self, job_id: str, thread: threading.Thread) -> None:
        self.job_id = job_id
        self.thread = thread
        self.receipt: Optional[DeletionReceipt] = None
        self.error: Optional[BaseException] = None

    @property
    def done(self) -> bool:
        return not self.thread.is_alive()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Wait for the job and return True when it has finished."""
        self.thread.join(timeout)
        return self.done


def start_cascade_job(
    app: Flask,
    store: EntityStore,
    kind: str,
    target_id: str,
    admin: Actor,
    operation: Callable[[], DeletionReceipt],
) -> CascadeJob:
    """Run ``operation`` in a background thread inside ``app``'s context."""
    job_id = store.create(
        constants.CASCADE_JOBS,
        {
            "kind": kind,
            "targetId": target_id,
            "requestedBy": admin.label,
            "status": "running",
        },
    )

    def task() -> None:
        """Perform the cascade and record its outcome."""
        with app.app_context():
            update: dict[str, Any]
            try:
                receipt = operation()
                job.receipt = receipt
                update = {
                    "status": "partial" if receipt.partial_failure else "completed",
                    "receipt": receipt.to_dict(),
                }
            except Exception as e:
                logger.error(f"Cascade job {job_id} ({kind} {target_id}) failed: {e}")
                job.error = e
                update = {"status": "failed", "error": str(e)}
            update["finishedAt"] = firestore.SERVER_TIMESTAMP
            try:
                store.update(constants.CASCADE_JOBS, job_id, update)
            except Exception as e:
                logger.error(f"Could not record outcome of cascade job {job_id}: {e}")

    thread = threading.Thread(target=task, name=f"cascade-{job_id}")
    job = CascadeJob(job_id, thread)
    thread.start()
    return job
