"""Receipts describing what a cascade deleted and what it could not."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any, Optional

from talenthub.errors import PartialCascadeFailure


@dataclass
class CascadeError:
    """A dependent record (or whole collection) that could not be deleted."""

    collection: str
    doc_id: Optional[str]
    error: str

    def to_dict(self) -> dict[str, Any]:
        return {"collection": self.collection, "docId": self.doc_id, "error": self.error}


@dataclass
class DeletionReceipt:
    """Per-collection deletion counts plus any partial failures.

    ``root_deleted`` can be True while ``errors`` is non-empty: the cascade
    is best-effort and the root is always removed last.
    """

    root: str
    root_id: str
    counts: dict[str, int] = field(default_factory=dict)
    errors: list[CascadeError] = field(default_factory=list)
    root_deleted: bool = False
    owner_notified: bool = False
    project_links: list[dict[str, Any]] = field(default_factory=list)
    _lock: threading.Lock = field(
        default_factory=threading.Lock, repr=False, compare=False
    )

    def record(self, label: str, deleted: int) -> None:
        with self._lock:
            self.counts[label] = self.counts.get(label, 0) + deleted

    def link_project(self, link: dict[str, Any]) -> None:
        """Note what happened to the project a deleted group was serving."""
        with self._lock:
            self.project_links.append(link)

    def fail(self, label: str, doc_id: Optional[str], error: BaseException) -> None:
        with self._lock:
            self.errors.append(CascadeError(label, doc_id, str(error)))

    @property
    def partial_failure(self) -> bool:
        return bool(self.errors)

    @property
    def warning(self) -> Optional[PartialCascadeFailure]:
        return PartialCascadeFailure(self) if self.partial_failure else None

    def raise_if_partial(self) -> None:
        """Raise PartialCascadeFailure for callers that want a hard signal."""
        if self.partial_failure:
            raise PartialCascadeFailure(self)

    def to_dict(self) -> dict[str, Any]:
        return {
            "root": self.root,
            "rootId": self.root_id,
            "counts": dict(self.counts),
            "errors": [e.to_dict() for e in self.errors],
            "rootDeleted": self.root_deleted,
            "partialFailure": self.partial_failure,
            "ownerNotified": self.owner_notified,
            "projectLinks": list(self.project_links),
        }
