"""Typed access to the Firestore collections backing the platform."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Callable, Iterator, Optional, TypeVar, cast

from firebase_admin import firestore
from google.api_core import exceptions as gexc

from talenthub.errors import (
    ConflictError,
    DownstreamUnavailable,
    NotFoundError,
    PermissionDeniedError,
)

if TYPE_CHECKING:
    from google.cloud.firestore_v1.base_document import DocumentSnapshot
    from google.cloud.firestore_v1.client import Client
    from google.cloud.firestore_v1.document import DocumentReference
    from google.cloud.firestore_v1.transaction import Transaction

logger = logging.getLogger(__name__)

T = TypeVar("T")
Filter = tuple[str, str, Any]


@contextmanager
def translate_errors(action: str) -> Iterator[None]:
    """Re-raise Firestore client errors as application errors."""
    try:
        yield
    except gexc.NotFound as e:
        raise NotFoundError(f"{action}: not found.") from e
    except gexc.PermissionDenied as e:
        raise PermissionDeniedError(f"{action}: permission denied.") from e
    except (gexc.AlreadyExists, gexc.Aborted, gexc.FailedPrecondition) as e:
        raise ConflictError(f"{action}: conflicting write ({e}).") from e
    except (
        gexc.ServiceUnavailable,
        gexc.DeadlineExceeded,
        gexc.RetryError,
    ) as e:
        logger.error(f"Firestore unavailable during {action}: {e}")
        raise DownstreamUnavailable(f"{action}: document store unavailable.") from e


def snapshot_to_dict(snapshot: DocumentSnapshot) -> dict[str, Any]:
    """Return the snapshot data with its ``id`` merged in."""
    data = snapshot.to_dict() or {}
    data["id"] = snapshot.id
    return data


class EntityStore:
    """CRUD and query access to the platform's collections.

    The store is stateless apart from the client handle; every call goes to
    Firestore. Models passed to :meth:`load` and :meth:`query_models` are the
    dataclasses from :mod:`talenthub.store.models`.
    """

    def __init__(self, db: Client) -> None:
        self.db = db

    def ref(self, collection: str, doc_id: Optional[str] = None) -> DocumentReference:
        """Return a document reference, generating an id when none is given."""
        coll = self.db.collection(collection)
        return coll.document(doc_id) if doc_id else coll.document()

    def find(self, collection: str, doc_id: str) -> Optional[dict[str, Any]]:
        """Fetch a document, returning None when it does not exist."""
        if not doc_id:
            return None
        with translate_errors(f"read {collection}/{doc_id}"):
            snapshot = cast("DocumentSnapshot", self.ref(collection, doc_id).get())
        if not snapshot.exists:
            return None
        return snapshot_to_dict(snapshot)

    def get(self, collection: str, doc_id: str) -> dict[str, Any]:
        """Fetch a document or raise NotFoundError."""
        data = self.find(collection, doc_id)
        if data is None:
            raise NotFoundError(f"{collection}/{doc_id} not found.")
        return data

    def load(self, model: type[T], doc_id: str) -> T:
        """Fetch a document and normalize it into ``model``."""
        data = self.get(model.collection, doc_id)  # type: ignore[attr-defined]
        return model.from_dict(doc_id, data)  # type: ignore[attr-defined]

    def query(
        self, collection: str, *filters: Filter, limit: Optional[int] = None
    ) -> list[DocumentSnapshot]:
        """Return snapshots in ``collection`` matching every filter."""
        query: Any = self.db.collection(collection)
        for field_path, op_string, value in filters:
            query = query.where(
                filter=firestore.FieldFilter(field_path, op_string, value)
            )
        if limit is not None:
            query = query.limit(limit)
        with translate_errors(f"query {collection}"):
            return list(query.stream())

    def query_models(self, model: type[T], *filters: Filter) -> list[T]:
        """Return normalized models matching every filter."""
        return [
            model.from_dict(s.id, s.to_dict() or {})  # type: ignore[attr-defined]
            for s in self.query(model.collection, *filters)  # type: ignore[attr-defined]
            if s.exists
        ]

    def subcollection(
        self, collection: str, doc_id: str, name: str
    ) -> list[DocumentSnapshot]:
        """Return every snapshot in a document's subcollection."""
        with translate_errors(f"query {collection}/{doc_id}/{name}"):
            return list(self.ref(collection, doc_id).collection(name).stream())

    def create(
        self, collection: str, fields: dict[str, Any], doc_id: Optional[str] = None
    ) -> str:
        """Create a document and return its id."""
        ref = self.ref(collection, doc_id)
        data = {"createdAt": firestore.SERVER_TIMESTAMP, **fields}
        with translate_errors(f"create {collection}"):
            ref.set(data)
        return ref.id

    def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        """Update an existing document."""
        ref = self.ref(collection, doc_id)
        with translate_errors(f"update {collection}/{doc_id}"):
            snapshot = cast("DocumentSnapshot", ref.get())
            if not snapshot.exists:
                raise NotFoundError(f"{collection}/{doc_id} not found.")
            ref.update({"updatedAt": firestore.SERVER_TIMESTAMP, **fields})

    def delete(self, collection: str, doc_id: str) -> None:
        """Delete a document."""
        with translate_errors(f"delete {collection}/{doc_id}"):
            self.ref(collection, doc_id).delete()

    def increment(
        self, collection: str, doc_id: str, field_path: str, amount: int = 1
    ) -> None:
        """Atomically add ``amount`` to a numeric field."""
        with translate_errors(f"increment {collection}/{doc_id}.{field_path}"):
            self.ref(collection, doc_id).update(
                {field_path: firestore.Increment(amount)}
            )

    def read(
        self, transaction: Transaction, collection: str, doc_id: str
    ) -> Optional[dict[str, Any]]:
        """Read a document inside ``transaction``."""
        with translate_errors(f"read {collection}/{doc_id}"):
            snapshot = cast(
                "DocumentSnapshot",
                self.ref(collection, doc_id).get(transaction=transaction),
            )
        if not snapshot.exists:
            return None
        return snapshot_to_dict(snapshot)

    def read_model(
        self, transaction: Transaction, model: type[T], doc_id: str
    ) -> T:
        """Read and normalize a document inside ``transaction``."""
        data = self.read(transaction, model.collection, doc_id)  # type: ignore[attr-defined]
        if data is None:
            raise NotFoundError(
                f"{model.collection}/{doc_id} not found."  # type: ignore[attr-defined]
            )
        return model.from_dict(doc_id, data)  # type: ignore[attr-defined]

    def run_transaction(
        self, fn: Callable[..., T], *args: Any, **kwargs: Any
    ) -> T:
        """Run ``fn(transaction, *args)`` as a retried Firestore transaction."""
        transaction = self.db.transaction()
        with translate_errors(getattr(fn, "__name__", "transaction")):
            return firestore.transactional(fn)(transaction, *args, **kwargs)
