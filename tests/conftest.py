"""Common utilities for tests."""

from __future__ import annotations

import threading
import unittest
import unittest.mock
from typing import Any, Callable, Optional

import firebase_admin.firestore
from mockfirestore import CollectionReference, MockFirestore, Query
from mockfirestore.document import DocumentReference

from talenthub.auth.models import Actor
from talenthub.notifications import DispatchOutcome, EmailDispatcher, NotificationFanout
from talenthub.store import EntityStore


def patch_mockfirestore() -> None:
    """Apply monkeypatches to mockfirestore to support FieldFilter and transactions."""

    def collection_where(
        self: Any,
        field_path: Optional[str] = None,
        op_string: Optional[str] = None,
        value: Any = None,
        filter: Any = None,
    ) -> Any:  # noqa: E501
        if filter:
            return self._where(filter.field_path, filter.op_string, filter.value)
        return self._where(field_path, op_string, value)

    if not hasattr(CollectionReference, "_where"):
        CollectionReference._where = CollectionReference.where
        CollectionReference.where = collection_where

    def query_where(
        self: Any,
        field_path: Optional[str] = None,
        op_string: Optional[str] = None,
        value: Any = None,
        filter: Any = None,
    ) -> Any:
        if filter:
            return self._where(filter.field_path, filter.op_string, filter.value)
        return self._where(field_path, op_string, value)

    if not hasattr(Query, "_where"):
        Query._where = Query.where
        Query.where = query_where

    def doc_ref_eq(self: Any, other: Any) -> bool:
        if not isinstance(other, DocumentReference):
            return False
        return self._path == other._path

    if not hasattr(DocumentReference, "_orig_eq"):
        DocumentReference._orig_eq = DocumentReference.__eq__
        DocumentReference.__eq__ = doc_ref_eq
        DocumentReference.__hash__ = lambda self: hash(tuple(self._path))

    # Transactional reads pass transaction=...
    if not hasattr(DocumentReference, "_orig_get"):
        DocumentReference._orig_get = DocumentReference.get

        def doc_ref_get(self: Any, transaction: Any = None) -> Any:
            return self._orig_get()

        DocumentReference.get = doc_ref_get


class MockBatch:
    def __init__(self, db: Any) -> None:
        self.db = db
        self.writes: list[tuple[str, Any, Any]] = []
        self.commit = unittest.mock.MagicMock(side_effect=self._real_commit)

    def set(self, ref: Any, data: Any, merge: bool = False) -> None:
        self.writes.append(("set", ref, (data, merge)))

    def update(self, ref: Any, data: Any) -> None:
        self.writes.append(("update", ref, data))

    def delete(self, ref: Any) -> None:
        self.writes.append(("delete", ref, None))

    def _real_commit(self) -> None:
        for op, ref, data in self.writes:
            if op == "set":
                ref.set(data[0], merge=data[1])
            elif op == "update":
                ref.update(data)
            else:
                ref.delete()
        self.writes = []


_transaction_lock = threading.RLock()


def run_transactional(fn: Callable[..., Any]) -> Callable[..., Any]:
    """Stand-in for firestore.transactional driving a mockfirestore Transaction.

    Transactions run one at a time, which matches the serializable outcome a
    retried Firestore transaction produces.
    """

    def wrapper(transaction: Any, *args: Any, **kwargs: Any) -> Any:
        with _transaction_lock:
            transaction._begin()
            try:
                result = fn(transaction, *args, **kwargs)
            except Exception:
                transaction._rollback()
                raise
            transaction._commit()
            return result

    return wrapper


def new_mock_db() -> MockFirestore:
    """Return a MockFirestore that also hands out write batches."""
    patch_mockfirestore()
    db = MockFirestore()
    db.batch = lambda: MockBatch(db)
    return db


def ok_dispatcher() -> unittest.mock.MagicMock:
    """An EmailDispatcher double whose dispatches all succeed."""
    dispatcher = unittest.mock.MagicMock(spec=EmailDispatcher)
    dispatcher.dispatch.side_effect = lambda key, payload: DispatchOutcome(key, True)
    return dispatcher


ADMIN = Actor(user_id="admin_uid", email="admin@example.com", name="Admin", is_admin=True)


class FirestoreTestCase(unittest.TestCase):
    """Base test case wiring services to an in-memory Firestore."""

    def setUp(self) -> None:
        self.db = new_mock_db()
        patcher = unittest.mock.patch.object(
            firebase_admin.firestore, "transactional", run_transactional
        )
        patcher.start()
        self.addCleanup(patcher.stop)
        self.store = EntityStore(self.db)
        self.fanout = NotificationFanout(self.store)
        self.dispatcher = ok_dispatcher()

    def docs(self, collection: str, **filters: Any) -> list[dict[str, Any]]:
        """Return existing documents in ``collection`` matching field filters."""
        found = []
        for snapshot in self.db.collection(collection).stream():
            if not snapshot.exists:
                continue
            data = {"id": snapshot.id, **snapshot.to_dict()}
            if all(data.get(k) == v for k, v in filters.items()):
                found.append(data)
        return found

    def doc(self, collection: str, doc_id: str) -> Optional[dict[str, Any]]:
        snapshot = self.db.collection(collection).document(doc_id).get()
        return snapshot.to_dict() if snapshot.exists else None

    def notifications(self, **filters: Any) -> list[dict[str, Any]]:
        return self.docs("notifications", **filters)


class AppTestCase(FirestoreTestCase):
    """FirestoreTestCase plus a Flask test client backed by the same database."""

    config: dict[str, Any] = {}

    def setUp(self) -> None:
        super().setUp()
        patcher = unittest.mock.patch("firebase_admin.initialize_app")
        patcher.start()
        self.addCleanup(patcher.stop)
        mock_firestore_module = unittest.mock.MagicMock()
        mock_firestore_module.client.return_value = self.db
        patcher = unittest.mock.patch("talenthub.store.firestore", mock_firestore_module)
        patcher.start()
        self.addCleanup(patcher.stop)
        relay = unittest.mock.patch("talenthub.notifications.dispatcher.requests.post")
        self.mock_relay = relay.start()
        self.addCleanup(relay.stop)
        self.mock_relay.return_value.ok = True
        self.mock_relay.return_value.status_code = 200
        self.mock_relay.return_value.json.return_value = {"success": True}

        from talenthub import create_app

        self.app = create_app(
            {"TESTING": True, "WTF_CSRF_ENABLED": False, **self.config}
        )
        self.client = self.app.test_client()

    def login(self, user_id: str, **fields: Any) -> None:
        """Create the user document and put its id in the session."""
        self.db.collection("users").document(user_id).set(
            {"email": f"{user_id}@example.com", "displayName": user_id, **fields}
        )
        with self.client.session_transaction() as sess:
            sess["user_id"] = user_id
