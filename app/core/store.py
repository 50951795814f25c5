"""
Document store abstraction: Firestore for deployments, an in-memory twin for
development and tests.

Documents are plain dicts. Every document carries an integer ``revision`` that
is bumped on each ``update``; callers doing read-then-write pass the revision
they read as ``expected_revision`` and get ``ConcurrentModification`` if somebody
else wrote in between.
"""

from __future__ import annotations

import copy
import threading
import uuid
from typing import Any, Dict, List, NamedTuple, Optional, Protocol

from firebase_admin import firestore
from google.cloud.firestore import FieldFilter

from app.core.errors import ConcurrentModification


class _Delete:
    def __repr__(self):
        return "DELETE"


# Value sentinel for ``update``: remove the field from the document.
DELETE = _Delete()


class Where(NamedTuple):
    field: str
    op: str
    value: Any


class DocumentStore(Protocol):
    """Interface the services use; field names in updates are top-level only."""

    def insert(self, collection: str, data: dict, doc_id: Optional[str] = None) -> str:
        ...

    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        ...

    def find(
        self,
        collection: str,
        *filters: Where,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[dict]:
        ...

    def find_one(self, collection: str, field: str, value: Any) -> Optional[dict]:
        ...

    def count(self, collection: str, *filters: Where) -> int:
        ...

    def update(
        self,
        collection: str,
        doc_id: str,
        fields: Dict[str, Any],
        expected_revision: Optional[int] = None,
    ) -> Optional[dict]:
        ...

    def put(self, collection: str, doc_id: str, data: dict) -> None:
        ...

    def delete(self, collection: str, doc_id: str) -> bool:
        ...


def _matches(doc: dict, where: Where) -> bool:
    actual = doc.get(where.field)
    if where.op == "==":
        return actual == where.value
    if where.op == "array_contains":
        return isinstance(actual, list) and where.value in actual
    if actual is None:
        return False
    if where.op == "<":
        return actual < where.value
    if where.op == "<=":
        return actual <= where.value
    if where.op == ">":
        return actual > where.value
    if where.op == ">=":
        return actual >= where.value
    raise ValueError(f"Unsupported operator: {where.op}")


class InMemoryStore:
    """Simple in-memory document store for development and tests."""

    def __init__(self):
        self.collections: Dict[str, Dict[str, dict]] = {}
        self._lock = threading.Lock()

    def reset(self) -> None:
        with self._lock:
            self.collections.clear()

    def _coll(self, collection: str) -> Dict[str, dict]:
        return self.collections.setdefault(collection, {})

    @staticmethod
    def _out(doc_id: str, doc: dict) -> dict:
        return {**copy.deepcopy(doc), "id": doc_id}

    def insert(self, collection: str, data: dict, doc_id: Optional[str] = None) -> str:
        doc_id = doc_id or uuid.uuid4().hex
        body = {k: v for k, v in copy.deepcopy(data).items() if k != "id"}
        body["revision"] = 1
        with self._lock:
            self._coll(collection)[doc_id] = body
        return doc_id

    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        with self._lock:
            doc = self._coll(collection).get(doc_id)
            return self._out(doc_id, doc) if doc is not None else None

    def find(
        self,
        collection: str,
        *filters: Where,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[dict]:
        with self._lock:
            items = [
                self._out(doc_id, doc)
                for doc_id, doc in self._coll(collection).items()
                if all(_matches(doc, w) for w in filters)
            ]
        if order_by:
            items.sort(key=lambda d: d.get(order_by), reverse=descending)
        if limit is not None:
            items = items[:limit]
        return items

    def find_one(self, collection: str, field: str, value: Any) -> Optional[dict]:
        items = self.find(collection, Where(field, "==", value), limit=1)
        return items[0] if items else None

    def count(self, collection: str, *filters: Where) -> int:
        return len(self.find(collection, *filters))

    def update(
        self,
        collection: str,
        doc_id: str,
        fields: Dict[str, Any],
        expected_revision: Optional[int] = None,
    ) -> Optional[dict]:
        with self._lock:
            doc = self._coll(collection).get(doc_id)
            if doc is None:
                return None
            current = doc.get("revision", 0)
            if expected_revision is not None and current != expected_revision:
                raise ConcurrentModification()
            for key, value in fields.items():
                if value is DELETE:
                    doc.pop(key, None)
                else:
                    doc[key] = copy.deepcopy(value)
            doc["revision"] = current + 1
            return self._out(doc_id, doc)

    def put(self, collection: str, doc_id: str, data: dict) -> None:
        with self._lock:
            self._coll(collection)[doc_id] = copy.deepcopy(data)

    def delete(self, collection: str, doc_id: str) -> bool:
        with self._lock:
            return self._coll(collection).pop(doc_id, None) is not None


class FirestoreStore:
    """Firestore-backed document store (firebase-admin client)."""

    def __init__(self, client):
        self._db = client

    @staticmethod
    def _out(snapshot) -> Optional[dict]:
        if not snapshot.exists:
            return None
        return {**(snapshot.to_dict() or {}), "id": snapshot.id}

    @staticmethod
    def _encode(fields: Dict[str, Any]) -> Dict[str, Any]:
        return {
            key: (firestore.DELETE_FIELD if value is DELETE else value)
            for key, value in fields.items()
        }

    def _query(self, collection: str, filters):
        query = self._db.collection(collection)
        for w in filters:
            query = query.where(filter=FieldFilter(w.field, w.op, w.value))
        return query

    def insert(self, collection: str, data: dict, doc_id: Optional[str] = None) -> str:
        body = {k: v for k, v in data.items() if k != "id"}
        body["revision"] = 1
        coll = self._db.collection(collection)
        ref = coll.document(doc_id) if doc_id else coll.document()
        ref.set(body)
        return ref.id

    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        return self._out(self._db.collection(collection).document(doc_id).get())

    def find(
        self,
        collection: str,
        *filters: Where,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[dict]:
        query = self._query(collection, filters)
        if order_by:
            direction = firestore.Query.DESCENDING if descending else firestore.Query.ASCENDING
            query = query.order_by(order_by, direction=direction)
        if limit is not None:
            query = query.limit(limit)
        return [self._out(d) for d in query.stream()]

    def find_one(self, collection: str, field: str, value: Any) -> Optional[dict]:
        items = self.find(collection, Where(field, "==", value), limit=1)
        return items[0] if items else None

    def count(self, collection: str, *filters: Where) -> int:
        result = self._query(collection, filters).count().get()
        return int(result[0][0].value)

    def update(
        self,
        collection: str,
        doc_id: str,
        fields: Dict[str, Any],
        expected_revision: Optional[int] = None,
    ) -> Optional[dict]:
        ref = self._db.collection(collection).document(doc_id)
        payload = self._encode(fields)

        if expected_revision is None:
            if not ref.get().exists:
                return None
            ref.update({**payload, "revision": firestore.Increment(1)})
            return self.get(collection, doc_id)

        @firestore.transactional
        def _compare_and_swap(transaction) -> bool:
            snapshot = ref.get(transaction=transaction)
            if not snapshot.exists:
                return False
            current = (snapshot.to_dict() or {}).get("revision", 0)
            if current != expected_revision:
                raise ConcurrentModification()
            transaction.update(ref, {**payload, "revision": current + 1})
            return True

        if not _compare_and_swap(self._db.transaction()):
            return None
        return self.get(collection, doc_id)

    def put(self, collection: str, doc_id: str, data: dict) -> None:
        self._db.collection(collection).document(doc_id).set(data)

    def delete(self, collection: str, doc_id: str) -> bool:
        ref = self._db.collection(collection).document(doc_id)
        if not ref.get().exists:
            return False
        ref.delete()
        return True
