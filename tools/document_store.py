"""Document store abstractions with SQLite and Firestore implementations.

Documents are plain dicts keyed by ``(collection, doc_id)``. Reads return the
stored fields plus an ``id`` key; writes ignore any ``id`` key in the payload.
Update payloads accept dotted field paths (``"tags.refuseToRewear"``) the way
Firestore does.
"""
from __future__ import annotations

import json
import sqlite3
import uuid
from abc import ABC, abstractmethod
from contextlib import closing
from datetime import date, datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, TypeVar

from stylist_app.errors import NotFoundError

T = TypeVar("T")
Document = Dict[str, Any]
Mutation = Callable[[Optional[Document]], Tuple[Optional[Document], T]]


class DocumentNotFoundError(NotFoundError):
    def __init__(self, collection: str, doc_id: str) -> None:
        super().__init__("Document not found")
        self.collection = collection
        self.doc_id = doc_id


def lookup_field(document: Document, path: str) -> Any:
    """Resolve a dotted field path, returning ``None`` when any part is missing."""

    value: Any = document
    for part in path.split("."):
        if not isinstance(value, dict):
            return None
        value = value.get(part)
    return value


def apply_update(document: Document, updates: Document) -> Document:
    """Apply a partial update where keys may be dotted field paths."""

    updated = json.loads(json.dumps(document, default=_encode_value))
    for key, value in updates.items():
        parts = key.split(".")
        target = updated
        for part in parts[:-1]:
            child = target.get(part)
            if not isinstance(child, dict):
                child = {}
                target[part] = child
            target = child
        target[parts[-1]] = value
    return updated


def deep_merge(base: Document, overrides: Document) -> Document:
    merged = dict(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _encode_value(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


class DocumentStore(ABC):
    """Persistence interface for document collections."""

    @abstractmethod
    def get(self, collection: str, doc_id: str) -> Optional[Document]:
        """Return the document or ``None``."""

    @abstractmethod
    def set(self, collection: str, doc_id: str, data: Document, merge: bool = False) -> None:
        """Create or overwrite a document; ``merge`` deep-merges into an existing one."""

    @abstractmethod
    def update(self, collection: str, doc_id: str, data: Document) -> None:
        """Partially update an existing document or raise ``DocumentNotFoundError``."""

    @abstractmethod
    def delete(self, collection: str, doc_id: str) -> None:
        """Delete a document; deleting a missing document is a no-op."""

    @abstractmethod
    def add(self, collection: str, data: Document) -> str:
        """Create a document with a generated id and return that id."""

    @abstractmethod
    def query(
        self,
        collection: str,
        filters: Sequence[Tuple[str, Any]] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Document]:
        """Return documents matching every equality filter."""

    @abstractmethod
    def run_transaction(self, collection: str, doc_id: str, mutate: Mutation[T]) -> T:
        """Atomically read a document, let ``mutate`` compute its replacement, write it.

        ``mutate`` receives the current document (or ``None``) and returns a
        ``(new_document_or_None, result)`` pair; ``None`` leaves the document
        untouched. The ``result`` is returned to the caller.
        """


class SQLiteDocumentStore(DocumentStore):
    """Local SQLite-backed document store storing JSON bodies."""

    def __init__(self, database_path: str | Path = "data/stylist.db") -> None:
        self.database_path = Path(database_path)
        if self.database_path.parent and not self.database_path.parent.exists():
            self.database_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_tables()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.database_path, timeout=30)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_tables(self) -> None:
        with closing(self._connect()) as conn, conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS documents (
                    collection TEXT NOT NULL,
                    doc_id TEXT NOT NULL,
                    data TEXT NOT NULL,
                    PRIMARY KEY (collection, doc_id)
                );
                """
            )

    @staticmethod
    def _serialise(data: Document) -> str:
        body = {key: value for key, value in data.items() if key != "id"}
        return json.dumps(body, default=_encode_value)

    @staticmethod
    def _deserialise(raw: str, doc_id: str) -> Document:
        document = json.loads(raw) if raw else {}
        document["id"] = doc_id
        return document

    def _write(self, conn: sqlite3.Connection, collection: str, doc_id: str, data: Document) -> None:
        conn.execute(
            "INSERT OR REPLACE INTO documents (collection, doc_id, data) VALUES (?, ?, ?)",
            (collection, doc_id, self._serialise(data)),
        )

    @staticmethod
    def _read(conn: sqlite3.Connection, collection: str, doc_id: str) -> Optional[sqlite3.Row]:
        return conn.execute(
            "SELECT doc_id, data FROM documents WHERE collection = ? AND doc_id = ?",
            (collection, doc_id),
        ).fetchone()

    def get(self, collection: str, doc_id: str) -> Optional[Document]:
        with closing(self._connect()) as conn:
            row = self._read(conn, collection, doc_id)
        return self._deserialise(row["data"], row["doc_id"]) if row else None

    def set(self, collection: str, doc_id: str, data: Document, merge: bool = False) -> None:
        def _mutate(current: Optional[Document]) -> Tuple[Document, None]:
            if merge and current:
                return deep_merge(current, data), None
            return data, None

        self.run_transaction(collection, doc_id, _mutate)

    def update(self, collection: str, doc_id: str, data: Document) -> None:
        def _mutate(current: Optional[Document]) -> Tuple[Document, None]:
            if current is None:
                raise DocumentNotFoundError(collection, doc_id)
            return apply_update(current, data), None

        self.run_transaction(collection, doc_id, _mutate)

    def delete(self, collection: str, doc_id: str) -> None:
        with closing(self._connect()) as conn, conn:
            conn.execute("DELETE FROM documents WHERE collection = ? AND doc_id = ?", (collection, doc_id))

    def add(self, collection: str, data: Document) -> str:
        doc_id = uuid.uuid4().hex
        with closing(self._connect()) as conn, conn:
            self._write(conn, collection, doc_id, data)
        return doc_id

    def query(
        self,
        collection: str,
        filters: Sequence[Tuple[str, Any]] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Document]:
        with closing(self._connect()) as conn:
            rows = conn.execute(
                "SELECT doc_id, data FROM documents WHERE collection = ? ORDER BY rowid",
                (collection,),
            ).fetchall()

        documents = [self._deserialise(row["data"], row["doc_id"]) for row in rows]
        matches = [
            doc for doc in documents if all(lookup_field(doc, field) == value for field, value in filters)
        ]
        if order_by:
            present = [doc for doc in matches if lookup_field(doc, order_by) is not None]
            present.sort(key=lambda doc: lookup_field(doc, order_by), reverse=descending)
            matches = present
        if limit is not None:
            matches = matches[:limit]
        return matches

    def run_transaction(self, collection: str, doc_id: str, mutate: Mutation[T]) -> T:
        conn = sqlite3.connect(self.database_path, timeout=30, isolation_level=None)
        conn.row_factory = sqlite3.Row
        try:
            # Take the write lock before reading so concurrent writers serialise.
            conn.execute("BEGIN IMMEDIATE")
            row = self._read(conn, collection, doc_id)
            current = self._deserialise(row["data"], doc_id) if row else None
            new_document, result = mutate(current)
            if new_document is not None:
                self._write(conn, collection, doc_id, new_document)
            conn.execute("COMMIT")
            return result
        except Exception:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            raise
        finally:
            conn.close()


class FirestoreDocumentStore(DocumentStore):
    """Cloud Firestore implementation backed by the firebase_admin client."""

    def __init__(self, client: Any = None, app: Any = None) -> None:
        from firebase_admin import firestore

        self._firestore = firestore
        self.client = client or firestore.client(app=app)

    def _ref(self, collection: str, doc_id: str) -> Any:
        return self.client.collection(collection).document(doc_id)

    @staticmethod
    def _snapshot_to_document(snapshot: Any) -> Document:
        document = snapshot.to_dict() or {}
        document["id"] = snapshot.id
        return document

    @staticmethod
    def _body(data: Document) -> Document:
        return {key: value for key, value in data.items() if key != "id"}

    def get(self, collection: str, doc_id: str) -> Optional[Document]:
        snapshot = self._ref(collection, doc_id).get()
        if not snapshot.exists:
            return None
        return self._snapshot_to_document(snapshot)

    def set(self, collection: str, doc_id: str, data: Document, merge: bool = False) -> None:
        self._ref(collection, doc_id).set(self._body(data), merge=merge)

    def update(self, collection: str, doc_id: str, data: Document) -> None:
        from google.api_core import exceptions as gcp_exceptions

        try:
            self._ref(collection, doc_id).update(self._body(data))
        except gcp_exceptions.NotFound as exc:
            raise DocumentNotFoundError(collection, doc_id) from exc

    def delete(self, collection: str, doc_id: str) -> None:
        self._ref(collection, doc_id).delete()

    def add(self, collection: str, data: Document) -> str:
        ref = self.client.collection(collection).document()
        ref.set(self._body(data))
        return ref.id

    def query(
        self,
        collection: str,
        filters: Sequence[Tuple[str, Any]] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Document]:
        from google.cloud.firestore_v1.base_query import FieldFilter

        query = self.client.collection(collection)
        for field, value in filters:
            query = query.where(filter=FieldFilter(field, "==", value))
        if order_by:
            direction = self._firestore.Query.DESCENDING if descending else self._firestore.Query.ASCENDING
            query = query.order_by(order_by, direction=direction)
        if limit is not None:
            query = query.limit(limit)
        return [self._snapshot_to_document(snapshot) for snapshot in query.stream()]

    def run_transaction(self, collection: str, doc_id: str, mutate: Mutation[T]) -> T:
        ref = self._ref(collection, doc_id)

        @self._firestore.transactional
        def _apply(transaction: Any) -> T:
            snapshot = ref.get(transaction=transaction)
            current = self._snapshot_to_document(snapshot) if snapshot.exists else None
            new_document, result = mutate(current)
            if new_document is not None:
                transaction.set(ref, self._body(new_document))
            return result

        return _apply(self.client.transaction())


__all__ = [
    "DocumentStore",
    "DocumentNotFoundError",
    "SQLiteDocumentStore",
    "FirestoreDocumentStore",
    "apply_update",
    "deep_merge",
    "lookup_field",
]
