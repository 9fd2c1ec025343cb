"""Thread-safe in-process document store."""

from __future__ import annotations

import threading
import uuid
from pathlib import Path
from typing import Any, Optional

import orjson

from wge.errors import DocumentNotFoundError, StoreError, VersionConflictError
from wge.store.base import DocumentStore, VersionedDocument, deep_merge


def _to_json_value(doc: dict[str, Any]) -> dict[str, Any]:
    # Round-trip through JSON so the memory store holds what a real store would.
    return orjson.loads(orjson.dumps(doc))


class InMemoryDocumentStore(DocumentStore):
    """Versioned documents kept in a dict, guarded by a single lock."""

    def __init__(self, max_retries: int = 5) -> None:
        self.max_retries = max_retries
        self._lock = threading.RLock()
        self._data: dict[str, dict[str, tuple[dict[str, Any], int]]] = {}

    @classmethod
    def from_json(cls, path: str | Path, max_retries: int = 5) -> "InMemoryDocumentStore":
        """Seed a store from a JSON file shaped as {collection: [doc, ...]}."""
        seed_path = Path(path)
        if not seed_path.exists():
            raise FileNotFoundError(f"Store seed file not found: {seed_path}")

        payload = orjson.loads(seed_path.read_bytes())
        if not isinstance(payload, dict):
            raise StoreError("Seed file must contain an object keyed by collection name")

        store = cls(max_retries=max_retries)
        for collection, docs in payload.items():
            for doc in docs:
                store.create(collection, doc, doc_id=doc.get("id"))
        return store

    def get_all(self, collection: str) -> list[dict[str, Any]]:
        with self._lock:
            rows = list(self._data.get(collection, {}).values())
        return [_to_json_value(doc) for doc, _ in rows]

    def get_versioned(self, collection: str, doc_id: str) -> Optional[VersionedDocument]:
        with self._lock:
            row = self._data.get(collection, {}).get(doc_id)
        if row is None:
            return None
        doc, version = row
        return VersionedDocument(doc=_to_json_value(doc), version=version)

    def create(
        self, collection: str, doc: dict[str, Any], doc_id: Optional[str] = None
    ) -> dict[str, Any]:
        new_id = doc_id or doc.get("id") or str(uuid.uuid4())
        body = _to_json_value({**doc, "id": new_id})
        with self._lock:
            bucket = self._data.setdefault(collection, {})
            if new_id in bucket:
                raise StoreError(f"{collection}/{new_id} already exists")
            bucket[new_id] = (body, 1)
        return _to_json_value(body)

    def update(
        self,
        collection: str,
        doc_id: str,
        partial: dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> dict[str, Any]:
        changes = _to_json_value(partial)
        with self._lock:
            bucket = self._data.get(collection, {})
            row = bucket.get(doc_id)
            if row is None:
                raise DocumentNotFoundError(collection, doc_id)
            current, version = row
            if expected_version is not None and expected_version != version:
                raise VersionConflictError(collection, doc_id, expected_version, version)
            merged = deep_merge(current, changes)
            merged["id"] = doc_id
            bucket[doc_id] = (merged, version + 1)
        return _to_json_value(merged)

    def delete(self, collection: str, doc_id: str) -> None:
        with self._lock:
            bucket = self._data.get(collection, {})
            if doc_id not in bucket:
                raise DocumentNotFoundError(collection, doc_id)
            del bucket[doc_id]
