"""Postgres-backed document store (one JSONB row per document)."""

from __future__ import annotations

import uuid
from contextlib import contextmanager
from typing import Any, Iterator, Optional

import orjson
import psycopg
from psycopg.types.json import Jsonb

from wge.config import Settings
from wge.errors import DocumentNotFoundError, StoreError, VersionConflictError
from wge.store.base import DocumentStore, VersionedDocument, deep_merge


def _dumps(value: Any) -> str:
    return orjson.dumps(value).decode("utf-8")


def get_connection(settings: Optional[Settings] = None) -> psycopg.Connection:
    """Create a new database connection."""
    settings = settings or Settings()
    return psycopg.connect(settings.get_database_url())


@contextmanager
def db_cursor(settings: Optional[Settings] = None) -> Iterator[psycopg.Cursor]:
    """Yield a cursor with automatic commit/rollback."""
    conn = get_connection(settings)
    try:
        with conn.cursor() as cursor:
            yield cursor
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


class PostgresDocumentStore(DocumentStore):
    """Documents live in `documents(collection, id, version, body)`; see sql/001_documents.sql."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self.settings = settings or Settings()
        self.max_retries = self.settings.store_max_retries

    def get_all(self, collection: str) -> list[dict[str, Any]]:
        with db_cursor(self.settings) as cursor:
            cursor.execute(
                "select id, body from documents where collection = %s order by created_at, id",
                (collection,),
            )
            rows = cursor.fetchall()
        return [{**body, "id": doc_id} for doc_id, body in rows]

    def get_versioned(self, collection: str, doc_id: str) -> Optional[VersionedDocument]:
        with db_cursor(self.settings) as cursor:
            cursor.execute(
                "select body, version from documents where collection = %s and id = %s",
                (collection, doc_id),
            )
            row = cursor.fetchone()
        if row is None:
            return None
        body, version = row
        return VersionedDocument(doc={**body, "id": doc_id}, version=int(version))

    def create(
        self, collection: str, doc: dict[str, Any], doc_id: Optional[str] = None
    ) -> dict[str, Any]:
        new_id = doc_id or doc.get("id") or str(uuid.uuid4())
        body = {**doc, "id": new_id}
        try:
            with db_cursor(self.settings) as cursor:
                cursor.execute(
                    "insert into documents (collection, id, version, body) values (%s, %s, 1, %s)",
                    (collection, new_id, Jsonb(body, dumps=_dumps)),
                )
        except psycopg.errors.UniqueViolation as exc:
            raise StoreError(f"{collection}/{new_id} already exists") from exc
        return orjson.loads(_dumps(body))

    def update(
        self,
        collection: str,
        doc_id: str,
        partial: dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> dict[str, Any]:
        changes = orjson.loads(_dumps(partial))
        with db_cursor(self.settings) as cursor:
            cursor.execute(
                "select body, version from documents "
                "where collection = %s and id = %s for update",
                (collection, doc_id),
            )
            row = cursor.fetchone()
            if row is None:
                raise DocumentNotFoundError(collection, doc_id)
            current, version = row
            if expected_version is not None and expected_version != version:
                raise VersionConflictError(collection, doc_id, expected_version, int(version))

            merged = deep_merge(current, changes)
            merged["id"] = doc_id
            cursor.execute(
                "update documents set body = %s, version = version + 1, updated_at = now() "
                "where collection = %s and id = %s and version = %s",
                (Jsonb(merged, dumps=_dumps), collection, doc_id, version),
            )
            if cursor.rowcount != 1:
                raise VersionConflictError(collection, doc_id, int(version), None)
        return merged

    def delete(self, collection: str, doc_id: str) -> None:
        with db_cursor(self.settings) as cursor:
            cursor.execute(
                "delete from documents where collection = %s and id = %s",
                (collection, doc_id),
            )
            if not cursor.rowcount:
                raise DocumentNotFoundError(collection, doc_id)

    def check(self) -> None:
        """Raise if the database is unreachable."""
        with db_cursor(self.settings) as cursor:
            cursor.execute("select 1")
