"""Document store adapters."""

from __future__ import annotations

from typing import Optional

from wge.config import Settings
from wge.store.base import DocumentStore, VersionedDocument, deep_merge
from wge.store.memory import InMemoryDocumentStore


def get_store(settings: Optional[Settings] = None) -> DocumentStore:
    """Build the store configured by STORE_BACKEND."""
    settings = settings or Settings()
    if settings.store_backend == "postgres":
        from wge.store.postgres import PostgresDocumentStore

        return PostgresDocumentStore(settings)

    if settings.store_seed_path:
        return InMemoryDocumentStore.from_json(
            settings.store_seed_path, max_retries=settings.store_max_retries
        )
    return InMemoryDocumentStore(max_retries=settings.store_max_retries)


__all__ = [
    "DocumentStore",
    "InMemoryDocumentStore",
    "VersionedDocument",
    "deep_merge",
    "get_store",
]
