"""Document store contract shared by all adapters."""

from __future__ import annotations

import copy
from abc import ABC, abstractmethod
from typing import Any, Callable, NamedTuple, Optional

from wge.errors import DocumentNotFoundError, VersionConflictError
from wge.utils.logging import get_logger


logger = get_logger(__name__)

Mutation = Callable[[dict[str, Any]], Optional[dict[str, Any]]]


class VersionedDocument(NamedTuple):
    doc: dict[str, Any]
    version: int


def deep_merge(base: dict[str, Any], changes: dict[str, Any]) -> dict[str, Any]:
    """Merge `changes` into a copy of `base`; nested dicts merge, everything else replaces."""
    merged = copy.deepcopy(base)
    for key, value in changes.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


class DocumentStore(ABC):
    """get-all/get-by-id/create/update/delete over named collections.

    Plain `update` is last-write-wins with a deep merge. Passing
    `expected_version` turns it into a conditional write that raises
    `VersionConflictError` when another writer got there first; `mutate`
    builds the read-modify-write loop on top of that.
    """

    max_retries: int = 5

    @abstractmethod
    def get_all(self, collection: str) -> list[dict[str, Any]]:
        """Return every document in a collection."""

    @abstractmethod
    def get_versioned(self, collection: str, doc_id: str) -> Optional[VersionedDocument]:
        """Return a document together with its version, or None."""

    @abstractmethod
    def create(
        self, collection: str, doc: dict[str, Any], doc_id: Optional[str] = None
    ) -> dict[str, Any]:
        """Insert a document and return it (with its id)."""

    @abstractmethod
    def update(
        self,
        collection: str,
        doc_id: str,
        partial: dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> dict[str, Any]:
        """Merge `partial` into a document and return the result."""

    @abstractmethod
    def delete(self, collection: str, doc_id: str) -> None:
        """Remove a document."""

    def get_by_id(self, collection: str, doc_id: str) -> Optional[dict[str, Any]]:
        found = self.get_versioned(collection, doc_id)
        return found.doc if found else None

    def mutate(
        self,
        collection: str,
        doc_id: str,
        fn: Mutation,
        retries: Optional[int] = None,
    ) -> dict[str, Any]:
        """Read, derive changes with `fn`, and write them back conditionally.

        `fn` receives a private copy of the current document and returns the
        partial changes to merge, or None to leave the document alone. It may be
        called more than once when concurrent writers collide.
        """
        attempts = max(1, retries if retries is not None else self.max_retries)
        last_conflict: VersionConflictError | None = None

        for attempt in range(1, attempts + 1):
            found = self.get_versioned(collection, doc_id)
            if found is None:
                raise DocumentNotFoundError(collection, doc_id)

            changes = fn(copy.deepcopy(found.doc))
            if not changes:
                return found.doc

            try:
                return self.update(collection, doc_id, changes, expected_version=found.version)
            except VersionConflictError as exc:
                last_conflict = exc
                logger.debug(
                    "store.mutate.conflict collection=%s id=%s attempt=%s",
                    collection,
                    doc_id,
                    attempt,
                )

        assert last_conflict is not None
        raise last_conflict
