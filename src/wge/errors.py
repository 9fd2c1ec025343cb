"""Error types raised by the engine."""

from __future__ import annotations


class InvalidInputError(ValueError):
    """Caller supplied data that cannot be processed; nothing was mutated."""


class InvalidTransitionError(ValueError):
    """A lifecycle move that is not allowed from the current state."""


class StoreError(RuntimeError):
    """Document store failure."""


class DocumentNotFoundError(StoreError):
    """Requested document does not exist."""

    def __init__(self, collection: str, doc_id: str) -> None:
        super().__init__(f"{collection}/{doc_id} not found")
        self.collection = collection
        self.doc_id = doc_id


class VersionConflictError(StoreError):
    """Conditional write lost against a concurrent writer."""

    def __init__(self, collection: str, doc_id: str, expected: int, actual: int | None) -> None:
        super().__init__(
            f"{collection}/{doc_id} version conflict (expected {expected}, found {actual})"
        )
        self.collection = collection
        self.doc_id = doc_id
        self.expected = expected
        self.actual = actual
