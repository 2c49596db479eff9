"""
Abstract Document Store Interface

DESIGN DECISION: The ledger talks to storage through a small keyed
document interface. This allows us to:
1. Swap Google Sheets for Firestore or a real database later
2. Use in-memory storage for testing
3. Keep business logic decoupled from storage implementation

The interface is intentionally simple - we're not building an ORM.
Documents are plain JSON-safe dicts; typed conversion happens one
layer up (see splitledger.services.repository).

NOTE: No transaction primitive is offered. Callers that touch more
than one document accept non-atomic, eventually-consistent writes.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional


Filter = tuple[str, Any]


class DocumentStore(ABC):
    """
    Abstract interface for keyed document storage.

    Any storage implementation (Google Sheets, Firestore, etc.)
    must implement these methods.
    """

    @abstractmethod
    async def create_doc(self, collection: str, data: dict) -> str:
        """
        Insert a document under a store-generated id.

        Args:
            collection: Collection name
            data: Document body

        Returns:
            The new document id

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def get_doc(self, collection: str, doc_id: str) -> Optional[dict]:
        """
        Retrieve a document by id.

        Returns:
            The document (including its "id" key) if found, None otherwise
        """
        pass

    @abstractmethod
    async def set_doc(self, collection: str, doc_id: str, data: dict) -> None:
        """
        Create or fully replace a document under a caller-chosen id.

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def update_doc(self, collection: str, doc_id: str, partial: dict) -> None:
        """
        Merge fields into an existing document.

        Raises:
            NotFoundError: If the document doesn't exist
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def delete_doc(self, collection: str, doc_id: str) -> bool:
        """
        Delete a document by id.

        Returns:
            True if a document was deleted, False if it didn't exist
        """
        pass

    @abstractmethod
    async def query_docs(
        self,
        collection: str,
        filters: Optional[list[Filter]] = None,
    ) -> list[dict]:
        """
        List documents matching every (field, value) equality filter.

        Args:
            collection: Collection name
            filters: Equality filters; None or [] returns the whole collection

        Returns:
            Matching documents in no particular order
        """
        pass


def matches_filters(doc: dict, filters: Optional[list[Filter]]) -> bool:
    """True when the document satisfies every equality filter."""
    return all(doc.get(field) == value for field, value in (filters or []))


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Document not found in storage."""
    pass


class DuplicateDocumentError(StorageError):
    """Attempted to insert a duplicate document."""
    pass


class StoreConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
