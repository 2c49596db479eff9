"""
Storage Services Package

Provides the abstract document store interface and concrete implementations.
In-memory and Google Sheets backends ship today; the interface is designed
to be swappable.
"""

from splitledger.services.storage.interface import (
    DocumentStore,
    DuplicateDocumentError,
    Filter,
    NotFoundError,
    StorageError,
    StoreConnectionError,
    matches_filters,
)
from splitledger.services.storage.memory import InMemoryDocumentStore
from splitledger.services.storage.google_sheets import (
    GoogleSheetsClient,
    GoogleSheetsDocumentStore,
)

__all__ = [
    # Interface
    "DocumentStore",
    "Filter",
    "matches_filters",
    # Exceptions
    "DuplicateDocumentError",
    "NotFoundError",
    "StorageError",
    "StoreConnectionError",
    # Implementations
    "GoogleSheetsClient",
    "GoogleSheetsDocumentStore",
    "InMemoryDocumentStore",
]
