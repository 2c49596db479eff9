"""
Services package.

Collaborator interfaces (document store, identity, encryption) are
exported here. The ledger services themselves live in their own modules
(membership, expenses, settlements, balances) and are wired together by
splitledger.orchestrator.
"""

from splitledger.services.encryption import EncryptionService, FernetEncryptionService
from splitledger.services.identity import IdentityProvider, InMemoryIdentityProvider
from splitledger.services.storage import (
    DocumentStore,
    DuplicateDocumentError,
    GoogleSheetsClient,
    GoogleSheetsDocumentStore,
    InMemoryDocumentStore,
    NotFoundError,
    StorageError,
    StoreConnectionError,
)

__all__ = [
    # Encryption
    "EncryptionService",
    "FernetEncryptionService",
    # Identity
    "IdentityProvider",
    "InMemoryIdentityProvider",
    # Storage
    "DocumentStore",
    "DuplicateDocumentError",
    "GoogleSheetsClient",
    "GoogleSheetsDocumentStore",
    "InMemoryDocumentStore",
    "NotFoundError",
    "StorageError",
    "StoreConnectionError",
]
