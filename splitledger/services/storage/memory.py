"""
In-Memory Document Store

Process-local implementation of the DocumentStore interface.
Used by the test suite and for local experiments; nothing survives
a restart.

Documents are deep-copied on the way in and out so callers can never
mutate stored state by accident.
"""

import copy
from typing import Optional
from uuid import uuid4

from splitledger.services.storage.interface import (
    DocumentStore,
    Filter,
    NotFoundError,
    matches_filters,
)


class InMemoryDocumentStore(DocumentStore):
    """Dict-of-dicts document store."""

    def __init__(self):
        self._collections: dict[str, dict[str, dict]] = {}

    def _collection(self, name: str) -> dict[str, dict]:
        return self._collections.setdefault(name, {})

    async def create_doc(self, collection: str, data: dict) -> str:
        doc_id = uuid4().hex
        await self.set_doc(collection, doc_id, data)
        return doc_id

    async def get_doc(self, collection: str, doc_id: str) -> Optional[dict]:
        doc = self._collection(collection).get(doc_id)
        if doc is None:
            return None
        return {**copy.deepcopy(doc), "id": doc_id}

    async def set_doc(self, collection: str, doc_id: str, data: dict) -> None:
        self._collection(collection)[doc_id] = copy.deepcopy(data)

    async def update_doc(self, collection: str, doc_id: str, partial: dict) -> None:
        docs = self._collection(collection)
        if doc_id not in docs:
            raise NotFoundError(f"{collection}/{doc_id} not found")
        docs[doc_id].update(copy.deepcopy(partial))

    async def delete_doc(self, collection: str, doc_id: str) -> bool:
        return self._collection(collection).pop(doc_id, None) is not None

    async def query_docs(
        self,
        collection: str,
        filters: Optional[list[Filter]] = None,
    ) -> list[dict]:
        return [
            {**copy.deepcopy(doc), "id": doc_id}
            for doc_id, doc in self._collection(collection).items()
            if matches_filters({**doc, "id": doc_id}, filters)
        ]

    def count(self, collection: str) -> int:
        """Number of documents in a collection."""
        return len(self._collection(collection))
