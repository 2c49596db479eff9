"""
Group Ledger Repository

The only place where raw store documents become typed models and back.

DESIGN DECISION: Business logic never sees a dict from the store.
Every read is validated into a pydantic model here; every write is
dumped from a model here. A malformed document fails loudly at this
boundary instead of producing a wrong balance three layers up.

Ordering (date descending) is applied here because the document store
contract has no ordering primitive.
"""

from typing import Any, Optional

import structlog
from pydantic_core import to_jsonable_python

from splitledger.config import LedgerSettings
from splitledger.models.group import (
    Expense,
    Group,
    Member,
    Settlement,
)
from splitledger.services.encryption import EncryptionService
from splitledger.services.storage import DocumentStore


# Temporary id used while a record is validated before the store assigns one
NEW_ID = "__new__"


class GroupRepository:
    """
    Typed access to the four ledger collections.

    Args:
        store: Document store backend
        settings: Ledger settings (collection names)
        encryption: Encrypts member phone numbers at rest.
                    If None, phone numbers are stored as given.
    """

    def __init__(
        self,
        store: DocumentStore,
        settings: LedgerSettings,
        encryption: Optional[EncryptionService] = None,
    ):
        self._store = store
        self._settings = settings
        self._encryption = encryption
        self._logger = structlog.get_logger(__name__)

    @property
    def store(self) -> DocumentStore:
        return self._store

    @staticmethod
    def _dump(model) -> dict:
        return model.model_dump(mode="json", exclude={"id"})

    # =========================================================================
    # GROUPS
    # =========================================================================

    async def insert_group(self, fields: dict[str, Any]) -> Group:
        group = Group.model_validate({**fields, "id": NEW_ID})
        doc_id = await self._store.create_doc(
            self._settings.groups_collection, self._dump(group)
        )
        return group.model_copy(update={"id": doc_id})

    async def get_group(self, group_id: str) -> Optional[Group]:
        doc = await self._store.get_doc(self._settings.groups_collection, group_id)
        return Group.model_validate(doc) if doc else None

    async def update_group(self, group_id: str, fields: dict[str, Any]) -> None:
        """Merge already-validated fields into a group document."""
        partial = to_jsonable_python(fields)
        await self._store.update_doc(self._settings.groups_collection, group_id, partial)

    # =========================================================================
    # MEMBERS
    # =========================================================================

    def _member_to_doc(self, member: Member) -> dict:
        doc = self._dump(member)
        if member.phone and self._encryption:
            doc["phone"] = self._encryption.encrypt_value(member.phone)
        return doc

    def _doc_to_member(self, doc: dict) -> Member:
        phone = doc.get("phone")
        if phone and isinstance(phone, str) and self._encryption:
            try:
                doc = {**doc, "phone": self._encryption.decrypt_value(phone)}
            except ValueError:
                # Not encrypted, or encrypted with another key: pass through
                self._logger.debug("member_phone_not_decrypted", member_id=doc.get("id"))
        return Member.model_validate(doc)

    async def save_member(self, member: Member) -> None:
        await self._store.set_doc(
            self._settings.members_collection, member.id, self._member_to_doc(member)
        )

    async def get_member(self, member_id: str) -> Optional[Member]:
        doc = await self._store.get_doc(self._settings.members_collection, member_id)
        return self._doc_to_member(doc) if doc else None

    async def member_exists(self, member_id: str) -> bool:
        doc = await self._store.get_doc(self._settings.members_collection, member_id)
        return doc is not None

    async def delete_member(self, member_id: str) -> bool:
        return await self._store.delete_doc(self._settings.members_collection, member_id)

    async def list_members(self, group_id: str) -> list[Member]:
        docs = await self._store.query_docs(
            self._settings.members_collection, [("group_id", group_id)]
        )
        members = [self._doc_to_member(doc) for doc in docs]
        members.sort(key=lambda m: m.joined_at)
        return members

    async def list_memberships(self, user_id: str) -> list[Member]:
        """All member records linked to a principal, across groups."""
        docs = await self._store.query_docs(
            self._settings.members_collection, [("user_id", user_id)]
        )
        return [self._doc_to_member(doc) for doc in docs]

    # =========================================================================
    # EXPENSES
    # =========================================================================

    async def insert_expense(self, fields: dict[str, Any]) -> Expense:
        expense = Expense.model_validate({**fields, "id": NEW_ID})
        doc_id = await self._store.create_doc(
            self._settings.expenses_collection, self._dump(expense)
        )
        return expense.model_copy(update={"id": doc_id})

    async def list_expenses(self, group_id: str) -> list[Expense]:
        docs = await self._store.query_docs(
            self._settings.expenses_collection, [("group_id", group_id)]
        )
        expenses = [Expense.model_validate(doc) for doc in docs]
        expenses.sort(key=lambda e: e.date, reverse=True)
        return expenses

    # =========================================================================
    # SETTLEMENTS
    # =========================================================================

    async def insert_settlement(self, fields: dict[str, Any]) -> Settlement:
        settlement = Settlement.model_validate({**fields, "id": NEW_ID})
        doc_id = await self._store.create_doc(
            self._settings.settlements_collection, self._dump(settlement)
        )
        return settlement.model_copy(update={"id": doc_id})

    async def list_settlements(self, group_id: str) -> list[Settlement]:
        docs = await self._store.query_docs(
            self._settings.settlements_collection, [("group_id", group_id)]
        )
        settlements = [Settlement.model_validate(doc) for doc in docs]
        settlements.sort(key=lambda s: s.date, reverse=True)
        return settlements
