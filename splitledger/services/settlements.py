"""
Settlement Ledger

Records direct payments between two members. A settlement is a real
transfer of money outside the app; recording it moves both balances
toward zero. Like expenses, settlements are append-only.
"""

from typing import Optional

import structlog

from splitledger.audit import AuditLogger
from splitledger.config import LedgerSettings
from splitledger.errors import PermissionDeniedError
from splitledger.models.group import (
    NewSettlement,
    Principal,
    Settlement,
    SettlementRecord,
    to_money,
    utc_now,
)
from splitledger.services.membership import MembershipManager
from splitledger.services.operations import ledger_operation
from splitledger.services.repository import GroupRepository
from splitledger.validation import LedgerValidator


class SettlementLedger:
    """Append-only settlement records for a group."""

    def __init__(
        self,
        repository: GroupRepository,
        membership: MembershipManager,
        settings: Optional[LedgerSettings] = None,
        validator: Optional[LedgerValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._repo = repository
        self._membership = membership
        self._settings = settings or LedgerSettings()
        self._validator = validator or LedgerValidator(self._settings)
        self._audit_logger = audit_logger
        self._logger = structlog.get_logger(__name__)

    @ledger_operation("add_settlement")
    async def add_settlement(
        self,
        group_id: str,
        new_settlement: NewSettlement,
        principal: Principal,
    ) -> Settlement:
        """Record that from_member paid to_member."""
        if not await self._membership.check_member(group_id, principal):
            raise PermissionDeniedError("Only group members can record settlements")

        group = await self._membership.require_group(group_id)
        self._membership.require_active(group, "Cannot record settlements in archived groups")

        new_settlement = new_settlement.model_copy(
            update={"amount": to_money(new_settlement.amount)}
        )
        self._validator.validate_settlement(new_settlement).raise_for_errors()
        await self._membership.require_roster_members(
            group_id, [new_settlement.from_member_id, new_settlement.to_member_id]
        )

        now = utc_now()
        settlement = await self._repo.insert_settlement({
            "group_id": group_id,
            "from_member_id": new_settlement.from_member_id,
            "to_member_id": new_settlement.to_member_id,
            "amount": new_settlement.amount,
            "notes": new_settlement.notes or "",
            "date": new_settlement.date or now,
            "added_by": principal.id,
            "created_at": now,
        })

        if self._audit_logger:
            await self._audit_logger.log_settlement_recorded(
                group_id=group_id,
                settlement_id=settlement.id,
                from_member_id=settlement.from_member_id,
                to_member_id=settlement.to_member_id,
                amount=str(settlement.amount),
                actor_id=principal.id,
            )

        return settlement

    @ledger_operation("get_settlements")
    async def get_settlements(self, group_id: str) -> list[Settlement]:
        """Settlements for a group, newest first."""
        return await self._repo.list_settlements(group_id)

    @ledger_operation("get_settlement_history")
    async def get_settlement_history(self, group_id: str) -> list[SettlementRecord]:
        """
        Settlements joined with member names.

        Members that have since left (or were re-keyed by an accepted
        invitation) show as "Unknown".
        """
        settlements = await self._repo.list_settlements(group_id)
        members = await self._repo.list_members(group_id)
        names = {m.id: m.name for m in members}
        return [
            SettlementRecord(
                settlement=s,
                from_name=names.get(s.from_member_id, "Unknown"),
                to_name=names.get(s.to_member_id, "Unknown"),
            )
            for s in settlements
        ]
