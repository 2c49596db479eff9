"""
Balance and Settlement Views

Read-only views over a group's ledger: per-member balances, suggested
payments, summary, reminders and budget status.

DESIGN DECISION: These views never fail. A page showing balances
should still render when the store hiccups, so store failures are
logged and an empty/default value is returned:

    calculate_balances      -> {}
    get_member_balance      -> 0
    is_fully_settled        -> False
    simplify_debts          -> []
    get_settlement_summary  -> None
    settlement_reminders    -> []
    get_budget_status       -> None

Everything is re-derived from the full expense and settlement history
on each call. Members, expenses and settlements are loaded concurrently.
"""

import asyncio
from decimal import Decimal
from typing import Optional

import structlog

from splitledger.config import LedgerSettings
from splitledger.ledger.balances import ZERO, calculate_balances, is_settled, total_owed
from splitledger.ledger.budget import budget_status
from splitledger.ledger.simplifier import simplify_debts
from splitledger.models.group import (
    BudgetStatus,
    Expense,
    Member,
    Settlement,
    SettlementSummary,
    SuggestedPayment,
    to_money,
)
from splitledger.services.repository import GroupRepository
from splitledger.services.storage import StorageError


class BalanceService:
    """Derived balance views for a group."""

    def __init__(self, repository: GroupRepository, settings: Optional[LedgerSettings] = None):
        self._repo = repository
        self._settings = settings or LedgerSettings()
        self._logger = structlog.get_logger(__name__)

    async def _load(self, group_id: str) -> tuple[list[Member], list[Expense], list[Settlement]]:
        members, expenses, settlements = await asyncio.gather(
            self._repo.list_members(group_id),
            self._repo.list_expenses(group_id),
            self._repo.list_settlements(group_id),
        )
        return members, expenses, settlements

    async def calculate_balances(self, group_id: str) -> dict[str, Decimal]:
        """
        Net balance per member id.

        Positive: the group owes them. Negative: they owe the group.
        """
        try:
            members, expenses, settlements = await self._load(group_id)
        except StorageError as e:
            self._logger.error("balance_calculation_failed", group_id=group_id, error=str(e))
            return {}
        return calculate_balances(members, expenses, settlements)

    async def get_member_balance(self, group_id: str, member_id: str) -> Decimal:
        balances = await self.calculate_balances(group_id)
        return balances.get(member_id, ZERO)

    async def is_fully_settled(self, group_id: str) -> bool:
        try:
            members, expenses, settlements = await self._load(group_id)
        except StorageError as e:
            self._logger.error("settled_check_failed", group_id=group_id, error=str(e))
            return False
        balances = calculate_balances(members, expenses, settlements)
        return is_settled(balances, self._settings.zero_band)

    async def simplify_debts(self, group_id: str) -> list[SuggestedPayment]:
        """Suggested payments that would settle the whole group."""
        try:
            members, expenses, settlements = await self._load(group_id)
        except StorageError as e:
            self._logger.error("debt_simplification_failed", group_id=group_id, error=str(e))
            return []
        return self._suggest(members, calculate_balances(members, expenses, settlements))

    def _suggest(self, members: list[Member], balances: dict[str, Decimal]) -> list[SuggestedPayment]:
        names = {m.id: m.name for m in members}
        return simplify_debts(balances, names, self._settings.zero_band)

    async def get_settlement_summary(self, group_id: str) -> Optional[SettlementSummary]:
        try:
            members, expenses, settlements = await self._load(group_id)
        except StorageError as e:
            self._logger.error("settlement_summary_failed", group_id=group_id, error=str(e))
            return None

        balances = calculate_balances(members, expenses, settlements)
        band = self._settings.zero_band
        total_expenses = sum((e.amount for e in expenses), ZERO)
        roster_balances = [balances.get(m.id, ZERO) for m in members]
        settled = sum(1 for b in roster_balances if abs(b) < band)

        return SettlementSummary(
            total_expenses=to_money(total_expenses),
            total_settled=to_money(sum((s.amount for s in settlements), ZERO)),
            total_owed=to_money(total_owed(balances)),
            pending_payments=self._suggest(members, balances),
            settlement_count=len(settlements),
            member_count=len(members),
            settled_members=settled,
            unsettled_members=len(members) - settled,
            is_fully_settled=is_settled(balances, band),
            per_person_average=to_money(total_expenses / len(members)) if members else to_money(0),
        )

    async def settlement_reminders(self, group_id: str) -> list[str]:
        """One human-readable line per suggested payment."""
        symbol = self._settings.currency_symbol
        return [
            f"{p.from_name} owes {symbol}{p.amount} to {p.to_name}"
            for p in await self.simplify_debts(group_id)
        ]

    async def get_budget_status(self, group_id: str) -> Optional[BudgetStatus]:
        """Spending against the group's budget; None if the group is missing."""
        try:
            group, expenses = await asyncio.gather(
                self._repo.get_group(group_id),
                self._repo.list_expenses(group_id),
            )
        except StorageError as e:
            self._logger.error("budget_status_failed", group_id=group_id, error=str(e))
            return None
        if group is None:
            return None
        return budget_status(
            group.budget,
            expenses,
            self._settings.budget_warning_percent,
            self._settings.currency_symbol,
        )
