"""
Expense Ledger

Records shared expenses and lists them. Expenses are append-only:
there is no edit or delete, so balances can always be re-derived from
the full history.

Flow for add_expense:
1. Caller must be a group member (may accept a pending invitation)
2. Group must exist and be active
3. Amounts rounded to cents, then validated (split sum within tolerance)
4. Payer and split participants must be on the roster
5. Expense written, then the group's running total bumped

The running total (Group.total_expenses) is a denormalized counter.
If bumping it fails the expense is still recorded; the failure is logged.
"""

from typing import Optional

import structlog

from splitledger.audit import AuditLogger
from splitledger.config import LedgerSettings
from splitledger.errors import PermissionDeniedError
from splitledger.models.group import (
    Expense,
    ExpenseFilters,
    NewExpense,
    Principal,
    to_money,
    utc_now,
)
from splitledger.services.membership import MembershipManager
from splitledger.services.operations import ledger_operation
from splitledger.services.repository import GroupRepository
from splitledger.services.storage import StorageError
from splitledger.validation import LedgerValidator


class ExpenseLedger:
    """Append-only expense records for a group."""

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

    @staticmethod
    def _rounded(new_expense: NewExpense) -> NewExpense:
        """Round the amount and every share to cents before validation."""
        return new_expense.model_copy(update={
            "amount": to_money(new_expense.amount),
            "splits": [
                split.model_copy(update={"amount": to_money(split.amount)})
                for split in new_expense.splits
            ],
        })

    @ledger_operation("add_expense")
    async def add_expense(
        self,
        group_id: str,
        new_expense: NewExpense,
        principal: Principal,
    ) -> Expense:
        if not await self._membership.check_member(group_id, principal):
            raise PermissionDeniedError("Only group members can add expenses")

        group = await self._membership.require_group(group_id)
        self._membership.require_active(group, "Cannot add expenses to archived groups")

        new_expense = self._rounded(new_expense)
        validation = self._validator.validate_expense(new_expense)
        validation.raise_for_errors()
        for warning in validation.warnings:
            self._logger.info("expense_validation_warning", group_id=group_id, warning=warning)

        participants = [new_expense.paid_by] + [s.member_id for s in new_expense.splits]
        await self._membership.require_roster_members(
            group_id, list(dict.fromkeys(participants))
        )

        now = utc_now()
        expense = await self._repo.insert_expense({
            "group_id": group_id,
            "description": new_expense.description,
            "amount": new_expense.amount,
            "category": new_expense.category or "Other",
            "date": new_expense.date or now,
            "paid_by": new_expense.paid_by,
            "split_type": new_expense.split_type,
            "splits": [
                {"member_id": s.member_id, "amount": s.amount, "percentage": s.percentage}
                for s in new_expense.splits
            ],
            "added_by": principal.id,
            "created_at": now,
        })

        try:
            await self._repo.update_group(group_id, {
                "total_expenses": to_money(group.total_expenses + expense.amount),
                "updated_at": now,
            })
        except StorageError as e:
            self._logger.error(
                "group_total_update_failed",
                group_id=group_id,
                expense_id=expense.id,
                error=str(e),
            )

        if self._audit_logger:
            await self._audit_logger.log_expense_added(
                group_id=group_id,
                expense_id=expense.id,
                amount=str(expense.amount),
                paid_by=expense.paid_by,
                actor_id=principal.id,
            )

        return expense

    @ledger_operation("get_group_expenses")
    async def get_group_expenses(
        self,
        group_id: str,
        filters: Optional[ExpenseFilters] = None,
    ) -> list[Expense]:
        """Expenses for a group, newest first, optionally filtered."""
        expenses = await self._repo.list_expenses(group_id)
        if filters is None:
            return expenses
        return [e for e in expenses if self._matches(e, filters)]

    @staticmethod
    def _matches(expense: Expense, filters: ExpenseFilters) -> bool:
        if filters.category and expense.category != filters.category:
            return False
        if filters.member_id:
            in_split = any(s.member_id == filters.member_id for s in expense.splits)
            if expense.paid_by != filters.member_id and not in_split:
                return False
        if filters.start_date and expense.date < filters.start_date:
            return False
        if filters.end_date and expense.date > filters.end_date:
            return False
        return True
