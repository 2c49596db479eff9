"""
Data Models Package

This package contains all Pydantic models used by the group ledger.
All data crossing the store boundary must conform to these schemas.
"""

from splitledger.models.group import (
    CENT,
    Budget,
    BudgetStatus,
    BudgetWarning,
    BudgetWarningKind,
    Expense,
    ExpenseFilters,
    Group,
    GroupDetails,
    GroupStatus,
    InviteStatus,
    Member,
    NewBudget,
    NewExpense,
    NewMember,
    NewSettlement,
    NewSplit,
    Principal,
    Settlement,
    SettlementRecord,
    SettlementSummary,
    Split,
    SplitType,
    SuggestedPayment,
    as_utc,
    linked_member_id,
    placeholder_member_id,
    to_money,
    utc_now,
)
from splitledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from splitledger.models.result import LedgerFailure, Result

__all__ = [
    # Group ledger models
    "CENT",
    "Budget",
    "BudgetStatus",
    "BudgetWarning",
    "BudgetWarningKind",
    "Expense",
    "ExpenseFilters",
    "Group",
    "GroupDetails",
    "GroupStatus",
    "InviteStatus",
    "Member",
    "NewBudget",
    "NewExpense",
    "NewMember",
    "NewSettlement",
    "NewSplit",
    "Principal",
    "Settlement",
    "SettlementRecord",
    "SettlementSummary",
    "Split",
    "SplitType",
    "SuggestedPayment",
    "as_utc",
    "linked_member_id",
    "placeholder_member_id",
    "to_money",
    "utc_now",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
    # Results
    "LedgerFailure",
    "Result",
]
