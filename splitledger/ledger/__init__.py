"""Pure ledger arithmetic: balances, debt simplification, split helpers, budgets."""

from splitledger.ledger.balances import calculate_balances, is_settled, total_owed
from splitledger.ledger.budget import budget_status
from splitledger.ledger.simplifier import simplify_debts
from splitledger.ledger.splits import equal_split, percentage_split

__all__ = [
    "budget_status",
    "calculate_balances",
    "equal_split",
    "is_settled",
    "percentage_split",
    "simplify_debts",
    "total_owed",
]
