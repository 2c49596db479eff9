"""
Budget Tracking

Measures a group's spending against its budget. Pure: the caller
supplies the budget and the expenses.

Thresholds (as a percent of the limit spent):
    >= 100              -> overspend
    >= warning_percent  -> warning

The same thresholds apply to the overall total and to each category
that has its own limit. A limit of zero means "no limit" and never warns.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional

from splitledger.ledger.balances import ZERO
from splitledger.models.group import (
    Budget,
    BudgetStatus,
    BudgetWarning,
    BudgetWarningKind,
    Expense,
    to_money,
)


HUNDRED = Decimal("100")


def _percent(spent: Decimal, limit: Decimal) -> Decimal:
    return spent / limit * HUNDRED if limit > 0 else ZERO


def _whole(percent: Decimal) -> Decimal:
    return percent.quantize(Decimal("1"), rounding=ROUND_HALF_UP)


def budget_status(
    budget: Optional[Budget],
    expenses: Iterable[Expense],
    warning_percent: Decimal = Decimal("80"),
    currency_symbol: str = "₹",
) -> BudgetStatus:
    """Spent, remaining and progress against the budget, with any warnings."""
    budget = budget or Budget()

    spent = ZERO
    by_category: dict[str, Decimal] = {}
    for expense in expenses:
        spent += expense.amount
        by_category[expense.category] = by_category.get(expense.category, ZERO) + expense.amount

    progress = _percent(spent, budget.total)
    remaining = budget.total - spent

    warnings: list[BudgetWarning] = []
    if budget.total > 0:
        if progress >= HUNDRED:
            warnings.append(BudgetWarning(
                kind=BudgetWarningKind.OVERSPEND,
                message=f"Budget exceeded by {currency_symbol}{to_money(abs(remaining))}",
                amount=to_money(abs(remaining)),
            ))
        elif progress >= warning_percent:
            warnings.append(BudgetWarning(
                kind=BudgetWarningKind.WARNING,
                message=f"{_whole(progress)}% of budget used",
                amount=to_money(remaining),
            ))

    for category, limit in budget.categories.items():
        if limit <= 0:
            continue
        category_spent = by_category.get(category, ZERO)
        category_progress = _percent(category_spent, limit)
        if category_progress >= HUNDRED:
            warnings.append(BudgetWarning(
                kind=BudgetWarningKind.CATEGORY_OVERSPEND,
                category=category,
                message=f"{category} budget exceeded",
                amount=to_money(category_spent - limit),
            ))
        elif category_progress >= warning_percent:
            warnings.append(BudgetWarning(
                kind=BudgetWarningKind.CATEGORY_WARNING,
                category=category,
                message=f"{category}: {_whole(category_progress)}% used",
                amount=to_money(limit - category_spent),
            ))

    return BudgetStatus(
        budget=to_money(budget.total),
        spent=to_money(spent),
        remaining=to_money(remaining),
        progress=progress.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP),
        spent_by_category={k: to_money(v) for k, v in by_category.items()},
        category_budgets=dict(budget.categories),
        warnings=warnings,
    )
