"""
Balance Calculator

Pure derivation of every member's net position from the full ledger
history. Nothing here touches the store.

Sign convention:
    positive  -> the group owes this member money
    negative  -> this member owes the group money

For every expense the payer is credited the full amount and each split
participant is debited their share. For every settlement the payer
("from") is credited and the receiver ("to") is debited. Both are
zero-sum, so for any self-consistent ledger the balances sum to zero.

NOTE: Ids referenced by an expense or settlement are accumulated even
when they are no longer on the member roster (e.g. a placeholder that
was re-keyed by invitation reconciliation). Dropping them would break
conservation and hide the stale reference.
"""

from decimal import Decimal
from typing import Iterable

from splitledger.models.group import Expense, Member, Settlement


ZERO = Decimal("0")


def calculate_balances(
    members: Iterable[Member],
    expenses: Iterable[Expense],
    settlements: Iterable[Settlement],
) -> dict[str, Decimal]:
    """Net balance per member id."""
    balances: dict[str, Decimal] = {member.id: ZERO for member in members}

    for expense in expenses:
        balances[expense.paid_by] = balances.get(expense.paid_by, ZERO) + expense.amount
        for split in expense.splits:
            balances[split.member_id] = balances.get(split.member_id, ZERO) - split.amount

    for settlement in settlements:
        balances[settlement.from_member_id] = (
            balances.get(settlement.from_member_id, ZERO) + settlement.amount
        )
        balances[settlement.to_member_id] = (
            balances.get(settlement.to_member_id, ZERO) - settlement.amount
        )

    return balances


def is_settled(balances: dict[str, Decimal], zero_band: Decimal = Decimal("0.01")) -> bool:
    """True when every balance is within the zero band."""
    return all(abs(balance) < zero_band for balance in balances.values())


def total_owed(balances: dict[str, Decimal]) -> Decimal:
    """Sum of all negative balances, as a positive amount."""
    return sum((-balance for balance in balances.values() if balance < 0), ZERO)
