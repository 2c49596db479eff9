"""
Debt Simplifier

Turns net balances into a short list of suggested payments that
settles the whole group when executed.

Algorithm (greedy, two pointers):
1. Creditors: balance > zero_band. Debtors: balance < -zero_band,
   tracked as the positive amount owed. Members inside the band are ignored.
2. Sort both lists by amount, largest first.
3. Match the current largest debtor with the current largest creditor,
   transfer min(owed, due), and advance past whichever side is now ~0.
   Transfers that are themselves inside the band are not suggested.

The result has at most (#creditors + #debtors - 1) payments. It is not
guaranteed to be the global minimum, which would need subset search.
"""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel

from splitledger.models.group import SuggestedPayment, to_money


class _Party(BaseModel):
    """A creditor or debtor with the amount still to move."""

    member_id: str
    name: str
    amount: Decimal


def simplify_debts(
    balances: dict[str, Decimal],
    names: Optional[dict[str, str]] = None,
    zero_band: Decimal = Decimal("0.01"),
) -> list[SuggestedPayment]:
    """Greedy settlement plan for a balance mapping."""
    names = names or {}
    creditors: list[_Party] = []
    debtors: list[_Party] = []

    for member_id, balance in balances.items():
        name = names.get(member_id, "Unknown")
        if balance > zero_band:
            creditors.append(_Party(member_id=member_id, name=name, amount=balance))
        elif balance < -zero_band:
            debtors.append(_Party(member_id=member_id, name=name, amount=-balance))

    # Stable sorts keep input order among equal amounts
    creditors.sort(key=lambda p: p.amount, reverse=True)
    debtors.sort(key=lambda p: p.amount, reverse=True)

    payments: list[SuggestedPayment] = []
    i = j = 0
    while i < len(creditors) and j < len(debtors):
        creditor = creditors[i]
        debtor = debtors[j]
        amount = min(creditor.amount, debtor.amount)

        if amount > zero_band:
            payments.append(SuggestedPayment(
                from_member_id=debtor.member_id,
                from_name=debtor.name,
                to_member_id=creditor.member_id,
                to_name=creditor.name,
                amount=to_money(amount),
            ))

        creditor.amount -= amount
        debtor.amount -= amount

        if creditor.amount < zero_band:
            i += 1
        if debtor.amount < zero_band:
            j += 1

    return payments
