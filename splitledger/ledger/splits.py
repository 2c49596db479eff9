"""
Split helpers.

Build the split list for an expense so that it always sums exactly to
the expense amount: leftover cents from rounding go to the first members.
"""

from decimal import ROUND_DOWN, Decimal

from splitledger.errors import InvalidInputError
from splitledger.models.group import CENT, NewSplit, to_money


def equal_split(amount, member_ids: list[str]) -> list[NewSplit]:
    """Divide amount equally between members, cent-exact."""
    if not member_ids:
        raise InvalidInputError("At least one split participant is required")

    total = to_money(amount)
    share = (total / len(member_ids)).quantize(CENT, rounding=ROUND_DOWN)
    remainder_cents = int((total - share * len(member_ids)) / CENT)

    return [
        NewSplit(
            member_id=member_id,
            amount=share + (CENT if index < remainder_cents else Decimal("0")),
        )
        for index, member_id in enumerate(member_ids)
    ]


def percentage_split(amount, percentages: dict[str, Decimal]) -> list[NewSplit]:
    """Divide amount by percentage per member (percentages must total 100)."""
    if not percentages:
        raise InvalidInputError("At least one split participant is required")

    total_pct = sum((Decimal(str(p)) for p in percentages.values()), Decimal("0"))
    if total_pct != Decimal("100"):
        raise InvalidInputError(f"Percentages must add up to 100, got {total_pct}")

    total = to_money(amount)
    splits = [
        NewSplit(
            member_id=member_id,
            amount=(total * Decimal(str(pct)) / 100).quantize(CENT, rounding=ROUND_DOWN),
            percentage=Decimal(str(pct)),
        )
        for member_id, pct in percentages.items()
    ]

    remainder_cents = int((total - sum(s.amount for s in splits)) / CENT)
    for split in splits[:remainder_cents]:
        split.amount += CENT

    return splits
