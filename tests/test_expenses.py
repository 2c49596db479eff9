"""Tests for the Expense Ledger and Settlement Ledger."""

from datetime import datetime
from decimal import Decimal

import pytest

from splitledger.errors import ErrorKind
from splitledger.ledger import equal_split
from splitledger.models.group import (
    ExpenseFilters,
    NewExpense,
    NewMember,
    NewSettlement,
    NewSplit,
    SplitType,
    linked_member_id,
)
from tests.support import ALICE, CAROL, run


@pytest.fixture
def roster(membership, group):
    """Alice (creator), Carol (linked) and Bob (placeholder)."""
    carol = run(membership.add_member(
        group.id, NewMember(name="Carol", email="carol@example.com"), ALICE
    )).unwrap()
    bob = run(membership.add_member(group.id, NewMember(name="Bob"), ALICE)).unwrap()
    return {"alice": linked_member_id(group.id, "alice"), "carol": carol.id, "bob": bob.id}


def _dinner(roster, amount="90", **overrides):
    fields = dict(
        amount=Decimal(amount),
        description="Dinner",
        paid_by=roster["alice"],
        splits=equal_split(Decimal(amount), list(roster.values())),
    )
    fields.update(overrides)
    return NewExpense(**fields)


class TestAddExpense:

    def test_expense_recorded_and_total_updated(self, ledger, group, roster):
        expense = run(ledger.expenses.add_expense(group.id, _dinner(roster), ALICE)).unwrap()
        assert expense.amount == Decimal("90.00")
        assert expense.added_by == "alice"
        assert expense.category == "Other"
        assert len(expense.splits) == 3

        stored = run(ledger.membership.get_group(group.id)).unwrap()
        assert stored.total_expenses == Decimal("90.00")

    def test_running_total_accumulates(self, ledger, group, roster):
        run(ledger.expenses.add_expense(group.id, _dinner(roster, "90"), ALICE)).unwrap()
        run(ledger.expenses.add_expense(group.id, _dinner(roster, "10.50"), CAROL)).unwrap()
        stored = run(ledger.membership.get_group(group.id)).unwrap()
        assert stored.total_expenses == Decimal("100.50")

    def test_split_sum_boundaries(self, ledger, group, roster):
        """100.00 and 100.01 accepted; 99.50 and 100.50 rejected."""
        def attempt(last_share):
            splits = [
                NewSplit(member_id=roster["alice"], amount=Decimal("50.00")),
                NewSplit(member_id=roster["bob"], amount=Decimal(last_share)),
            ]
            new_expense = _dinner(roster, "100.00", splits=splits, split_type=SplitType.CUSTOM)
            return run(ledger.expenses.add_expense(group.id, new_expense, ALICE))

        assert attempt("50.00").ok
        assert attempt("50.01").ok
        assert attempt("49.50").error.kind == ErrorKind.VALIDATION
        assert attempt("50.50").error.kind == ErrorKind.VALIDATION

    def test_sub_cent_amounts_rounded_before_validation(self, ledger, group, roster):
        new_expense = _dinner(roster, "10.004", splits=[
            NewSplit(member_id=roster["alice"], amount=Decimal("5.002")),
            NewSplit(member_id=roster["bob"], amount=Decimal("5.002")),
        ])
        expense = run(ledger.expenses.add_expense(group.id, new_expense, ALICE)).unwrap()
        assert expense.amount == Decimal("10.00")

    def test_non_member_rejected(self, ledger, group, roster, identity):
        outsider = identity.register(
            ALICE.model_copy(update={"id": "mallory", "email": "mallory@example.com"})
        )
        result = run(ledger.expenses.add_expense(group.id, _dinner(roster), outsider))
        assert result.error.kind == ErrorKind.PERMISSION
        assert result.error.message == "Only group members can add expenses"

    def test_archived_group_rejected(self, ledger, group, roster):
        run(ledger.membership.archive_group(group.id, ALICE)).unwrap()
        result = run(ledger.expenses.add_expense(group.id, _dinner(roster), ALICE))
        assert result.error.kind == ErrorKind.STATE

    def test_payer_must_be_on_roster(self, ledger, group, roster):
        new_expense = _dinner(roster, paid_by=f"{group.id}_stranger")
        result = run(ledger.expenses.add_expense(group.id, new_expense, ALICE))
        assert result.error.kind == ErrorKind.NOT_FOUND

    def test_rejected_expense_writes_nothing(self, ledger, group, roster):
        run(ledger.expenses.add_expense(group.id, _dinner(roster, amount="0"), ALICE))
        assert run(ledger.expenses.get_group_expenses(group.id)).unwrap() == []
        assert run(ledger.membership.get_group(group.id)).unwrap().total_expenses == Decimal("0")


class TestListExpenses:

    def _seed(self, ledger, group, roster):
        entries = [
            ("Rent", datetime(2024, 11, 1), roster["alice"], [roster["alice"], roster["carol"]]),
            ("Groceries", datetime(2024, 11, 15), roster["carol"], [roster["carol"], roster["bob"]]),
            ("Groceries", datetime(2024, 12, 2), roster["alice"], [roster["alice"], roster["bob"]]),
        ]
        for category, date, payer, participants in entries:
            run(ledger.expenses.add_expense(group.id, NewExpense(
                amount=Decimal("40"),
                description=category,
                category=category,
                date=date,
                paid_by=payer,
                splits=equal_split(Decimal("40"), participants),
            ), ALICE)).unwrap()

    def test_newest_first(self, ledger, group, roster):
        self._seed(ledger, group, roster)
        expenses = run(ledger.expenses.get_group_expenses(group.id)).unwrap()
        assert [e.date.day for e in expenses] == [2, 15, 1]

    def test_filter_by_category(self, ledger, group, roster):
        self._seed(ledger, group, roster)
        filters = ExpenseFilters(category="Groceries")
        assert len(run(ledger.expenses.get_group_expenses(group.id, filters)).unwrap()) == 2

    def test_filter_by_member_matches_payer_or_split(self, ledger, group, roster):
        self._seed(ledger, group, roster)
        filters = ExpenseFilters(member_id=roster["carol"])
        expenses = run(ledger.expenses.get_group_expenses(group.id, filters)).unwrap()
        assert sorted(e.date.month * 100 + e.date.day for e in expenses) == [1101, 1115]

    def test_filter_by_date_range_inclusive(self, ledger, group, roster):
        self._seed(ledger, group, roster)
        filters = ExpenseFilters(start_date=datetime(2024, 11, 15), end_date=datetime(2024, 12, 2))
        assert len(run(ledger.expenses.get_group_expenses(group.id, filters)).unwrap()) == 2


class TestSettlements:

    def test_settlement_recorded(self, ledger, group, roster):
        settlement = run(ledger.settlements.add_settlement(group.id, NewSettlement(
            from_member_id=roster["bob"],
            to_member_id=roster["alice"],
            amount=Decimal("30"),
            notes="UPI",
        ), ALICE)).unwrap()
        assert settlement.amount == Decimal("30.00")
        assert settlement.added_by == "alice"

        listed = run(ledger.settlements.get_settlements(group.id)).unwrap()
        assert [s.id for s in listed] == [settlement.id]

    def test_self_settlement_rejected(self, ledger, group, roster):
        result = run(ledger.settlements.add_settlement(group.id, NewSettlement(
            from_member_id=roster["bob"],
            to_member_id=roster["bob"],
            amount=Decimal("30"),
        ), ALICE))
        assert result.error.kind == ErrorKind.VALIDATION
        assert result.error.message == "Cannot settle with yourself"

    def test_non_positive_amount_rejected(self, ledger, group, roster):
        result = run(ledger.settlements.add_settlement(group.id, NewSettlement(
            from_member_id=roster["bob"],
            to_member_id=roster["alice"],
            amount=Decimal("0"),
        ), ALICE))
        assert result.error.kind == ErrorKind.VALIDATION

    def test_settlement_does_not_touch_group_total(self, ledger, group, roster):
        run(ledger.settlements.add_settlement(group.id, NewSettlement(
            from_member_id=roster["bob"],
            to_member_id=roster["alice"],
            amount=Decimal("30"),
        ), ALICE)).unwrap()
        assert run(ledger.membership.get_group(group.id)).unwrap().total_expenses == Decimal("0")

    def test_history_joins_names(self, ledger, group, roster):
        run(ledger.settlements.add_settlement(group.id, NewSettlement(
            from_member_id=roster["bob"],
            to_member_id=roster["alice"],
            amount=Decimal("30"),
        ), ALICE)).unwrap()
        run(ledger.membership.remove_member(group.id, roster["bob"], ALICE))

        history = run(ledger.settlements.get_settlement_history(group.id)).unwrap()
        assert history[0].to_name == "Alice"
        # Bob still has a balance (+30 from the settlement), so he was not removed
        assert history[0].from_name == "Bob"
