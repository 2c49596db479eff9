"""
Tests for the Membership Manager.

Covers group lifecycle, roster changes, authorization and invitation
reconciliation against the in-memory store.
"""

from decimal import Decimal

from splitledger.errors import ErrorKind
from splitledger.models.group import (
    GroupDetails,
    GroupStatus,
    InviteStatus,
    NewBudget,
    NewExpense,
    NewMember,
    NewSplit,
    linked_member_id,
)
from tests.support import ALICE, BOB, CAROL, run


class TestCreateGroup:

    def test_creator_becomes_admin_member(self, membership, group):
        """Test the creator is the first, accepted, admin member."""
        assert group.member_count == 1
        assert group.total_expenses == Decimal("0")
        assert group.status == GroupStatus.ACTIVE
        assert "Groceries" in group.categories

        creator = run(membership.get_member(linked_member_id(group.id, "alice"))).unwrap()
        assert creator.is_admin is True
        assert creator.is_known_identity is True
        assert creator.invite_status == InviteStatus.ACCEPTED
        assert creator.name == "Alice"

    def test_blank_name_rejected(self, membership):
        result = run(membership.create_group("   ", None, ALICE))
        assert result.error.kind == ErrorKind.VALIDATION

    def test_custom_details(self, membership):
        details = GroupDetails(description="Monthly bills", address="12 MG Road", categories=["Rent"])
        group = run(membership.create_group("Flat", details, ALICE)).unwrap()
        assert group.address == "12 MG Road"
        assert group.categories == ["Rent"]

    def test_get_missing_group(self, membership):
        result = run(membership.get_group("nope"))
        assert result.error.kind == ErrorKind.NOT_FOUND

    def test_user_groups_newest_first(self, membership):
        first = run(membership.create_group("First", None, ALICE)).unwrap()
        second = run(membership.create_group("Second", None, ALICE)).unwrap()
        run(membership.create_group("Carol's", None, CAROL))

        groups = run(membership.get_user_groups(ALICE)).unwrap()
        assert [g.id for g in groups] == [second.id, first.id]

    def test_user_groups_filtered_by_status(self, membership, group):
        run(membership.archive_group(group.id, ALICE)).unwrap()
        active = run(membership.get_user_groups(ALICE, GroupStatus.ACTIVE)).unwrap()
        archived = run(membership.get_user_groups(ALICE, GroupStatus.ARCHIVED)).unwrap()
        assert active == []
        assert [g.id for g in archived] == [group.id]


class TestUpdateAndArchive:

    def test_admin_updates_details(self, membership, group):
        updated = run(membership.update_group(
            group.id, GroupDetails(name="Flat 5C", address="New address"), ALICE
        )).unwrap()
        assert updated.name == "Flat 5C"

        stored = run(membership.get_group(group.id)).unwrap()
        assert stored.name == "Flat 5C"
        assert stored.address == "New address"

    def test_non_admin_cannot_update(self, membership, group):
        result = run(membership.update_group(group.id, GroupDetails(name="Mine"), CAROL))
        assert result.error.kind == ErrorKind.PERMISSION

    def test_archive_is_idempotent(self, membership, group):
        run(membership.archive_group(group.id, ALICE)).unwrap()
        again = run(membership.archive_group(group.id, ALICE))
        assert again.ok
        assert again.value.is_archived

    def test_archived_group_rejects_updates(self, membership, group):
        run(membership.archive_group(group.id, ALICE)).unwrap()
        result = run(membership.update_group(group.id, GroupDetails(name="X"), ALICE))
        assert result.error.kind == ErrorKind.STATE


class TestBudget:

    def test_admin_sets_budget(self, membership, group):
        """Test amounts are rounded to cents and stored on the group."""
        updated = run(membership.set_budget(group.id, NewBudget(
            total=Decimal("5000.005"),
            categories={" Groceries ": Decimal("1200")},
        ), ALICE)).unwrap()
        assert updated.budget.total == Decimal("5000.01")

        stored = run(membership.get_group(group.id)).unwrap()
        assert stored.budget.total == Decimal("5000.01")
        assert stored.budget.categories == {"Groceries": Decimal("1200.00")}

    def test_budget_replaced_not_merged(self, membership, group):
        run(membership.set_budget(group.id, NewBudget(
            total=Decimal("100"), categories={"Rent": Decimal("50")},
        ), ALICE)).unwrap()
        run(membership.set_budget(group.id, NewBudget(total=Decimal("200")), ALICE)).unwrap()

        stored = run(membership.get_group(group.id)).unwrap()
        assert stored.budget.total == Decimal("200.00")
        assert stored.budget.categories == {}

    def test_non_admin_cannot_set_budget(self, membership, group):
        result = run(membership.set_budget(group.id, NewBudget(total=Decimal("100")), CAROL))
        assert result.error.kind == ErrorKind.PERMISSION
        assert result.error.message == "Only admins can set budget"

    def test_negative_budget_rejected(self, membership, group):
        result = run(membership.set_budget(group.id, NewBudget(
            total=Decimal("100"), categories={"Rent": Decimal("-5")},
        ), ALICE))
        assert result.error.kind == ErrorKind.VALIDATION
        assert "Rent" in result.error.message

    def test_archived_group_rejects_budget(self, membership, group):
        run(membership.archive_group(group.id, ALICE)).unwrap()
        result = run(membership.set_budget(group.id, NewBudget(total=Decimal("100")), ALICE))
        assert result.error.kind == ErrorKind.STATE


class TestAddMember:

    def test_known_email_is_linked_immediately(self, membership, group):
        member = run(membership.add_member(
            group.id, NewMember(name="Carol", email="CAROL@example.com"), ALICE
        )).unwrap()
        assert member.id == linked_member_id(group.id, "carol")
        assert member.user_id == "carol"
        assert member.is_known_identity is True
        assert member.invite_status == InviteStatus.ACCEPTED

    def test_unknown_email_creates_pending_placeholder(self, membership, group):
        member = run(membership.add_member(
            group.id, NewMember(name="Bob", email="bob@example.com"), ALICE
        )).unwrap()
        assert member.is_placeholder
        assert member.invite_status == InviteStatus.PENDING
        assert member.id.startswith(f"{group.id}_")
        assert member.id != linked_member_id(group.id, "bob")

    def test_member_count_incremented(self, membership, group):
        run(membership.add_member(group.id, NewMember(name="Bob"), ALICE)).unwrap()
        run(membership.add_member(group.id, NewMember(name="Dan"), ALICE)).unwrap()
        assert run(membership.get_group(group.id)).unwrap().member_count == 3

    def test_non_admin_rejected(self, membership, group):
        result = run(membership.add_member(group.id, NewMember(name="Eve"), CAROL))
        assert result.error.kind == ErrorKind.PERMISSION
        assert result.error.message == "Only admins can add members"

    def test_blank_name_rejected(self, membership, group):
        result = run(membership.add_member(group.id, NewMember(name=""), ALICE))
        assert result.error.kind == ErrorKind.VALIDATION

    def test_duplicate_linked_member_conflicts(self, membership, group):
        run(membership.add_member(group.id, NewMember(name="Carol", email="carol@example.com"), ALICE)).unwrap()
        result = run(membership.add_member(
            group.id, NewMember(name="Carol again", email="carol@example.com"), ALICE
        ))
        assert result.error.kind == ErrorKind.CONFLICT

    def test_duplicate_pending_invitation_conflicts(self, membership, group):
        run(membership.add_member(group.id, NewMember(name="Bob", email="bob@example.com"), ALICE)).unwrap()
        result = run(membership.add_member(
            group.id, NewMember(name="Bobby", email="Bob@example.com"), ALICE
        ))
        assert result.error.kind == ErrorKind.CONFLICT

    def test_archived_group_rejects_members(self, membership, group):
        run(membership.archive_group(group.id, ALICE)).unwrap()
        result = run(membership.add_member(group.id, NewMember(name="Bob"), ALICE))
        assert result.error.kind == ErrorKind.STATE

    def test_missing_group(self, membership):
        # Admin lookup finds nobody, so the permission check fails first
        result = run(membership.add_member("nope", NewMember(name="Bob"), ALICE))
        assert result.error.kind == ErrorKind.PERMISSION

    def test_phone_encrypted_at_rest(self, membership, group, store, ledger_settings):
        member = run(membership.add_member(
            group.id, NewMember(name="Bob", phone="+91 98765 43210"), ALICE
        )).unwrap()

        raw = run(store.get_doc(ledger_settings.members_collection, member.id))
        assert raw["phone"] != "+91 98765 43210"

        fetched = run(membership.get_member(member.id)).unwrap()
        assert fetched.phone == "+91 98765 43210"

    def test_unencrypted_phone_passes_through(self, membership, group, store, ledger_settings):
        member = run(membership.add_member(group.id, NewMember(name="Bob"), ALICE)).unwrap()
        run(store.update_doc(ledger_settings.members_collection, member.id, {"phone": "12345"}))

        fetched = run(membership.get_member(member.id)).unwrap()
        assert fetched.phone == "12345"


class TestRemoveMember:

    def test_settled_member_removed(self, membership, group):
        member = run(membership.add_member(group.id, NewMember(name="Bob"), ALICE)).unwrap()
        assert run(membership.remove_member(group.id, member.id, ALICE)).ok

        assert run(membership.get_member(member.id)).error.kind == ErrorKind.NOT_FOUND
        assert run(membership.get_group(group.id)).unwrap().member_count == 1

    def test_member_with_balance_cannot_leave(self, ledger, membership, group):
        bob = run(membership.add_member(group.id, NewMember(name="Bob"), ALICE)).unwrap()
        alice_id = linked_member_id(group.id, "alice")
        run(ledger.expenses.add_expense(group.id, NewExpense(
            amount=Decimal("100"),
            description="Internet",
            paid_by=alice_id,
            splits=[
                NewSplit(member_id=alice_id, amount=Decimal("50")),
                NewSplit(member_id=bob.id, amount=Decimal("50")),
            ],
        ), ALICE)).unwrap()

        result = run(membership.remove_member(group.id, bob.id, ALICE))
        assert result.error.kind == ErrorKind.STATE
        assert result.error.message == "Member must settle balance before leaving"

    def test_only_admin_cannot_be_removed(self, membership, group):
        result = run(membership.remove_member(group.id, linked_member_id(group.id, "alice"), ALICE))
        assert result.error.kind == ErrorKind.STATE
        assert result.error.message == "Cannot remove the only admin"

    def test_unknown_member(self, membership, group):
        result = run(membership.remove_member(group.id, f"{group.id}_ghost", ALICE))
        assert result.error.kind == ErrorKind.NOT_FOUND

    def test_non_admin_cannot_remove(self, membership, group):
        run(membership.add_member(group.id, NewMember(name="Carol", email="carol@example.com"), ALICE)).unwrap()
        result = run(membership.remove_member(group.id, linked_member_id(group.id, "alice"), CAROL))
        assert result.error.kind == ErrorKind.PERMISSION


class TestChecks:

    def test_is_group_admin(self, membership, group):
        assert run(membership.is_group_admin(group.id, "alice")) is True
        assert run(membership.is_group_admin(group.id, "carol")) is False

    def test_is_group_member(self, membership, group):
        assert run(membership.is_group_member(group.id, ALICE)) is True
        assert run(membership.is_group_member(group.id, CAROL)) is False

    def test_get_group_members_empty_group(self, membership):
        assert run(membership.get_group_members("nope")).unwrap() == []


class TestInvitationReconciliation:

    def _invite_bob(self, membership, group):
        return run(membership.add_member(
            group.id, NewMember(name="Bob", email="bob@example.com", is_admin=True), ALICE
        )).unwrap()

    def test_membership_check_accepts_invitation(self, membership, group, identity):
        placeholder = self._invite_bob(membership, group)
        identity.register(BOB)

        assert run(membership.is_group_member(group.id, BOB)) is True

        members = run(membership.get_group_members(group.id)).unwrap()
        ids = {m.id for m in members}
        assert placeholder.id not in ids
        assert linked_member_id(group.id, "bob") in ids

        linked = run(membership.get_member(linked_member_id(group.id, "bob"))).unwrap()
        assert linked.user_id == "bob"
        assert linked.invite_status == InviteStatus.ACCEPTED
        assert linked.is_known_identity is True
        assert linked.accepted_at is not None
        # Everything else is carried over
        assert linked.name == "Bob"
        assert linked.is_admin is True

    def test_reconciliation_is_idempotent(self, membership, group):
        self._invite_bob(membership, group)

        first = run(membership.accept_pending_invitation(group.id, BOB)).unwrap()
        second = run(membership.accept_pending_invitation(group.id, BOB)).unwrap()

        assert first.id == linked_member_id(group.id, "bob")
        assert second is None
        members = run(membership.get_group_members(group.id)).unwrap()
        assert [m.id for m in members].count(linked_member_id(group.id, "bob")) == 1
        assert len(members) == 2

    def test_interrupted_reconciliation_is_finished_on_retry(self, membership, group, store, ledger_settings):
        """Linked record already written but placeholder not deleted."""
        placeholder = self._invite_bob(membership, group)
        run(membership.accept_pending_invitation(group.id, BOB)).unwrap()

        # Put the placeholder back, as if the delete never happened
        doc = placeholder.model_dump(mode="json", exclude={"id"})
        run(store.set_doc(ledger_settings.members_collection, placeholder.id, doc))

        result = run(membership.accept_pending_invitation(group.id, BOB)).unwrap()
        assert result.id == linked_member_id(group.id, "bob")

        ids = [m.id for m in run(membership.get_group_members(group.id)).unwrap()]
        assert placeholder.id not in ids
        assert ids.count(linked_member_id(group.id, "bob")) == 1

    def test_no_matching_email_does_nothing(self, membership, group):
        self._invite_bob(membership, group)
        assert run(membership.accept_pending_invitation(group.id, CAROL)).unwrap() is None
        assert len(run(membership.get_group_members(group.id)).unwrap()) == 2

    def test_reconciliation_is_audited(self, ledger, membership, group):
        self._invite_bob(membership, group)
        run(membership.is_group_member(group.id, BOB))

        history = run(ledger.audit_logger.get_group_history(group.id))
        assert history[0].event_type.value == "invitation_accepted"
        assert history[0].actor_id == "bob"
