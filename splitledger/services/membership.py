"""
Membership Manager

Owns groups and their member rosters. It is the only component that
writes Member records.

Responsibilities:
1. Group lifecycle: create, update, set budget, archive (never hard-deleted)
2. Roster: add, look up, remove members
3. Authorization: admin and member checks for every other component
4. Invitation reconciliation: pending placeholder -> linked member

INVITATION RECONCILIATION:
A member added by email before that person has an account is a
placeholder keyed by a locally generated id. When a principal with a
matching email (case-insensitive) checks membership, we create a new
record keyed by the principal's id and delete the placeholder.

    pending placeholder --(login with matching email)--> accepted, linked

This is create-then-delete, not atomic. A crash between the two steps
leaves both records; the next attempt finds the linked record already
present and only deletes the placeholder. Expenses and settlements that
reference the placeholder id are NOT rewritten.

CONCURRENCY: member_count is maintained read-then-write and can
undercount under concurrent add_member calls. Nothing reads it for
money math.
"""

import asyncio
from typing import Optional

import structlog

from splitledger.audit import AuditLogger
from splitledger.config import LedgerSettings
from splitledger.errors import (
    DuplicateMemberError,
    GroupArchivedError,
    GroupNotFoundError,
    InvalidStateError,
    MemberNotFoundError,
    PermissionDeniedError,
)
from splitledger.ledger.balances import calculate_balances
from splitledger.models.group import (
    Budget,
    Group,
    GroupDetails,
    GroupStatus,
    InviteStatus,
    Member,
    NewBudget,
    NewMember,
    Principal,
    linked_member_id,
    placeholder_member_id,
    to_money,
    utc_now,
)
from splitledger.services.identity import IdentityProvider
from splitledger.services.operations import ledger_operation
from splitledger.services.repository import GroupRepository
from splitledger.services.storage import StorageError
from splitledger.validation import LedgerValidator


class MembershipManager:
    """
    Group and roster management.

    Public operations return Result; is_group_admin / is_group_member
    return plain booleans (store failures read as False).
    """

    def __init__(
        self,
        repository: GroupRepository,
        identity: IdentityProvider,
        settings: Optional[LedgerSettings] = None,
        validator: Optional[LedgerValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._repo = repository
        self._identity = identity
        self._settings = settings or LedgerSettings()
        self._validator = validator or LedgerValidator(self._settings)
        self._audit_logger = audit_logger
        self._logger = structlog.get_logger(__name__)

    def default_categories(self) -> list[str]:
        return list(self._settings.default_categories)

    # =========================================================================
    # INTERNAL CHECKS (raise; used by the other ledger components)
    # =========================================================================

    async def require_group(self, group_id: str) -> Group:
        group = await self._repo.get_group(group_id)
        if group is None:
            raise GroupNotFoundError(f"Group not found: {group_id}")
        return group

    @staticmethod
    def require_active(group: Group, message: str) -> None:
        if group.is_archived:
            raise GroupArchivedError(message)

    async def require_roster_members(self, group_id: str, member_ids: list[str]) -> list[Member]:
        """Raise MemberNotFoundError unless every id is on the group's roster."""
        members = await self._repo.list_members(group_id)
        known = {m.id for m in members}
        missing = [member_id for member_id in member_ids if member_id not in known]
        if missing:
            raise MemberNotFoundError(f"Not a member of this group: {', '.join(missing)}")
        return members

    async def check_admin(self, group_id: str, principal_id: str) -> bool:
        member = await self._repo.get_member(linked_member_id(group_id, principal_id))
        return member is not None and member.is_admin

    async def check_member(self, group_id: str, principal: Principal) -> bool:
        """Direct membership, else reconcile a pending invitation by email."""
        if await self._repo.member_exists(linked_member_id(group_id, principal.id)):
            return True
        if principal.email:
            return await self._reconcile_invitation(group_id, principal) is not None
        return False

    async def _require_admin(self, group_id: str, principal: Principal, message: str) -> None:
        if not await self.check_admin(group_id, principal.id):
            raise PermissionDeniedError(message)

    # =========================================================================
    # GROUPS
    # =========================================================================

    @ledger_operation("create_group")
    async def create_group(
        self,
        name: str,
        details: Optional[GroupDetails],
        creator: Principal,
    ) -> Group:
        """Create a group with the creator as its first (admin) member."""
        self._validator.validate_group_name(name).raise_for_errors()
        details = details or GroupDetails()
        now = utc_now()

        group = await self._repo.insert_group({
            "name": name.strip(),
            "description": details.description or "",
            "address": details.address or "",
            "created_by": creator.id,
            "created_at": now,
            "updated_at": now,
            "status": GroupStatus.ACTIVE,
            "categories": details.categories or self.default_categories(),
            "member_count": 1,
            "total_expenses": 0,
        })

        await self._repo.save_member(Member(
            id=linked_member_id(group.id, creator.id),
            group_id=group.id,
            user_id=creator.id,
            name=creator.label,
            email=creator.email,
            is_admin=True,
            is_known_identity=True,
            invite_status=InviteStatus.ACCEPTED,
            joined_at=now,
            accepted_at=now,
        ))

        if self._audit_logger:
            await self._audit_logger.log_group_created(group.id, group.name, creator.id)

        return group

    @ledger_operation("get_group")
    async def get_group(self, group_id: str) -> Group:
        return await self.require_group(group_id)

    @ledger_operation("update_group")
    async def update_group(
        self,
        group_id: str,
        details: GroupDetails,
        principal: Principal,
    ) -> Group:
        """Change name, description, address or categories (admins only)."""
        await self._require_admin(group_id, principal, "Only admins can update group details")
        group = await self.require_group(group_id)
        self.require_active(group, "Cannot update archived groups")

        fields = {}
        if details.name is not None:
            self._validator.validate_group_name(details.name).raise_for_errors()
            fields["name"] = details.name.strip()
        if details.description is not None:
            fields["description"] = details.description
        if details.address is not None:
            fields["address"] = details.address
        if details.categories is not None:
            fields["categories"] = details.categories

        changed = sorted(fields)
        fields["updated_at"] = utc_now()
        await self._repo.update_group(group_id, fields)

        if self._audit_logger:
            await self._audit_logger.log_group_updated(group_id, changed, principal.id)

        return group.model_copy(update=fields)

    @ledger_operation("archive_group")
    async def archive_group(self, group_id: str, principal: Principal) -> Group:
        """Soft-delete a group. Archiving twice is a no-op."""
        await self._require_admin(group_id, principal, "Only admins can archive groups")
        group = await self.require_group(group_id)
        if group.is_archived:
            return group

        fields = {"status": GroupStatus.ARCHIVED, "updated_at": utc_now()}
        await self._repo.update_group(group_id, fields)

        if self._audit_logger:
            await self._audit_logger.log_group_archived(group_id, principal.id)

        return group.model_copy(update=fields)

    @ledger_operation("set_budget")
    async def set_budget(
        self,
        group_id: str,
        new_budget: NewBudget,
        principal: Principal,
    ) -> Group:
        """Replace the group's total and per-category budget (admins only)."""
        await self._require_admin(group_id, principal, "Only admins can set budget")
        group = await self.require_group(group_id)
        self.require_active(group, "Cannot set a budget on archived groups")

        validation = self._validator.validate_budget(new_budget)
        validation.raise_for_errors()
        for warning in validation.warnings:
            self._logger.info("budget_validation_warning", group_id=group_id, warning=warning)

        budget = Budget(
            total=to_money(new_budget.total),
            categories={
                category.strip(): to_money(limit)
                for category, limit in new_budget.categories.items()
            },
        )
        fields = {"budget": budget, "updated_at": utc_now()}
        await self._repo.update_group(group_id, fields)

        if self._audit_logger:
            await self._audit_logger.log_group_updated(group_id, ["budget"], principal.id)

        return group.model_copy(update=fields)

    @ledger_operation("get_user_groups")
    async def get_user_groups(
        self,
        principal: Principal,
        status: Optional[GroupStatus] = None,
    ) -> list[Group]:
        """Groups the principal is a linked member of, newest first."""
        memberships = await self._repo.list_memberships(principal.id)
        group_ids = sorted({m.group_id for m in memberships})
        found = await asyncio.gather(*(self._repo.get_group(gid) for gid in group_ids))

        groups = [g for g in found if g is not None and (status is None or g.status == status)]
        groups.sort(key=lambda g: g.created_at, reverse=True)
        return groups

    # =========================================================================
    # MEMBERS
    # =========================================================================

    @ledger_operation("add_member")
    async def add_member(
        self,
        group_id: str,
        new_member: NewMember,
        principal: Principal,
    ) -> Member:
        """
        Add a member (admins only).

        If the email belongs to a registered user the member is linked and
        accepted immediately; otherwise it is a pending placeholder.
        """
        try:
            is_admin = await self.check_admin(group_id, principal.id)
        except StorageError as e:
            self._logger.warning("admin_check_failed", group_id=group_id, error=str(e))
            group = await self._repo.get_group(group_id)
            is_admin = group is not None and group.created_by == principal.id
        if not is_admin:
            raise PermissionDeniedError("Only admins can add members")

        group = await self.require_group(group_id)
        self.require_active(group, "Cannot add members to archived groups")
        self._validator.validate_member(new_member).raise_for_errors()

        user_id = None
        if new_member.email:
            existing_user = await self._identity.get_user_by_email(new_member.email)
            if existing_user:
                user_id = existing_user.id

        member_id = (
            linked_member_id(group_id, user_id) if user_id
            else placeholder_member_id(group_id)
        )
        if await self._repo.member_exists(member_id):
            raise DuplicateMemberError("Member already exists in this group")

        if new_member.email and not user_id:
            roster = await self._repo.list_members(group_id)
            wanted = new_member.email.strip().lower()
            if any(m.email == wanted and m.is_placeholder for m in roster):
                raise DuplicateMemberError(f"An invitation for {wanted} is already pending")

        now = utc_now()
        member = Member(
            id=member_id,
            group_id=group_id,
            user_id=user_id,
            name=new_member.name,
            email=new_member.email,
            phone=new_member.phone,
            is_admin=new_member.is_admin,
            is_known_identity=user_id is not None,
            notifications_enabled=new_member.notifications_enabled,
            invite_status=InviteStatus.ACCEPTED if user_id else InviteStatus.PENDING,
            joined_at=now,
            accepted_at=now if user_id else None,
        )
        await self._repo.save_member(member)

        try:
            await self._repo.update_group(group_id, {
                "member_count": group.member_count + 1,
                "updated_at": now,
            })
        except StorageError as e:
            self._logger.error("member_count_update_failed", group_id=group_id, error=str(e))

        if self._audit_logger:
            await self._audit_logger.log_member_added(
                group_id=group_id,
                member_id=member.id,
                name=member.name,
                is_placeholder=member.is_placeholder,
                actor_id=principal.id,
            )

        return member

    @ledger_operation("remove_member")
    async def remove_member(
        self,
        group_id: str,
        member_id: str,
        principal: Principal,
    ) -> None:
        """
        Remove a member (admins only).

        The member must be settled up, and the last admin cannot be removed.
        """
        await self._require_admin(group_id, principal, "Only admins can remove members")
        group = await self.require_group(group_id)
        self.require_active(group, "Cannot remove members from archived groups")

        member = await self._repo.get_member(member_id)
        if member is None or member.group_id != group_id:
            raise MemberNotFoundError(f"Member not found: {member_id}")

        members, expenses, settlements = await asyncio.gather(
            self._repo.list_members(group_id),
            self._repo.list_expenses(group_id),
            self._repo.list_settlements(group_id),
        )
        balance = calculate_balances(members, expenses, settlements).get(member_id, 0)
        if abs(balance) > self._settings.zero_band:
            raise InvalidStateError("Member must settle balance before leaving")

        if member.is_admin and sum(1 for m in members if m.is_admin) == 1:
            raise InvalidStateError("Cannot remove the only admin")

        await self._repo.delete_member(member_id)

        try:
            await self._repo.update_group(group_id, {
                "member_count": max(0, group.member_count - 1),
                "updated_at": utc_now(),
            })
        except StorageError as e:
            self._logger.error("member_count_update_failed", group_id=group_id, error=str(e))

        if self._audit_logger:
            await self._audit_logger.log_member_removed(group_id, member_id, principal.id)

    async def load_members(self, group_id: str) -> list[Member]:
        """
        All members of a group.

        A freshly created group can briefly read back empty, so an empty
        result is retried a few times before it is believed.
        """
        attempts = self._settings.member_lookup_retries + 1
        members: list[Member] = []
        for attempt in range(attempts):
            members = await self._repo.list_members(group_id)
            if members:
                break
            if attempt < attempts - 1:
                await asyncio.sleep(self._settings.member_lookup_delay)
        return members

    @ledger_operation("get_group_members")
    async def get_group_members(self, group_id: str) -> list[Member]:
        return await self.load_members(group_id)

    @ledger_operation("get_member")
    async def get_member(self, member_id: str) -> Member:
        member = await self._repo.get_member(member_id)
        if member is None:
            raise MemberNotFoundError(f"Member not found: {member_id}")
        return member

    async def is_group_admin(self, group_id: str, principal_id: str) -> bool:
        try:
            return await self.check_admin(group_id, principal_id)
        except StorageError as e:
            self._logger.error("admin_check_failed", group_id=group_id, error=str(e))
            return False

    async def is_group_member(self, group_id: str, principal: Principal) -> bool:
        """
        True if the principal is a member.

        Side effect: accepts a pending email invitation for this principal.
        """
        try:
            return await self.check_member(group_id, principal)
        except StorageError as e:
            self._logger.error("member_check_failed", group_id=group_id, error=str(e))
            return False

    # =========================================================================
    # INVITATION RECONCILIATION
    # =========================================================================

    @ledger_operation("accept_pending_invitation")
    async def accept_pending_invitation(
        self,
        group_id: str,
        principal: Principal,
    ) -> Optional[Member]:
        """
        Link a pending placeholder to the principal.

        Returns the linked member, or None when there was nothing to accept.
        Safe to call repeatedly.
        """
        return await self._reconcile_invitation(group_id, principal)

    async def _reconcile_invitation(
        self,
        group_id: str,
        principal: Principal,
    ) -> Optional[Member]:
        if not principal.email or not principal.id:
            return None

        wanted = principal.email.strip().lower()
        members = await self._repo.list_members(group_id)

        for placeholder in members:
            if not placeholder.is_placeholder:
                continue
            if not placeholder.email or placeholder.email.lower() != wanted:
                continue

            new_id = linked_member_id(group_id, principal.id)

            # Retry path: an earlier attempt created the linked record
            # but never got to delete the placeholder.
            existing = await self._repo.get_member(new_id)
            if existing is not None:
                await self._repo.delete_member(placeholder.id)
                self._logger.info(
                    "duplicate_placeholder_removed",
                    group_id=group_id,
                    placeholder_id=placeholder.id,
                )
                return existing

            linked = placeholder.model_copy(update={
                "id": new_id,
                "user_id": principal.id,
                "is_known_identity": True,
                "invite_status": InviteStatus.ACCEPTED,
                "accepted_at": utc_now(),
            })
            await self._repo.save_member(linked)
            await self._repo.delete_member(placeholder.id)

            if self._audit_logger:
                await self._audit_logger.log_invitation_accepted(
                    group_id=group_id,
                    old_member_id=placeholder.id,
                    new_member_id=new_id,
                    actor_id=principal.id,
                )

            return linked

        return None
