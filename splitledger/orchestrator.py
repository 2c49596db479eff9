"""
Main Orchestrator for Split Ledger

Wires the collaborators (document store, identity provider, encryption)
into the ledger services and exposes them through one facade, GroupLedger.

The facade is what a web page or API handler talks to:
- Mutating operations act as the currently signed-in principal
- Nobody signed in -> permission_error, nothing is written
- Balance and budget views are passed through unchanged (they never fail)

DESIGN DECISION: The services take the principal as an argument and
never ask the identity provider who is signed in. Only this module does.
That keeps every service testable with an explicit principal.
"""

from decimal import Decimal
from typing import Optional

import structlog

from splitledger.audit import AuditLogger
from splitledger.config import LedgerSettings, Settings, get_settings
from splitledger.errors import ErrorKind
from splitledger.models.group import (
    BudgetStatus,
    ExpenseFilters,
    GroupDetails,
    GroupStatus,
    NewBudget,
    NewExpense,
    NewMember,
    NewSettlement,
    Principal,
    SettlementSummary,
    SuggestedPayment,
)
from splitledger.models.result import Result
from splitledger.services.balances import BalanceService
from splitledger.services.encryption import EncryptionService, FernetEncryptionService
from splitledger.services.expenses import ExpenseLedger
from splitledger.services.identity import IdentityProvider, InMemoryIdentityProvider
from splitledger.services.membership import MembershipManager
from splitledger.services.repository import GroupRepository
from splitledger.services.settlements import SettlementLedger
from splitledger.services.storage import (
    DocumentStore,
    GoogleSheetsClient,
    GoogleSheetsDocumentStore,
    InMemoryDocumentStore,
)
from splitledger.validation import LedgerValidator


logger = structlog.get_logger(__name__)


NOT_SIGNED_IN = "User not authenticated"


class GroupLedger:
    """
    Facade over the ledger services, acting as the signed-in principal.

    The individual services are also exposed as attributes
    (membership, expenses, settlements, balances) for callers that
    already hold a Principal.
    """

    def __init__(
        self,
        identity: IdentityProvider,
        membership: MembershipManager,
        expenses: ExpenseLedger,
        settlements: SettlementLedger,
        balances: BalanceService,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self.identity = identity
        self.membership = membership
        self.expenses = expenses
        self.settlements = settlements
        self.balances = balances
        self.audit_logger = audit_logger

    def _principal(self) -> Optional[Principal]:
        principal = self.identity.current_principal()
        if principal is None:
            logger.info("operation_without_principal")
        return principal

    # =========================================================================
    # GROUPS
    # =========================================================================

    async def create_group(self, name: str, details: Optional[GroupDetails] = None) -> Result:
        principal = self._principal()
        if principal is None:
            return Result.failure(ErrorKind.PERMISSION, NOT_SIGNED_IN)
        return await self.membership.create_group(name, details, principal)

    async def update_group(self, group_id: str, details: GroupDetails) -> Result:
        principal = self._principal()
        if principal is None:
            return Result.failure(ErrorKind.PERMISSION, NOT_SIGNED_IN)
        return await self.membership.update_group(group_id, details, principal)

    async def archive_group(self, group_id: str) -> Result:
        principal = self._principal()
        if principal is None:
            return Result.failure(ErrorKind.PERMISSION, NOT_SIGNED_IN)
        return await self.membership.archive_group(group_id, principal)

    async def get_group(self, group_id: str) -> Result:
        return await self.membership.get_group(group_id)

    async def set_budget(self, group_id: str, budget: NewBudget) -> Result:
        principal = self._principal()
        if principal is None:
            return Result.failure(ErrorKind.PERMISSION, NOT_SIGNED_IN)
        return await self.membership.set_budget(group_id, budget, principal)

    async def my_groups(self, status: Optional[GroupStatus] = None) -> Result:
        principal = self._principal()
        if principal is None:
            return Result.failure(ErrorKind.PERMISSION, NOT_SIGNED_IN)
        return await self.membership.get_user_groups(principal, status)

    # =========================================================================
    # MEMBERS
    # =========================================================================

    async def add_member(self, group_id: str, new_member: NewMember) -> Result:
        principal = self._principal()
        if principal is None:
            return Result.failure(ErrorKind.PERMISSION, NOT_SIGNED_IN)
        return await self.membership.add_member(group_id, new_member, principal)

    async def remove_member(self, group_id: str, member_id: str) -> Result:
        principal = self._principal()
        if principal is None:
            return Result.failure(ErrorKind.PERMISSION, NOT_SIGNED_IN)
        return await self.membership.remove_member(group_id, member_id, principal)

    async def get_group_members(self, group_id: str) -> Result:
        return await self.membership.get_group_members(group_id)

    async def is_member(self, group_id: str) -> bool:
        """Membership check for the signed-in principal (accepts pending invitations)."""
        principal = self._principal()
        if principal is None:
            return False
        return await self.membership.is_group_member(group_id, principal)

    async def is_admin(self, group_id: str) -> bool:
        principal = self._principal()
        if principal is None:
            return False
        return await self.membership.is_group_admin(group_id, principal.id)

    # =========================================================================
    # EXPENSES AND SETTLEMENTS
    # =========================================================================

    async def add_expense(self, group_id: str, new_expense: NewExpense) -> Result:
        principal = self._principal()
        if principal is None:
            return Result.failure(ErrorKind.PERMISSION, NOT_SIGNED_IN)
        return await self.expenses.add_expense(group_id, new_expense, principal)

    async def get_group_expenses(
        self,
        group_id: str,
        filters: Optional[ExpenseFilters] = None,
    ) -> Result:
        return await self.expenses.get_group_expenses(group_id, filters)

    async def add_settlement(self, group_id: str, new_settlement: NewSettlement) -> Result:
        principal = self._principal()
        if principal is None:
            return Result.failure(ErrorKind.PERMISSION, NOT_SIGNED_IN)
        return await self.settlements.add_settlement(group_id, new_settlement, principal)

    async def get_settlements(self, group_id: str) -> Result:
        return await self.settlements.get_settlements(group_id)

    async def get_settlement_history(self, group_id: str) -> Result:
        return await self.settlements.get_settlement_history(group_id)

    # =========================================================================
    # VIEWS
    # =========================================================================

    async def calculate_balances(self, group_id: str) -> dict[str, Decimal]:
        return await self.balances.calculate_balances(group_id)

    async def get_member_balance(self, group_id: str, member_id: str) -> Decimal:
        return await self.balances.get_member_balance(group_id, member_id)

    async def is_fully_settled(self, group_id: str) -> bool:
        return await self.balances.is_fully_settled(group_id)

    async def simplify_debts(self, group_id: str) -> list[SuggestedPayment]:
        return await self.balances.simplify_debts(group_id)

    async def get_settlement_summary(self, group_id: str) -> Optional[SettlementSummary]:
        return await self.balances.get_settlement_summary(group_id)

    async def settlement_reminders(self, group_id: str) -> list[str]:
        return await self.balances.settlement_reminders(group_id)

    async def get_budget_status(self, group_id: str) -> Optional[BudgetStatus]:
        return await self.balances.get_budget_status(group_id)


def create_store(settings: Settings) -> DocumentStore:
    """Document store for the configured backend."""
    backend = settings.store.backend
    if backend == "google_sheets":
        return GoogleSheetsDocumentStore(GoogleSheetsClient())
    if backend != "memory":
        raise ValueError(f"Unknown store backend: {backend}")
    logger.warning("using_in_memory_store", detail="Data is lost when the process exits")
    return InMemoryDocumentStore()


def create_group_ledger(
    store: Optional[DocumentStore] = None,
    identity: Optional[IdentityProvider] = None,
    encryption: Optional[EncryptionService] = None,
    settings: Optional[Settings] = None,
    ledger_settings: Optional[LedgerSettings] = None,
) -> GroupLedger:
    """
    Factory function to create all ledger components.

    Args:
        store: Document store. Built from settings when None.
        identity: Identity provider. In-memory directory when None.
        encryption: Phone encryption. Built from ENCRYPTION_KEY when None;
                    phones are stored in clear when no key is configured.
        settings: Settings override. Defaults to get_settings().
        ledger_settings: Ledger rules override (tests). Defaults to settings.ledger.

    Returns:
        A GroupLedger with every service wired to the same store
    """
    settings = settings or get_settings()
    ledger_settings = ledger_settings or settings.ledger

    store = store or create_store(settings)
    identity = identity or InMemoryIdentityProvider()

    if encryption is None and settings.encryption.key:
        encryption = FernetEncryptionService(settings.encryption.key)
    if encryption is None:
        logger.warning("member_phone_encryption_disabled")

    repository = GroupRepository(store, ledger_settings, encryption)
    validator = LedgerValidator(ledger_settings)
    audit_logger = AuditLogger(store, collection=ledger_settings.audit_collection)

    membership = MembershipManager(
        repository,
        identity,
        settings=ledger_settings,
        validator=validator,
        audit_logger=audit_logger,
    )

    return GroupLedger(
        identity=identity,
        membership=membership,
        expenses=ExpenseLedger(
            repository,
            membership,
            settings=ledger_settings,
            validator=validator,
            audit_logger=audit_logger,
        ),
        settlements=SettlementLedger(
            repository,
            membership,
            settings=ledger_settings,
            validator=validator,
            audit_logger=audit_logger,
        ),
        balances=BalanceService(repository, ledger_settings),
        audit_logger=audit_logger,
    )
