"""
Core Data Models for the Group Ledger

These models define the strict schemas for every record the ledger
reads from or writes to the document store. They are designed to:
1. Enforce type safety at the store boundary
2. Keep money exact (Decimal, two places) end to end
3. Be serializable to plain JSON documents
4. Never let untyped dicts leak into business logic
5. Keep every date timezone-aware UTC, so any two compare

DESIGN DECISION: Request shapes (NewMember, NewExpense, NewSettlement, NewBudget)
are deliberately lenient. Business rules live in the validator so that
a bad request surfaces as a validation_error with a clear message,
not as a pydantic traceback.
"""

import random
import string
import time
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Annotated, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


CENT = Decimal("0.01")

Money = Annotated[Decimal, Field(decimal_places=2)]


def to_money(value) -> Decimal:
    """Round any numeric value half-up to cents."""
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Timezone-aware UTC datetime.

    Naive values are taken to already be UTC, so every stored date
    compares and sorts against every other.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def linked_member_id(group_id: str, user_id: str) -> str:
    """Member id for a member linked to an authenticated principal."""
    return f"{group_id}_{user_id}"


def placeholder_member_id(group_id: str) -> str:
    """Member id for an invited person with no linked principal yet."""
    millis = int(time.time() * 1000)
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"{group_id}_{millis}_{suffix}"


# =============================================================================
# ENUMS
# =============================================================================

class GroupStatus(str, Enum):
    """
    Group lifecycle.

    Archived groups are soft-deleted: readable, never mutated again.
    """
    ACTIVE = "active"
    ARCHIVED = "archived"


class InviteStatus(str, Enum):
    """Invitation state machine: pending -> accepted."""
    PENDING = "pending"
    ACCEPTED = "accepted"


class SplitType(str, Enum):
    """How an expense was divided."""
    EQUAL = "equal"
    CUSTOM = "custom"


class BudgetWarningKind(str, Enum):
    OVERSPEND = "overspend"
    WARNING = "warning"
    CATEGORY_OVERSPEND = "category_overspend"
    CATEGORY_WARNING = "category_warning"


# =============================================================================
# IDENTITY
# =============================================================================

class Principal(BaseModel):
    """An authenticated user as reported by the identity provider."""
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: str = Field(..., min_length=1)
    display_name: Optional[str] = None
    email: Optional[str] = None

    @property
    def label(self) -> str:
        """Best available human name."""
        return self.display_name or self.email or self.id


# =============================================================================
# STORED RECORDS
# =============================================================================

class Budget(BaseModel):
    """Spending limits for a group: an overall total plus optional per-category caps."""

    total: Money = Field(default=Decimal("0.00"), ge=0)
    categories: dict[str, Money] = Field(default_factory=dict)


class Group(BaseModel):
    """
    A shared-expense context (a flat, a trip).

    member_count and total_expenses are denormalized running values,
    maintained by read-then-write updates. They can drift under
    concurrent writers; balances never depend on them.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(..., min_length=1)
    name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Group name"
    )
    description: str = Field(default="", max_length=1000)
    address: str = Field(default="", max_length=500)
    created_by: str = Field(
        ...,
        description="Principal id of the creator"
    )
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    status: GroupStatus = Field(default=GroupStatus.ACTIVE)
    member_count: int = Field(default=0, ge=0)
    total_expenses: Money = Field(default=Decimal("0.00"), ge=0)
    categories: list[str] = Field(default_factory=list)
    budget: Optional[Budget] = None

    @field_validator('created_at', 'updated_at')
    @classmethod
    def normalize_timestamps(cls, v: datetime) -> datetime:
        return as_utc(v)

    @property
    def is_archived(self) -> bool:
        return self.status == GroupStatus.ARCHIVED


class Member(BaseModel):
    """
    A participant in a group.

    A member without user_id is a placeholder created from an email
    invitation. It becomes linked through invitation reconciliation,
    which re-keys it to linked_member_id(group_id, user_id).
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(..., min_length=1)
    group_id: str = Field(..., min_length=1)
    user_id: Optional[str] = Field(
        default=None,
        description="Linked principal id, None for placeholders"
    )
    name: str = Field(..., min_length=1, max_length=200)
    email: Optional[str] = None
    phone: Optional[str] = None
    is_admin: bool = False
    is_known_identity: bool = Field(
        default=False,
        description="True once linked to an authenticated principal"
    )
    notifications_enabled: bool = True
    invite_status: InviteStatus = InviteStatus.PENDING
    joined_at: datetime = Field(default_factory=utc_now)
    accepted_at: Optional[datetime] = None

    @field_validator('email')
    @classmethod
    def normalize_email(cls, v: Optional[str]) -> Optional[str]:
        return v.strip().lower() if v else None

    @field_validator('joined_at', 'accepted_at')
    @classmethod
    def normalize_timestamps(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v)

    @property
    def is_placeholder(self) -> bool:
        return self.user_id is None


class Split(BaseModel):
    """One member's owed share of one expense. Always embedded in an Expense."""

    member_id: str = Field(..., min_length=1)
    amount: Money = Field(..., ge=0)
    percentage: Optional[Decimal] = Field(default=None, ge=0, le=100)


class Expense(BaseModel):
    """
    A shared expense with its per-member split.

    Immutable once created: there is no update path.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(..., min_length=1)
    group_id: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1, max_length=500)
    amount: Money = Field(..., gt=0)
    category: str = Field(default="Other")
    date: datetime = Field(default_factory=utc_now)
    paid_by: str = Field(
        ...,
        min_length=1,
        description="Member id of the payer"
    )
    split_type: SplitType = SplitType.EQUAL
    splits: list[Split] = Field(..., min_length=1)
    added_by: str = Field(
        ...,
        description="Principal id that recorded the expense"
    )
    created_at: datetime = Field(default_factory=utc_now)

    @field_validator('date', 'created_at')
    @classmethod
    def normalize_dates(cls, v: datetime) -> datetime:
        return as_utc(v)

    @model_validator(mode='after')
    def validate_split_total(self) -> 'Expense':
        """Splits must account for the whole amount (within one cent)."""
        split_sum = sum((s.amount for s in self.splits), Decimal("0"))
        if abs(split_sum - self.amount) > CENT:
            raise ValueError(
                f"Split amounts ({split_sum}) must equal total expense ({self.amount})"
            )
        return self

    @property
    def split_total(self) -> Decimal:
        return sum((s.amount for s in self.splits), Decimal("0"))


class Settlement(BaseModel):
    """A direct payment: from_member_id paid to_member_id."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(..., min_length=1)
    group_id: str = Field(..., min_length=1)
    from_member_id: str = Field(..., min_length=1)
    to_member_id: str = Field(..., min_length=1)
    amount: Money = Field(..., gt=0)
    notes: str = Field(default="", max_length=500)
    date: datetime = Field(default_factory=utc_now)
    added_by: str = Field(...)
    created_at: datetime = Field(default_factory=utc_now)

    @field_validator('date', 'created_at')
    @classmethod
    def normalize_dates(cls, v: datetime) -> datetime:
        return as_utc(v)

    @model_validator(mode='after')
    def validate_distinct_members(self) -> 'Settlement':
        if self.from_member_id == self.to_member_id:
            raise ValueError("Cannot settle with yourself")
        return self


# =============================================================================
# REQUEST SHAPES
# =============================================================================

class GroupDetails(BaseModel):
    """Optional metadata supplied when creating or updating a group."""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = None
    description: Optional[str] = None
    address: Optional[str] = None
    categories: Optional[list[str]] = None


class NewMember(BaseModel):
    """Who to add to a group."""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = ""
    email: Optional[str] = None
    phone: Optional[str] = None
    is_admin: bool = False
    notifications_enabled: bool = True


class NewSplit(BaseModel):
    """A requested share, before validation."""

    member_id: str = ""
    amount: Decimal = Decimal("0")
    percentage: Optional[Decimal] = None


class NewExpense(BaseModel):
    """An expense as submitted by a caller, before validation."""
    model_config = ConfigDict(str_strip_whitespace=True)

    amount: Decimal = Decimal("0")
    description: str = ""
    category: Optional[str] = None
    date: Optional[datetime] = None
    paid_by: Optional[str] = None
    split_type: SplitType = SplitType.EQUAL
    splits: list[NewSplit] = Field(default_factory=list)

    @field_validator('date')
    @classmethod
    def normalize_date(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v)


class NewSettlement(BaseModel):
    """A settlement as submitted by a caller, before validation."""
    model_config = ConfigDict(str_strip_whitespace=True)

    from_member_id: Optional[str] = None
    to_member_id: Optional[str] = None
    amount: Decimal = Decimal("0")
    notes: Optional[str] = None
    date: Optional[datetime] = None

    @field_validator('date')
    @classmethod
    def normalize_date(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v)


class NewBudget(BaseModel):
    """A budget as submitted by an admin, before validation."""

    total: Decimal = Decimal("0")
    categories: dict[str, Decimal] = Field(default_factory=dict)


class ExpenseFilters(BaseModel):
    """Optional filters for listing group expenses."""

    category: Optional[str] = None
    member_id: Optional[str] = Field(
        default=None,
        description="Match expenses paid by or split with this member"
    )
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    @field_validator('start_date', 'end_date')
    @classmethod
    def normalize_dates(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v)


# =============================================================================
# DERIVED VIEWS
# =============================================================================

class SuggestedPayment(BaseModel):
    """One payment in a simplified settlement plan: from pays to."""

    from_member_id: str
    from_name: str = "Unknown"
    to_member_id: str
    to_name: str = "Unknown"
    amount: Money = Field(..., gt=0)


class SettlementRecord(BaseModel):
    """A settlement joined with the names of both parties."""

    settlement: Settlement
    from_name: str = "Unknown"
    to_name: str = "Unknown"


class SettlementSummary(BaseModel):
    """Where a group stands overall."""

    total_expenses: Money
    total_settled: Money
    total_owed: Money
    pending_payments: list[SuggestedPayment] = Field(default_factory=list)
    settlement_count: int = Field(ge=0)
    member_count: int = Field(ge=0)
    settled_members: int = Field(ge=0)
    unsettled_members: int = Field(ge=0)
    is_fully_settled: bool
    per_person_average: Money


class BudgetWarning(BaseModel):
    """A budget threshold crossed by the group, or by one category."""

    kind: BudgetWarningKind
    category: Optional[str] = None
    message: str
    amount: Money = Field(
        ...,
        description="Overspend for *_overspend kinds, amount left for *_warning kinds"
    )


class BudgetStatus(BaseModel):
    """Spending measured against the group's budget."""

    budget: Money
    spent: Money
    remaining: Money
    progress: Decimal = Field(..., description="Percent of the total budget spent")
    spent_by_category: dict[str, Money] = Field(default_factory=dict)
    category_budgets: dict[str, Money] = Field(default_factory=dict)
    warnings: list[BudgetWarning] = Field(default_factory=list)
