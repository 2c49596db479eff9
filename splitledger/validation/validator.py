"""
Ledger Input Validation

DESIGN DECISION: Validation is pure. It never touches the store, so
every rule can be tested on its own and reused by any caller (a web
form can run the same checks before submitting).

Checks are grouped per request shape:
- Group: name present
- Member: name present, plausible email
- Expense: positive amount, description, payer, splits, split sum
- Settlement: both parties, distinct parties, positive amount
- Budget: no negative limits, named categories

Errors block the operation. Warnings are reported but never block.

IMPORTANT: Validation NEVER silently fixes issues.
A split that is off by more than the tolerance is rejected, not rebalanced.
"""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from splitledger.config import LedgerSettings
from splitledger.errors import InvalidInputError
from splitledger.models.group import NewBudget, NewExpense, NewMember, NewSettlement


class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'mismatch')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        default="error",
        pattern="^(error|warning)$",
        description="Issue severity"
    )


class ValidationResult(BaseModel):
    """All issues found for one request."""

    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    @property
    def has_errors(self) -> bool:
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def errors(self) -> list[ValidationIssue]:
        return [issue for issue in self.issues if issue.severity == "error"]

    @property
    def warnings(self) -> list[str]:
        return [issue.message for issue in self.issues if issue.severity == "warning"]

    def raise_for_errors(self) -> None:
        """Raise InvalidInputError naming every blocking issue."""
        if self.has_errors:
            raise InvalidInputError("; ".join(issue.message for issue in self.errors))


class LedgerValidator:
    """Validates ledger requests before anything is written."""

    def __init__(self, settings: Optional[LedgerSettings] = None):
        self._settings = settings or LedgerSettings()

    @property
    def split_tolerance(self) -> Decimal:
        return self._settings.split_tolerance

    def validate_group_name(self, name: Optional[str]) -> ValidationResult:
        issues = []
        if not name or not name.strip():
            issues.append(ValidationIssue(
                field="name",
                issue_type="missing",
                message="Group name is required",
            ))
        elif len(name.strip()) > 200:
            issues.append(ValidationIssue(
                field="name",
                issue_type="too_long",
                message="Group name must be 200 characters or fewer",
            ))
        return ValidationResult(issues=issues)

    def validate_member(self, new_member: NewMember) -> ValidationResult:
        issues = []

        if not new_member.name or not new_member.name.strip():
            issues.append(ValidationIssue(
                field="name",
                issue_type="missing",
                message="Member name is required",
            ))
        elif len(new_member.name) > 200:
            issues.append(ValidationIssue(
                field="name",
                issue_type="too_long",
                message="Member name must be 200 characters or fewer",
            ))

        if new_member.email and "@" not in new_member.email:
            issues.append(ValidationIssue(
                field="email",
                issue_type="invalid_format",
                message=f"Email address looks invalid: {new_member.email}",
            ))

        return ValidationResult(issues=issues)

    def validate_expense(self, new_expense: NewExpense) -> ValidationResult:
        issues = []

        if new_expense.amount is None or new_expense.amount <= 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount must be greater than zero",
            ))

        if not new_expense.description or not new_expense.description.strip():
            issues.append(ValidationIssue(
                field="description",
                issue_type="missing",
                message="Description is required",
            ))
        elif len(new_expense.description) > 500:
            issues.append(ValidationIssue(
                field="description",
                issue_type="too_long",
                message="Description must be 500 characters or fewer",
            ))

        if not new_expense.paid_by:
            issues.append(ValidationIssue(
                field="paid_by",
                issue_type="missing",
                message="Paid by member is required",
            ))

        if not new_expense.splits:
            issues.append(ValidationIssue(
                field="splits",
                issue_type="missing",
                message="At least one split participant is required",
            ))
            return ValidationResult(issues=issues)

        for index, split in enumerate(new_expense.splits):
            if not split.member_id:
                issues.append(ValidationIssue(
                    field=f"splits[{index}].member_id",
                    issue_type="missing",
                    message=f"Split {index + 1} has no member",
                ))
            if split.amount < 0:
                issues.append(ValidationIssue(
                    field=f"splits[{index}].amount",
                    issue_type="invalid_value",
                    message=f"Split {index + 1} amount cannot be negative",
                ))

        member_ids = [s.member_id for s in new_expense.splits if s.member_id]
        if len(member_ids) != len(set(member_ids)):
            issues.append(ValidationIssue(
                field="splits",
                issue_type="duplicate",
                message="A member appears more than once in the split",
            ))

        if new_expense.amount and new_expense.amount > 0:
            split_sum = sum((s.amount for s in new_expense.splits), Decimal("0"))
            if abs(split_sum - new_expense.amount) > self.split_tolerance:
                issues.append(ValidationIssue(
                    field="splits",
                    issue_type="mismatch",
                    message=(
                        f"Split amounts must equal total expense: "
                        f"splits sum to {split_sum}, expense is {new_expense.amount}"
                    ),
                ))

        if new_expense.paid_by and member_ids and new_expense.paid_by not in member_ids:
            issues.append(ValidationIssue(
                field="paid_by",
                issue_type="not_in_split",
                message="Payer is not part of the split (they paid entirely for others)",
                severity="warning",
            ))

        return ValidationResult(issues=issues)

    def validate_settlement(self, new_settlement: NewSettlement) -> ValidationResult:
        issues = []

        if not new_settlement.from_member_id or not new_settlement.to_member_id:
            issues.append(ValidationIssue(
                field="members",
                issue_type="missing",
                message="Both members are required",
            ))
        elif new_settlement.from_member_id == new_settlement.to_member_id:
            issues.append(ValidationIssue(
                field="to_member_id",
                issue_type="invalid_value",
                message="Cannot settle with yourself",
            ))

        if new_settlement.amount is None or new_settlement.amount <= 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount must be greater than zero",
            ))

        if new_settlement.notes and len(new_settlement.notes) > 500:
            issues.append(ValidationIssue(
                field="notes",
                issue_type="too_long",
                message="Notes must be 500 characters or fewer",
            ))

        return ValidationResult(issues=issues)

    def validate_budget(self, new_budget: NewBudget) -> ValidationResult:
        issues = []

        if new_budget.total is None or new_budget.total < 0:
            issues.append(ValidationIssue(
                field="total",
                issue_type="invalid_value",
                message="Budget total cannot be negative",
            ))

        for category, limit in new_budget.categories.items():
            if not category or not category.strip():
                issues.append(ValidationIssue(
                    field="categories",
                    issue_type="missing",
                    message="Budget categories need a name",
                ))
            elif limit is None or limit < 0:
                issues.append(ValidationIssue(
                    field="categories",
                    issue_type="invalid_value",
                    message=f"Budget for {category} cannot be negative",
                ))

        if new_budget.total and new_budget.total > 0:
            capped = sum((v for v in new_budget.categories.values() if v and v > 0), Decimal("0"))
            if capped > new_budget.total:
                issues.append(ValidationIssue(
                    field="categories",
                    issue_type="mismatch",
                    message=f"Category budgets ({capped}) exceed the total budget ({new_budget.total})",
                    severity="warning",
                ))

        return ValidationResult(issues=issues)
