"""Input validation package."""

from splitledger.validation.validator import (
    LedgerValidator,
    ValidationIssue,
    ValidationResult,
)

__all__ = ["LedgerValidator", "ValidationIssue", "ValidationResult"]
