"""
Tagged Results for Ledger Operations

Public ledger operations never return free-text error objects.
They return a Result that is either a success carrying a value, or a
failure carrying one ErrorKind plus a human-readable message.

Usage:
    result = await expenses.add_expense(group_id, new_expense, principal)
    if result.ok:
        expense = result.value
    elif result.error.kind == ErrorKind.VALIDATION:
        ...
"""

from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, model_validator

from splitledger.errors import ErrorKind, LedgerError, error_for_kind


T = TypeVar("T")


class LedgerFailure(BaseModel):
    """Why an operation failed."""

    kind: ErrorKind = Field(
        ...,
        description="Failure kind callers branch on"
    )
    message: str = Field(
        ...,
        description="Human-readable description"
    )


class Result(BaseModel, Generic[T]):
    """Success value or failure, never both."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    value: Optional[T] = None
    error: Optional[LedgerFailure] = None

    @model_validator(mode='after')
    def validate_exclusive(self) -> 'Result':
        if self.error is not None and self.value is not None:
            raise ValueError("A result cannot carry both a value and an error")
        return self

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: Any = None) -> 'Result':
        return cls(value=value)

    @classmethod
    def failure(cls, kind: ErrorKind, message: str) -> 'Result':
        return cls(error=LedgerFailure(kind=kind, message=message))

    @classmethod
    def from_error(cls, error: LedgerError) -> 'Result':
        return cls.failure(error.kind, error.message)

    def unwrap(self) -> T:
        """Return the value, or raise the LedgerError matching the failure kind."""
        if self.error is not None:
            raise error_for_kind(self.error.kind, self.error.message)
        return self.value
