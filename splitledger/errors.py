"""
Ledger Error Taxonomy

Every failure a caller can act on belongs to exactly one ErrorKind.
Callers branch on the kind, never on message text.

Storage adapters raise their own StorageError family
(see splitledger.services.storage.interface); the service layer maps
those to ErrorKind.STORE / ErrorKind.NOT_FOUND at the public boundary.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Kinds of failure a ledger operation can report."""
    VALIDATION = "validation_error"    # Malformed or out-of-range input
    PERMISSION = "permission_error"    # Caller lacks the required role
    STATE = "state_error"              # Operation not allowed in current state
    CONFLICT = "conflict_error"        # Duplicate entity
    NOT_FOUND = "not_found_error"      # Referenced group/member absent
    STORE = "store_error"              # Underlying store call failed


class LedgerError(Exception):
    """Base exception for ledger operations."""

    kind: ErrorKind = ErrorKind.VALIDATION

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class InvalidInputError(LedgerError):
    """Input failed validation (split mismatch, non-positive amount, missing field)."""
    kind = ErrorKind.VALIDATION


class PermissionDeniedError(LedgerError):
    """Non-admin attempted an admin action, or non-member a member action."""
    kind = ErrorKind.PERMISSION


class InvalidStateError(LedgerError):
    """Operation conflicts with the current state of the group or member."""
    kind = ErrorKind.STATE


class GroupArchivedError(InvalidStateError):
    """Mutation attempted on an archived group."""
    pass


class DuplicateMemberError(LedgerError):
    """A member with the same derived id already exists in the group."""
    kind = ErrorKind.CONFLICT


class GroupNotFoundError(LedgerError):
    """Referenced group does not exist."""
    kind = ErrorKind.NOT_FOUND


class MemberNotFoundError(LedgerError):
    """Referenced member does not exist."""
    kind = ErrorKind.NOT_FOUND


_ERRORS_BY_KIND = {
    ErrorKind.VALIDATION: InvalidInputError,
    ErrorKind.PERMISSION: PermissionDeniedError,
    ErrorKind.STATE: InvalidStateError,
    ErrorKind.CONFLICT: DuplicateMemberError,
    ErrorKind.NOT_FOUND: GroupNotFoundError,
}


def error_for_kind(kind: ErrorKind, message: str) -> LedgerError:
    """Build the canonical exception for a kind (used by Result.unwrap)."""
    error_class = _ERRORS_BY_KIND.get(kind)
    if error_class is None:
        error = LedgerError(message)
        error.kind = kind
        return error
    return error_class(message)
