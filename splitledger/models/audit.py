"""
Audit Models for the Group Ledger

Every mutation of group state is logged for audit purposes.
This provides:
1. Traceability of who changed what in a shared group
2. Debugging information when balances look wrong
3. A record of rejected operations (permission, validation)

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, field_validator

from splitledger.models.group import as_utc, utc_now


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Groups
    GROUP_CREATED = "group_created"
    GROUP_UPDATED = "group_updated"
    GROUP_ARCHIVED = "group_archived"

    # Membership
    MEMBER_ADDED = "member_added"
    MEMBER_REMOVED = "member_removed"
    INVITATION_ACCEPTED = "invitation_accepted"

    # Ledger facts
    EXPENSE_ADDED = "expense_added"
    SETTLEMENT_RECORDED = "settlement_recorded"

    # Rejections and failures
    OPERATION_REJECTED = "operation_rejected"
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utc_now,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what is this about?
    group_id: Optional[str] = Field(
        default=None,
        description="Group the event belongs to"
    )
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'member', 'expense', 'settlement')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )
    actor_id: Optional[str] = Field(
        default=None,
        description="Principal that triggered the event"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    @field_validator('timestamp')
    @classmethod
    def normalize_timestamp(cls, v: datetime) -> datetime:
        return as_utc(v)

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "group_id": self.group_id,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "actor_id": self.actor_id,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
        }

    def to_document(self) -> dict:
        """Convert to a JSON-safe document for the store."""
        return self.model_dump(mode="json")


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.group_created(group_id, name, actor_id)
        event = AuditEventBuilder.expense_added(group_id, expense_id, ...)
    """

    @staticmethod
    def group_created(group_id: str, name: str, actor_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.GROUP_CREATED,
            group_id=group_id,
            entity_type="group",
            entity_id=group_id,
            actor_id=actor_id,
            description=f"Group created: {name}",
            details={"name": name},
        )

    @staticmethod
    def group_updated(group_id: str, fields: list[str], actor_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.GROUP_UPDATED,
            group_id=group_id,
            entity_type="group",
            entity_id=group_id,
            actor_id=actor_id,
            description=f"Group updated: {', '.join(fields) or 'no changes'}",
            details={"fields": fields},
        )

    @staticmethod
    def group_archived(group_id: str, actor_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.GROUP_ARCHIVED,
            group_id=group_id,
            entity_type="group",
            entity_id=group_id,
            actor_id=actor_id,
            description="Group archived",
        )

    @staticmethod
    def member_added(
        group_id: str,
        member_id: str,
        name: str,
        is_placeholder: bool,
        actor_id: str,
    ) -> AuditEvent:
        kind = "placeholder" if is_placeholder else "linked"
        return AuditEvent(
            event_type=AuditEventType.MEMBER_ADDED,
            group_id=group_id,
            entity_type="member",
            entity_id=member_id,
            actor_id=actor_id,
            description=f"Member added ({kind}): {name}",
            details={"name": name, "placeholder": is_placeholder},
        )

    @staticmethod
    def member_removed(group_id: str, member_id: str, actor_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MEMBER_REMOVED,
            group_id=group_id,
            entity_type="member",
            entity_id=member_id,
            actor_id=actor_id,
            description="Member removed",
        )

    @staticmethod
    def invitation_accepted(
        group_id: str,
        old_member_id: str,
        new_member_id: str,
        actor_id: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INVITATION_ACCEPTED,
            group_id=group_id,
            entity_type="member",
            entity_id=new_member_id,
            actor_id=actor_id,
            description="Pending invitation accepted",
            details={
                "old_member_id": old_member_id,
                "new_member_id": new_member_id,
            },
        )

    @staticmethod
    def expense_added(
        group_id: str,
        expense_id: str,
        amount: str,
        paid_by: str,
        actor_id: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_ADDED,
            group_id=group_id,
            entity_type="expense",
            entity_id=expense_id,
            actor_id=actor_id,
            description=f"Expense added: {amount} paid by {paid_by}",
            details={"amount": amount, "paid_by": paid_by},
        )

    @staticmethod
    def settlement_recorded(
        group_id: str,
        settlement_id: str,
        from_member_id: str,
        to_member_id: str,
        amount: str,
        actor_id: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SETTLEMENT_RECORDED,
            group_id=group_id,
            entity_type="settlement",
            entity_id=settlement_id,
            actor_id=actor_id,
            description=f"Settlement recorded: {from_member_id} paid {to_member_id} {amount}",
            details={
                "from_member_id": from_member_id,
                "to_member_id": to_member_id,
                "amount": amount,
            },
        )

    @staticmethod
    def operation_rejected(
        operation: str,
        kind: str,
        message: str,
        group_id: Optional[str] = None,
        actor_id: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.OPERATION_REJECTED,
            severity=AuditSeverity.WARNING,
            group_id=group_id,
            actor_id=actor_id,
            description=f"{operation} rejected: {kind}",
            error_code=kind,
            error_message=message,
            details={"operation": operation},
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        group_id: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            group_id=group_id,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
        )
