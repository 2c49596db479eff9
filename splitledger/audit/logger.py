"""
Audit Logger

DESIGN DECISION: Every mutation of shared group state is logged.
This provides:
1. Traceability of who added which expense or settlement
2. Debugging capability when a balance looks wrong
3. Group members can see the history of their group

The audit logger:
- Is async to match the rest of the service layer
- Gracefully handles failures (doesn't break a ledger write if logging fails)
- Tags every event with its group for per-group history
"""

from typing import Optional

import structlog

from splitledger.models.audit import AuditEvent, AuditEventBuilder
from splitledger.services.storage import DocumentStore


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. The document store audit collection (for persistence and group history)
    """

    def __init__(
        self,
        store: Optional[DocumentStore] = None,
        collection: str = "groupAuditEvents",
    ):
        """
        Initialize audit logger.

        Args:
            store: Document store for persistence.
                   If None, only logs locally.
            collection: Collection that receives audit documents
        """
        self._store = store
        self._collection = collection
        self._logger = structlog.get_logger(__name__)

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value == "error":
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._store:
            try:
                await self._store.set_doc(
                    self._collection, str(event.event_id), event.to_document()
                )
                return True
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def get_group_history(self, group_id: str, limit: int = 100) -> list[AuditEvent]:
        """Most recent audit events for a group, newest first."""
        if not self._store:
            return []
        docs = await self._store.query_docs(self._collection, [("group_id", group_id)])
        events = [
            AuditEvent.model_validate({k: v for k, v in doc.items() if k != "id"})
            for doc in docs
        ]
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]

    async def log_group_created(self, group_id: str, name: str, actor_id: str) -> None:
        await self.log(AuditEventBuilder.group_created(group_id, name, actor_id))

    async def log_group_updated(self, group_id: str, fields: list[str], actor_id: str) -> None:
        await self.log(AuditEventBuilder.group_updated(group_id, fields, actor_id))

    async def log_group_archived(self, group_id: str, actor_id: str) -> None:
        await self.log(AuditEventBuilder.group_archived(group_id, actor_id))

    async def log_member_added(
        self,
        group_id: str,
        member_id: str,
        name: str,
        is_placeholder: bool,
        actor_id: str,
    ) -> None:
        await self.log(AuditEventBuilder.member_added(
            group_id=group_id,
            member_id=member_id,
            name=name,
            is_placeholder=is_placeholder,
            actor_id=actor_id,
        ))

    async def log_member_removed(self, group_id: str, member_id: str, actor_id: str) -> None:
        await self.log(AuditEventBuilder.member_removed(group_id, member_id, actor_id))

    async def log_invitation_accepted(
        self,
        group_id: str,
        old_member_id: str,
        new_member_id: str,
        actor_id: str,
    ) -> None:
        await self.log(AuditEventBuilder.invitation_accepted(
            group_id=group_id,
            old_member_id=old_member_id,
            new_member_id=new_member_id,
            actor_id=actor_id,
        ))

    async def log_expense_added(
        self,
        group_id: str,
        expense_id: str,
        amount: str,
        paid_by: str,
        actor_id: str,
    ) -> None:
        await self.log(AuditEventBuilder.expense_added(
            group_id=group_id,
            expense_id=expense_id,
            amount=amount,
            paid_by=paid_by,
            actor_id=actor_id,
        ))

    async def log_settlement_recorded(
        self,
        group_id: str,
        settlement_id: str,
        from_member_id: str,
        to_member_id: str,
        amount: str,
        actor_id: str,
    ) -> None:
        await self.log(AuditEventBuilder.settlement_recorded(
            group_id=group_id,
            settlement_id=settlement_id,
            from_member_id=from_member_id,
            to_member_id=to_member_id,
            amount=amount,
            actor_id=actor_id,
        ))

    async def log_operation_rejected(
        self,
        operation: str,
        kind: str,
        message: str,
        group_id: Optional[str] = None,
        actor_id: Optional[str] = None,
    ) -> None:
        await self.log(AuditEventBuilder.operation_rejected(
            operation=operation,
            kind=kind,
            message=message,
            group_id=group_id,
            actor_id=actor_id,
        ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        group_id: Optional[str] = None,
    ) -> None:
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            group_id=group_id,
        ))
