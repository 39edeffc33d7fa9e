"""
Audit Logger

DESIGN DECISION: Every ledger mutation and every swallowed failure is logged.
This provides:
1. Complete traceability
2. Debugging capability
3. The observability sink for best-effort work (attachment deletion)

The audit logger:
- Is async to not block main flow
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from finance_tracker.models.audit import AuditEvent, AuditEventBuilder
from finance_tracker.services.storage import AuditStorageInterface


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
    2. An audit store, when one is configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("finance_tracker.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_record_created(
        self,
        kind: str,
        record_id: str,
        name: str,
        amount: str,
        has_attachment: bool = False,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a new debt or income."""
        await self.log(AuditEventBuilder.record_created(
            kind=kind,
            record_id=record_id,
            name=name,
            amount=amount,
            has_attachment=has_attachment,
            correlation_id=correlation_id,
        ))

    async def log_record_deleted(
        self,
        kind: str,
        record_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.record_deleted(
            kind=kind,
            record_id=record_id,
            correlation_id=correlation_id,
        ))

    async def log_debt_status_updated(
        self,
        record_id: str,
        paid: bool,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.debt_status_updated(
            record_id=record_id,
            paid=paid,
            correlation_id=correlation_id,
        ))

    async def log_goal_updated(
        self,
        goal: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.goal_updated(
            goal=goal,
            correlation_id=correlation_id,
        ))

    async def log_attachment_uploaded(
        self,
        path: str,
        filename: str,
        size_bytes: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.attachment_uploaded(
            path=path,
            filename=filename,
            size_bytes=size_bytes,
            correlation_id=correlation_id,
        ))

    async def log_attachment_upload_failed(
        self,
        filename: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.attachment_upload_failed(
            filename=filename,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_attachment_deleted(
        self,
        path: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.attachment_deleted(
            path=path,
            correlation_id=correlation_id,
        ))

    async def log_attachment_delete_failed(
        self,
        path: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a swallowed attachment deletion failure."""
        await self.log(AuditEventBuilder.attachment_delete_failed(
            path=path,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_validation_failed(
        self,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.validation_failed(
            field_names=[issue["field"] for issue in issues],
            issues=issues,
            correlation_id=correlation_id,
        ))

    async def log_persistence_failed(
        self,
        operation: str,
        error_message: str,
        kind: Optional[str] = None,
        record_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.persistence_failed(
            operation=operation,
            kind=kind,
            record_id=record_id,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_subscription_failed(
        self,
        path: str,
        error_message: str,
    ) -> None:
        await self.log(AuditEventBuilder.subscription_failed(
            path=path,
            error_message=error_message,
        ))

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log external service error."""
        await self.log(AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., adding a debt).
    Pass it through all subsequent operations.
    """
    return uuid4()
