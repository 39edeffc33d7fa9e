"""
Audit Models for the Finance Tracker

Every mutation of the user's ledger, and every failure around it, is logged.
This provides:
1. Traceability of who changed what and when
2. Debugging information when the store or blob service misbehaves
3. A record of best-effort failures that are never shown to the user

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Records
    RECORD_CREATED = "record_created"
    RECORD_DELETED = "record_deleted"
    DEBT_STATUS_UPDATED = "debt_status_updated"
    GOAL_UPDATED = "goal_updated"

    # Attachments
    ATTACHMENT_UPLOADED = "attachment_uploaded"
    ATTACHMENT_UPLOAD_FAILED = "attachment_upload_failed"
    ATTACHMENT_DELETED = "attachment_deleted"
    ATTACHMENT_DELETE_FAILED = "attachment_delete_failed"

    # Failures
    VALIDATION_FAILED = "validation_failed"
    PERSISTENCE_FAILED = "persistence_failed"
    SUBSCRIPTION_FAILED = "subscription_failed"

    # System events
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=_utcnow,
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

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'debts', 'incomes', 'attachment', 'goal')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="Store id or blob path of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., upload + create of one entry)"
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

    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         correlation_id, description, details_json, error_message, is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            self.entity_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.record_created("debts", record_id, "Rent", "500")
        event = AuditEventBuilder.attachment_delete_failed(path, str(error))
    """

    @staticmethod
    def record_created(
        kind: str,
        record_id: str,
        name: str,
        amount: str,
        has_attachment: bool = False,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_CREATED,
            entity_type=kind,
            entity_id=record_id,
            correlation_id=correlation_id,
            description=f"Record created: {name} - {amount}",
            details={
                "name": name,
                "amount": amount,
                "has_attachment": has_attachment,
            },
            is_user_action=True,
        )

    @staticmethod
    def record_deleted(
        kind: str,
        record_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_DELETED,
            entity_type=kind,
            entity_id=record_id,
            correlation_id=correlation_id,
            description=f"Record deleted from {kind}",
            is_user_action=True,
        )

    @staticmethod
    def debt_status_updated(
        record_id: str,
        paid: bool,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DEBT_STATUS_UPDATED,
            entity_type="debts",
            entity_id=record_id,
            correlation_id=correlation_id,
            description=f"Debt marked as {'paid' if paid else 'unpaid'}",
            details={"paid": paid},
            is_user_action=True,
        )

    @staticmethod
    def goal_updated(
        goal: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.GOAL_UPDATED,
            entity_type="goal",
            correlation_id=correlation_id,
            description=f"Monthly income goal set to {goal}",
            details={"goal": goal},
            is_user_action=True,
        )

    @staticmethod
    def attachment_uploaded(
        path: str,
        filename: str,
        size_bytes: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ATTACHMENT_UPLOADED,
            entity_type="attachment",
            entity_id=path,
            correlation_id=correlation_id,
            description=f"Attachment uploaded: {filename}",
            details={
                "filename": filename,
                "size_bytes": size_bytes,
            },
        )

    @staticmethod
    def attachment_upload_failed(
        filename: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ATTACHMENT_UPLOAD_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="attachment",
            correlation_id=correlation_id,
            description=f"Attachment upload failed: {filename}; record kept without it",
            error_message=error_message,
            details={"filename": filename},
        )

    @staticmethod
    def attachment_deleted(
        path: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ATTACHMENT_DELETED,
            entity_type="attachment",
            entity_id=path,
            correlation_id=correlation_id,
            description="Attachment deleted",
        )

    @staticmethod
    def attachment_delete_failed(
        path: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ATTACHMENT_DELETE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="attachment",
            entity_id=path,
            correlation_id=correlation_id,
            description="Attachment could not be deleted; record deletion continued",
            error_message=error_message,
        )

    @staticmethod
    def validation_failed(
        field_names: list[str],
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            description=f"Validation failed with {len(issues)} issues",
            details={
                "fields": field_names,
                "issues": issues,
            },
            is_user_action=True,
        )

    @staticmethod
    def persistence_failed(
        operation: str,
        kind: Optional[str],
        record_id: Optional[str],
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PERSISTENCE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type=kind,
            entity_id=record_id,
            correlation_id=correlation_id,
            description=f"Store operation failed: {operation}",
            error_message=error_message,
            details={"operation": operation},
        )

    @staticmethod
    def subscription_failed(
        path: str,
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SUBSCRIPTION_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="subscription",
            entity_id=path,
            description=f"Live subscription stopped: {path}",
            error_message=error_message,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={
                "service": service,
            },
            correlation_id=correlation_id,
        )
