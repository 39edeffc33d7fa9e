"""
Data Models Package

This package contains all Pydantic models used in the Finance Tracker.
All data flowing through the system must conform to these schemas.
"""

from finance_tracker.models.ledger import (
    GOAL_DOCUMENT_ID,
    Attachment,
    AttachmentUpload,
    CategoryFilter,
    ChartBucket,
    CreatedRecord,
    DashboardProjection,
    DebtTrackerSummary,
    IncomeTrackerSummary,
    TableRow,
    DebtRecord,
    GoalSetting,
    IncomeRecord,
    LedgerEntry,
    LedgerRecord,
    LedgerSnapshot,
    LedgerSummary,
    LedgerTotals,
    NewEntry,
    Notification,
    NotificationLevel,
    RecordKind,
    UserScope,
    ValidationIssue,
    ViewMode,
    ViewState,
    YearMonth,
    utc_now,
    parse_instant,
    to_decimal,
)
from finance_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "GOAL_DOCUMENT_ID",
    "Attachment",
    "AttachmentUpload",
    "CategoryFilter",
    "ChartBucket",
    "CreatedRecord",
    "DashboardProjection",
    "DebtTrackerSummary",
    "IncomeTrackerSummary",
    "TableRow",
    "DebtRecord",
    "GoalSetting",
    "IncomeRecord",
    "LedgerEntry",
    "LedgerRecord",
    "LedgerSnapshot",
    "LedgerSummary",
    "LedgerTotals",
    "NewEntry",
    "Notification",
    "NotificationLevel",
    "RecordKind",
    "UserScope",
    "ValidationIssue",
    "ViewMode",
    "ViewState",
    "YearMonth",
    "utc_now",
    "parse_instant",
    "to_decimal",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
