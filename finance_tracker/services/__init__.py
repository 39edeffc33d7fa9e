"""
Services package.

Re-exports the storage layer only. Import the attachment manager and the
record store adapter from their own modules (they depend on finance_tracker.audit).
"""

from finance_tracker.services.storage import (
    AuditStorageInterface,
    ConnectionError,
    DocumentStoreInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsDocumentStore,
    InMemoryAuditStorage,
    InMemoryDocumentStore,
    NotFoundError,
    PersistenceError,
    StorageError,
    Subscription,
    SubscriptionError,
)

__all__ = [
    "AuditStorageInterface",
    "ConnectionError",
    "DocumentStoreInterface",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsDocumentStore",
    "InMemoryAuditStorage",
    "InMemoryDocumentStore",
    "NotFoundError",
    "PersistenceError",
    "StorageError",
    "Subscription",
    "SubscriptionError",
]
