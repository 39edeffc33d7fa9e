"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Google Sheets is the hosted backend; the in-memory store backs tests and
credential-free local runs.
"""

from finance_tracker.services.storage.interface import (
    AuditStorageInterface,
    CollectionSnapshot,
    ConnectionError,
    Document,
    DocumentStoreInterface,
    NotFoundError,
    PersistenceError,
    StorageError,
    Subscription,
    SubscriptionError,
)
from finance_tracker.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryDocumentStore,
)
from finance_tracker.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsDocumentStore,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "CollectionSnapshot",
    "Document",
    "DocumentStoreInterface",
    "Subscription",
    # Exceptions
    "ConnectionError",
    "NotFoundError",
    "PersistenceError",
    "StorageError",
    "SubscriptionError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryDocumentStore",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsDocumentStore",
]
