"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap Google Sheets for a hosted document database later
2. Use in-memory storage for testing
3. Keep ledger logic decoupled from the storage implementation

The document store is intentionally minimal - just what the ledger needs:
collection-scoped create, field-level partial update, delete-by-id,
point read, whole-document overwrite, and live snapshot subscriptions.
Documents are plain dicts; paths look like
"artifacts/{app_id}/users/{user_id}/{collection}".
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from finance_tracker.models.audit import AuditEvent
from finance_tracker.services.storage.errors import (
    ConnectionError,
    NotFoundError,
    PersistenceError,
    StorageError,
    SubscriptionError,
)
from finance_tracker.services.storage.subscription import Subscription


Document = dict[str, Any]
CollectionSnapshot = dict[str, Document]


class DocumentStoreInterface(ABC):
    """
    Abstract interface for document storage operations.

    Any storage implementation (Google Sheets, Firestore, in-memory)
    must implement these methods.
    """

    @abstractmethod
    async def add_document(self, collection_path: str, data: Document) -> str:
        """
        Create a document with a store-assigned id.

        Returns:
            The new document id

        Raises:
            PersistenceError: If the write fails
        """
        pass

    @abstractmethod
    async def get_document(
        self,
        collection_path: str,
        doc_id: str,
    ) -> Optional[Document]:
        """
        Point read of one document.

        Returns:
            The document data if found, None otherwise
        """
        pass

    @abstractmethod
    async def update_document(
        self,
        collection_path: str,
        doc_id: str,
        fields: Document,
    ) -> None:
        """
        Merge ``fields`` into an existing document.

        Raises:
            NotFoundError: If the document doesn't exist
            PersistenceError: If the write fails
        """
        pass

    @abstractmethod
    async def set_document(
        self,
        collection_path: str,
        doc_id: str,
        data: Document,
    ) -> None:
        """Create or wholesale overwrite a document with a known id."""
        pass

    @abstractmethod
    async def delete_document(self, collection_path: str, doc_id: str) -> bool:
        """
        Delete a document by id.

        Returns:
            True if a document was deleted, False if it was already gone
        """
        pass

    @abstractmethod
    def watch_collection(
        self,
        collection_path: str,
    ) -> Subscription[CollectionSnapshot]:
        """
        Subscribe to a collection.

        Each push is the complete {doc_id: data} mapping of the collection,
        starting with its current contents.
        """
        pass

    @abstractmethod
    def watch_document(
        self,
        collection_path: str,
        doc_id: str,
    ) -> Subscription[Optional[Document]]:
        """
        Subscribe to one document.

        Pushes the document data, or None while it doesn't exist.
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass
