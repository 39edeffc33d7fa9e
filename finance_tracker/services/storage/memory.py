"""
In-Memory Storage Implementation

Used for tests and for running the UI without Google credentials.
Unlike the Sheets backend it pushes snapshots immediately on every write,
which is the behaviour a hosted document database gives us.
"""

import copy
from collections import defaultdict
from typing import Optional
from uuid import uuid4

from finance_tracker.models.audit import AuditEvent
from finance_tracker.services.storage.interface import (
    AuditStorageInterface,
    CollectionSnapshot,
    Document,
    DocumentStoreInterface,
    NotFoundError,
    Subscription,
)


class InMemoryDocumentStore(DocumentStoreInterface):
    """Dict-backed document store with push subscriptions."""

    def __init__(self):
        self._collections: dict[str, dict[str, Document]] = defaultdict(dict)
        self._collection_watchers: dict[str, list[Subscription]] = defaultdict(list)
        self._document_watchers: dict[tuple[str, str], list[Subscription]] = defaultdict(list)

    def _collection_snapshot(self, collection_path: str) -> CollectionSnapshot:
        return copy.deepcopy(self._collections.get(collection_path, {}))

    def _document_snapshot(self, collection_path: str, doc_id: str) -> Optional[Document]:
        data = self._collections.get(collection_path, {}).get(doc_id)
        return copy.deepcopy(data) if data is not None else None

    def _notify(self, collection_path: str, doc_id: str) -> None:
        for watcher in list(self._collection_watchers.get(collection_path, ())):
            watcher.push(self._collection_snapshot(collection_path))
        for watcher in list(self._document_watchers.get((collection_path, doc_id), ())):
            watcher.push(self._document_snapshot(collection_path, doc_id))

    @property
    def active_subscriptions(self) -> int:
        """Number of live subscription handles (leak checks in tests)."""
        return (
            sum(len(w) for w in self._collection_watchers.values())
            + sum(len(w) for w in self._document_watchers.values())
        )

    async def add_document(self, collection_path: str, data: Document) -> str:
        doc_id = uuid4().hex
        self._collections[collection_path][doc_id] = copy.deepcopy(data)
        self._notify(collection_path, doc_id)
        return doc_id

    async def get_document(
        self,
        collection_path: str,
        doc_id: str,
    ) -> Optional[Document]:
        return self._document_snapshot(collection_path, doc_id)

    async def update_document(
        self,
        collection_path: str,
        doc_id: str,
        fields: Document,
    ) -> None:
        documents = self._collections.get(collection_path, {})
        if doc_id not in documents:
            raise NotFoundError(f"Document not found: {collection_path}/{doc_id}")
        documents[doc_id].update(copy.deepcopy(fields))
        self._notify(collection_path, doc_id)

    async def set_document(
        self,
        collection_path: str,
        doc_id: str,
        data: Document,
    ) -> None:
        self._collections[collection_path][doc_id] = copy.deepcopy(data)
        self._notify(collection_path, doc_id)

    async def delete_document(self, collection_path: str, doc_id: str) -> bool:
        documents = self._collections.get(collection_path, {})
        if documents.pop(doc_id, None) is None:
            return False
        self._notify(collection_path, doc_id)
        return True

    def watch_collection(
        self,
        collection_path: str,
    ) -> Subscription[CollectionSnapshot]:
        async def start(subscription: Subscription) -> None:
            watchers = self._collection_watchers[collection_path]
            watchers.append(subscription)
            subscription.add_release(lambda: watchers.remove(subscription))
            subscription.push(self._collection_snapshot(collection_path))

        return Subscription(collection_path, start)

    def watch_document(
        self,
        collection_path: str,
        doc_id: str,
    ) -> Subscription[Optional[Document]]:
        key = (collection_path, doc_id)

        async def start(subscription: Subscription) -> None:
            watchers = self._document_watchers[key]
            watchers.append(subscription)
            subscription.add_release(lambda: watchers.remove(subscription))
            subscription.push(self._document_snapshot(collection_path, doc_id))

        return Subscription(f"{collection_path}/{doc_id}", start)


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events."""

    def __init__(self):
        self.events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True
