"""Storage exception hierarchy shared by every document store backend."""


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class PersistenceError(StorageError):
    """A write or point read against the store failed."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass


class SubscriptionError(StorageError):
    """A live subscription stopped because the transport failed."""

    def __init__(self, source: str, message: str):
        self.source = source
        super().__init__(f"Subscription to {source} failed: {message}")
