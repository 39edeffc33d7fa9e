"""Receipt attachment services package."""

from finance_tracker.services.attachments.blob_store import (
    BlobStoreError,
    BlobStoreInterface,
    CloudinaryBlobStore,
    InMemoryBlobStore,
)
from finance_tracker.services.attachments.manager import (
    AttachmentManager,
    UploadError,
    sanitize_filename,
)

__all__ = [
    "AttachmentManager",
    "BlobStoreError",
    "BlobStoreInterface",
    "CloudinaryBlobStore",
    "InMemoryBlobStore",
    "UploadError",
    "sanitize_filename",
]
