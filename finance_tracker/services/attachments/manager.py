"""
Attachment Manager

Uploads the optional receipt image of a new record and removes it again
when the record is deleted.

CRITICAL: Removal is best-effort. A failed blob deletion is written to the
audit log and never reaches the caller; deleting the record itself matters
more than cleaning up its image.
"""

import re
from datetime import datetime, timezone
from io import BytesIO
from typing import Callable, Optional
from uuid import UUID, uuid4

from PIL import Image, UnidentifiedImageError

from finance_tracker.audit import AuditLogger
from finance_tracker.config import get_settings
from finance_tracker.models.ledger import Attachment, AttachmentUpload, UserScope
from finance_tracker.services.attachments.blob_store import BlobStoreInterface


class UploadError(Exception):
    """An attachment could not be stored."""
    pass


_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")

# Pillow format names -> extensions used in settings
_FORMAT_ALIASES = {"jpeg": "jpg", "mpo": "jpg"}


def sanitize_filename(filename: str) -> str:
    """Keep the original name readable but free of path separators."""
    name = filename.replace("\\", "/").rsplit("/", 1)[-1]
    name = _UNSAFE_FILENAME_CHARS.sub("_", name).strip("._")
    return name or "attachment"


class AttachmentManager:
    """
    Stores attachments under a user-scoped, timestamped path.

    Path format: artifacts/{app_id}/users/{user_id}/{epoch_ms}-{token}-{filename}
    """

    def __init__(
        self,
        blob_store: BlobStoreInterface,
        audit_logger: Optional[AuditLogger] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self._blob_store = blob_store
        self._audit_logger = audit_logger or AuditLogger()
        self._clock = clock
        self._app_settings = get_settings().app

    def build_path(self, scope: UserScope, filename: str) -> str:
        millis = int(self._clock().timestamp() * 1000)
        token = uuid4().hex[:8]
        return f"{scope.root}/{millis}-{token}-{sanitize_filename(filename)}"

    def _check_upload(self, upload: AttachmentUpload) -> None:
        """
        Reject empty, oversized or non-image files before any network call.

        Raises:
            UploadError: If the file can't be stored as a receipt image
        """
        if upload.size_bytes == 0:
            raise UploadError(f"{upload.filename} is empty")

        limit = self._app_settings.max_upload_size_bytes
        if upload.size_bytes > limit:
            raise UploadError(
                f"{upload.filename} is {upload.size_bytes} bytes; "
                f"the limit is {self._app_settings.max_upload_size_mb} MB"
            )

        try:
            with Image.open(BytesIO(upload.data)) as img:
                detected = (img.format or "").lower()
        except (UnidentifiedImageError, OSError):
            raise UploadError(f"{upload.filename} is not a readable image")

        detected = _FORMAT_ALIASES.get(detected, detected)
        if detected not in self._app_settings.supported_formats_list:
            raise UploadError(
                f"Unsupported image format: {detected or 'unknown'}. "
                f"Allowed: {self._app_settings.supported_image_formats}"
            )

    async def upload(
        self,
        scope: UserScope,
        upload: AttachmentUpload,
        correlation_id: Optional[UUID] = None,
    ) -> Attachment:
        """
        Store an attachment and return its URL and path.

        Raises:
            UploadError: On validation or transport failure. Nothing is left
                behind in the blob store in that case.
        """
        self._check_upload(upload)
        path = self.build_path(scope, upload.filename)

        try:
            await self._blob_store.upload(path, upload.data, upload.content_type)
        except Exception as e:
            await self._audit_logger.log_external_service_error(
                service="blob_store",
                error_message=str(e),
                correlation_id=correlation_id,
            )
            raise UploadError(f"Failed to upload {upload.filename}: {e}") from e

        try:
            url = await self._blob_store.get_url(path)
        except Exception as e:
            await self.remove(path, correlation_id=correlation_id)
            raise UploadError(f"No retrieval URL for {upload.filename}: {e}") from e

        await self._audit_logger.log_attachment_uploaded(
            path=path,
            filename=upload.filename,
            size_bytes=upload.size_bytes,
            correlation_id=correlation_id,
        )
        return Attachment(url=url, path=path)

    async def remove(
        self,
        path: str,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """
        Delete an attachment. Never raises.

        Returns:
            True if the blob was deleted, False if deletion failed
        """
        try:
            await self._blob_store.delete(path)
        except Exception as e:
            await self._audit_logger.log_attachment_delete_failed(
                path=path,
                error_message=str(e),
                correlation_id=correlation_id,
            )
            return False

        await self._audit_logger.log_attachment_deleted(
            path=path,
            correlation_id=correlation_id,
        )
        return True
