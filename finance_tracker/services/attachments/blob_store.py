"""
Blob Stores for Receipt Attachments

DESIGN DECISION: We use Cloudinary because:
1. Reliable cloud infrastructure with durable delivery URLs
2. Simple API for upload, URL building and deletion
3. Free tier sufficient for personal use

The store is passive: bytes go in under a path, a URL comes out, and the
path can be deleted. No transformations are applied to the images.
"""

from abc import ABC, abstractmethod
from pathlib import PurePosixPath
from typing import Optional

import cloudinary
import cloudinary.exceptions
import cloudinary.uploader
from cloudinary import CloudinaryImage
from tenacity import retry, stop_after_attempt, wait_exponential

from finance_tracker.config import get_settings


class BlobStoreError(Exception):
    """The blob service rejected or failed an operation."""
    pass


class BlobStoreInterface(ABC):
    """Upload-by-path, retrieval-URL issuance and delete-by-path."""

    @abstractmethod
    async def upload(self, path: str, data: bytes, content_type: str) -> None:
        pass

    @abstractmethod
    async def get_url(self, path: str) -> str:
        pass

    @abstractmethod
    async def delete(self, path: str) -> None:
        """
        Raises:
            BlobStoreError: If nothing is stored at ``path`` or deletion fails
        """
        pass


class InMemoryBlobStore(BlobStoreInterface):
    """Keeps blobs in a dict; URLs use a memory:// scheme."""

    def __init__(self):
        self.blobs: dict[str, tuple[bytes, str]] = {}

    async def upload(self, path: str, data: bytes, content_type: str) -> None:
        self.blobs[path] = (data, content_type)

    async def get_url(self, path: str) -> str:
        if path not in self.blobs:
            raise BlobStoreError(f"No blob at {path}")
        return f"memory://{path}"

    async def delete(self, path: str) -> None:
        if self.blobs.pop(path, None) is None:
            raise BlobStoreError(f"No blob at {path}")


class CloudinaryBlobStore(BlobStoreInterface):
    """
    Cloudinary-backed blob store.

    Paths map to Cloudinary public IDs with the file extension removed,
    since Cloudinary tracks the format separately.
    """

    def __init__(self):
        self._settings = get_settings().cloudinary
        self._configured = False
        self._urls: dict[str, str] = {}

    def _configure(self):
        """Configure Cloudinary SDK."""
        if not self._configured:
            cloudinary.config(
                cloud_name=self._settings.cloud_name,
                api_key=self._settings.api_key,
                api_secret=self._settings.api_secret,
                secure=True,
            )
            self._configured = True

    @staticmethod
    def public_id(path: str) -> str:
        return str(PurePosixPath(path).with_suffix(""))

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def upload(self, path: str, data: bytes, content_type: str) -> None:
        self._configure()
        try:
            result = cloudinary.uploader.upload(
                data,
                public_id=self.public_id(path),
                resource_type="image",
                overwrite=False,
            )
        except cloudinary.exceptions.Error as e:
            raise BlobStoreError(f"Cloudinary error: {e}")

        url = result.get("secure_url", result.get("url", ""))
        if not url:
            raise BlobStoreError("No URL returned from Cloudinary")
        self._urls[path] = url

    async def get_url(self, path: str) -> str:
        self._configure()
        cached: Optional[str] = self._urls.get(path)
        if cached:
            return cached
        return CloudinaryImage(self.public_id(path)).build_url(secure=True)

    async def delete(self, path: str) -> None:
        self._configure()
        try:
            result = cloudinary.uploader.destroy(
                self.public_id(path),
                resource_type="image",
                invalidate=True,
            )
        except cloudinary.exceptions.Error as e:
            raise BlobStoreError(f"Cloudinary error: {e}")

        if result.get("result") != "ok":
            raise BlobStoreError(f"Cloudinary could not delete {path}: {result.get('result')}")
        self._urls.pop(path, None)
