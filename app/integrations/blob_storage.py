"""Blob storage clients for attachment hosting.

Contract:
    upload(name, data, content_type) -> url
    public_url(name) -> url
    download(name) -> bytes
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from urllib.parse import quote

import httpx

from app.config import get_settings
from app.errors import UploadFailedError

logger = logging.getLogger(__name__)


class BlobStorage(ABC):
    """Abstract blob store."""

    @abstractmethod
    def upload(self, name: str, data: bytes, content_type: str) -> str:
        """Store ``data`` under ``name`` and return its public URL.

        Raises:
            UploadFailedError: If the store rejects the object
        """

    @abstractmethod
    def public_url(self, name: str) -> str:
        """Resolvable URL for a stored object."""

    @abstractmethod
    def download(self, name: str) -> bytes:
        """Fetch the bytes of a stored object."""

    def close(self) -> None:
        """Release client resources."""


class HttpBlobStorage(BlobStorage):
    """Bucket-based object storage over HTTP (Supabase storage REST layout)."""

    def __init__(
        self,
        base_url: str,
        bucket: str,
        api_key: str = "",
        timeout: float = 10.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.bucket = bucket
        self.api_key = api_key
        self.timeout = timeout
        self._client: httpx.Client | None = None

    @property
    def client(self) -> httpx.Client:
        """Lazy-initialize HTTP client."""
        if self._client is None:
            headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}
            self._client = httpx.Client(timeout=self.timeout, headers=headers)
        return self._client

    def _object_url(self, name: str) -> str:
        return f"{self.base_url}/storage/v1/object/{self.bucket}/{quote(name)}"

    def public_url(self, name: str) -> str:
        return f"{self.base_url}/storage/v1/object/public/{self.bucket}/{quote(name)}"

    def upload(self, name: str, data: bytes, content_type: str) -> str:
        try:
            response = self.client.post(
                self._object_url(name),
                content=data,
                headers={"Content-Type": content_type},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(
                "Blob upload rejected",
                extra={
                    "object_name": name,
                    "status_code": e.response.status_code,
                    "response": e.response.text,
                },
            )
            raise UploadFailedError(f"Upload of {name} failed with HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            logger.error("Blob upload failed", extra={"object_name": name, "error": str(e)})
            raise UploadFailedError(f"Upload of {name} failed: {e}") from e

        logger.info("Blob uploaded", extra={"object_name": name, "size": len(data)})
        return self.public_url(name)

    def download(self, name: str) -> bytes:
        response = self.client.get(self.public_url(name))
        response.raise_for_status()
        return response.content

    def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            self._client.close()
            self._client = None


class LocalBlobStorage(BlobStorage):
    """Directory-backed blob store for development."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def _path(self, name: str) -> Path:
        path = (self.root / name).resolve()
        if self.root.resolve() not in path.parents:
            raise UploadFailedError(f"Invalid object name: {name}")
        return path

    def upload(self, name: str, data: bytes, content_type: str) -> str:
        try:
            self._path(name).write_bytes(data)
        except OSError as e:
            raise UploadFailedError(f"Upload of {name} failed: {e}") from e
        return self.public_url(name)

    def public_url(self, name: str) -> str:
        return self._path(name).as_uri()

    def download(self, name: str) -> bytes:
        return self._path(name).read_bytes()


def build_blob_storage() -> BlobStorage:
    """Blob storage configured from settings."""
    settings = get_settings()
    if settings.BLOB_STORAGE_URL:
        return HttpBlobStorage(
            base_url=settings.BLOB_STORAGE_URL,
            bucket=settings.BLOB_STORAGE_BUCKET,
            api_key=settings.BLOB_STORAGE_KEY,
            timeout=settings.HTTP_TIMEOUT_SECONDS,
        )
    return LocalBlobStorage(settings.LOCAL_BLOB_DIR)
