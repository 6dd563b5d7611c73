"""Attachment acquisition and upload.

The manager asks a media source for an asset, uploads it to blob storage
under ``{id}_{original name}`` and returns a typed attachment. It knows
nothing about subscription tiers; callers check limits first.
"""

import logging
import mimetypes
import os
import secrets
import string
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

from app.errors import DevicePermissionDeniedError, UploadFailedError
from app.integrations.blob_storage import BlobStorage
from app.models.attachment import AttachmentType, build_attachment

logger = logging.getLogger(__name__)

_ID_ALPHABET = string.digits + string.ascii_lowercase
_ID_SUFFIX_LENGTH = 9
DEFAULT_CONTENT_TYPE = "application/octet-stream"


@dataclass
class MediaAsset:
    """Raw media handed over by a source."""

    name: str
    data: bytes
    content_type: str = DEFAULT_CONTENT_TYPE

    @property
    def size(self) -> int:
        return len(self.data)


class MediaSource(ABC):
    """Where media comes from (device library, document picker, filesystem)."""

    @abstractmethod
    def request_access(self, kind: AttachmentType) -> bool:
        """Ask for access to the given kind of media."""

    @abstractmethod
    def pick(self, kind: AttachmentType) -> MediaAsset | None:
        """Return the chosen asset, or None if the user cancelled."""


class FileMediaSource(MediaSource):
    """Media source reading a single file from the local filesystem."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def request_access(self, kind: AttachmentType) -> bool:
        return self.path.is_file() and os.access(self.path, os.R_OK)

    def pick(self, kind: AttachmentType) -> MediaAsset | None:
        content_type, _ = mimetypes.guess_type(self.path.name)
        return MediaAsset(
            name=self.path.name,
            data=self.path.read_bytes(),
            content_type=content_type or DEFAULT_CONTENT_TYPE,
        )


def generate_attachment_id() -> str:
    """Collision-resistant id: millisecond timestamp plus random base36 suffix."""
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(_ID_SUFFIX_LENGTH))
    return f"{int(time.time() * 1000)}_{suffix}"


class AttachmentManager:
    """Acquires media and turns it into hosted attachments."""

    def __init__(self, media_source: MediaSource | None, blob_storage: BlobStorage) -> None:
        self.media_source = media_source
        self.blob_storage = blob_storage

    def acquire_image(self):
        return self._acquire(AttachmentType.IMAGE)

    def acquire_video(self):
        return self._acquire(AttachmentType.VIDEO)

    def acquire_document(self):
        return self._acquire(AttachmentType.FILE)

    def _acquire(self, kind: AttachmentType):
        """Request access, pick and upload one asset.

        Returns:
            The attachment, or None if the pick was cancelled

        Raises:
            DevicePermissionDeniedError: If access to the source was refused
            UploadFailedError: If the upload failed
        """
        if self.media_source is None:
            raise DevicePermissionDeniedError("No media source available")

        if not self.media_source.request_access(kind):
            logger.info("Media access denied", extra={"kind": kind.value})
            raise DevicePermissionDeniedError(f"Permission to access {kind.value} media is required")

        asset = self.media_source.pick(kind)
        if asset is None:
            return None

        return self.attach_upload(kind, asset.name, asset.data, asset.content_type)

    def attach_upload(
        self,
        kind: AttachmentType,
        filename: str,
        data: bytes,
        content_type: str | None = None,
    ):
        """Upload raw bytes and return the typed attachment."""
        filename = filename or "file"
        attachment_id = generate_attachment_id()
        object_name = f"{attachment_id}_{filename}"

        try:
            self.blob_storage.upload(object_name, data, content_type or DEFAULT_CONTENT_TYPE)
            url = self.blob_storage.public_url(object_name)
        except UploadFailedError:
            raise
        except Exception as e:
            logger.error(
                "Unexpected upload error",
                extra={"object_name": object_name, "error": str(e)},
                exc_info=True,
            )
            raise UploadFailedError(f"Upload of {filename} failed: {e}") from e

        attachment = build_attachment(
            kind,
            id=attachment_id,
            url=url,
            filename=filename,
            size=len(data),
        )

        logger.info(
            "Attachment uploaded",
            extra={"attachment_id": attachment_id, "kind": kind.value, "size": len(data)},
        )

        return attachment
