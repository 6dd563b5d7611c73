"""Tests for attachment acquisition, upload and descriptors.

Tests cover:
- Acquire/upload round trip through local blob storage
- Permission denial and cancelled picks
- Upload failure wrapping
- Attachment id format, discriminated parsing and previews
"""

import re
from pathlib import Path
from unittest.mock import Mock
from urllib.parse import urlparse
from urllib.request import url2pathname

import pytest

from app.errors import DevicePermissionDeniedError, PermissionDeniedError, UploadFailedError
from app.integrations.blob_storage import BlobStorage
from app.models.attachment import (
    AttachmentType,
    FileAttachment,
    ImageAttachment,
    VideoAttachment,
    dump_attachments,
    first_image_url,
    parse_attachments,
    preview_attachments,
)
from app.services.attachments import (
    AttachmentManager,
    FileMediaSource,
    MediaAsset,
    MediaSource,
    generate_attachment_id,
)


class CancellingSource(MediaSource):
    """Grants access but the user backs out of the picker."""

    def request_access(self, kind):
        return True

    def pick(self, kind):
        return None


class FixedSource(MediaSource):
    def __init__(self, asset: MediaAsset):
        self.asset = asset

    def request_access(self, kind):
        return True

    def pick(self, kind):
        return self.asset


@pytest.fixture
def photo(tmp_path) -> Path:
    path = tmp_path / "photo.png"
    path.write_bytes(b"\x89PNG fake image bytes")
    return path


# ============================================================================
# Acquisition
# ============================================================================

class TestAcquire:
    """Tests for AttachmentManager acquisition."""

    def test_acquire_image_round_trip(self, photo, blob_storage):
        """The attachment url resolves back to the uploaded bytes."""
        manager = AttachmentManager(FileMediaSource(photo), blob_storage)

        attachment = manager.acquire_image()

        assert isinstance(attachment, ImageAttachment)
        assert attachment.filename == "photo.png"
        assert attachment.size == len(photo.read_bytes())
        stored = Path(url2pathname(urlparse(attachment.url).path))
        assert stored.read_bytes() == photo.read_bytes()
        assert blob_storage.download(f"{attachment.id}_photo.png") == photo.read_bytes()

    def test_acquire_video_and_document_kinds(self, photo, blob_storage):
        manager = AttachmentManager(FileMediaSource(photo), blob_storage)

        assert isinstance(manager.acquire_video(), VideoAttachment)
        assert isinstance(manager.acquire_document(), FileAttachment)

    def test_denied_access_raises(self, tmp_path, blob_storage):
        """An unreadable source is a permission denial, not an upload error."""
        manager = AttachmentManager(FileMediaSource(tmp_path / "missing.jpg"), blob_storage)

        with pytest.raises(DevicePermissionDeniedError) as exc_info:
            manager.acquire_image()

        assert isinstance(exc_info.value, PermissionDeniedError)

    def test_no_media_source_raises(self, attachment_manager):
        with pytest.raises(DevicePermissionDeniedError):
            attachment_manager.acquire_image()

    def test_cancelled_pick_returns_none(self, blob_storage):
        manager = AttachmentManager(CancellingSource(), blob_storage)

        assert manager.acquire_image() is None
        assert list(blob_storage.root.iterdir()) == []

    def test_missing_filename_defaults_to_file(self, blob_storage):
        manager = AttachmentManager(FixedSource(MediaAsset(name="", data=b"x")), blob_storage)

        attachment = manager.acquire_document()

        assert attachment.filename == "file"


# ============================================================================
# Upload Failures
# ============================================================================

class TestUploadFailure:
    """Tests for upload error handling."""

    def test_unexpected_error_becomes_upload_failed(self):
        storage = Mock(spec=BlobStorage)
        storage.upload.side_effect = RuntimeError("connection reset")
        manager = AttachmentManager(None, storage)

        with pytest.raises(UploadFailedError) as exc_info:
            manager.attach_upload(AttachmentType.IMAGE, "a.jpg", b"data")

        assert "a.jpg" in exc_info.value.message
        storage.public_url.assert_not_called()

    def test_upload_failed_passes_through(self):
        storage = Mock(spec=BlobStorage)
        storage.upload.side_effect = UploadFailedError("bucket full")
        manager = AttachmentManager(None, storage)

        with pytest.raises(UploadFailedError, match="bucket full"):
            manager.attach_upload(AttachmentType.FILE, "a.pdf", b"data")

    def test_local_storage_rejects_path_escape(self, blob_storage):
        with pytest.raises(UploadFailedError):
            blob_storage.upload("../outside.txt", b"data", "text/plain")


# ============================================================================
# Descriptors
# ============================================================================

class TestAttachmentDescriptors:
    """Tests for attachment ids, parsing and previews."""

    def test_generated_id_format(self):
        attachment_id = generate_attachment_id()

        assert re.fullmatch(r"\d{13,}_[0-9a-z]{9}", attachment_id)
        assert generate_attachment_id() != attachment_id

    def test_parse_uses_type_tag(self):
        raw = [
            {"type": "video", "id": "1", "url": "u1", "filename": "clip.mp4", "size": 10},
            {"type": "image", "id": "2", "url": "u2", "filename": "pic.jpg", "size": 5},
        ]

        parsed = parse_attachments(raw)

        assert isinstance(parsed[0], VideoAttachment)
        assert isinstance(parsed[1], ImageAttachment)
        assert dump_attachments(parsed) == raw

    def test_parse_rejects_unknown_type(self):
        with pytest.raises(ValueError):
            parse_attachments([{"type": "audio", "id": "1", "url": "u", "filename": "a", "size": 1}])

    def test_first_image_url_skips_other_kinds(self):
        attachments = [
            FileAttachment(id="1", url="doc-url", filename="a.pdf", size=1),
            ImageAttachment(id="2", url="img-url", filename="b.jpg", size=1),
        ]

        assert first_image_url(attachments) == "img-url"
        assert first_image_url(attachments[:1]) is None

    def test_preview_truncates_to_three(self):
        attachments = [
            ImageAttachment(id=str(i), url=f"u{i}", filename=f"{i}.jpg", size=1)
            for i in range(5)
        ]

        preview = preview_attachments(attachments)

        assert [a.id for a in preview.shown] == ["0", "1", "2"]
        assert preview.overflow == 2

    def test_preview_without_overflow(self):
        preview = preview_attachments([])

        assert preview.shown == []
        assert preview.overflow == 0
