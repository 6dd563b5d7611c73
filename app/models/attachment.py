"""Attachment descriptors.

Attachments are a closed set of kinds discriminated by ``type``. Consumers
match on the concrete class, never on free-form dictionaries.
"""

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter

# Number of attachments shown inline before collapsing into "+N more"
PREVIEW_LIMIT = 3


class AttachmentType(str, Enum):
    """Attachment kinds."""
    IMAGE = "image"
    VIDEO = "video"
    FILE = "file"


class _AttachmentBase(BaseModel):
    id: str = Field(min_length=1)
    url: str
    filename: str
    size: int = Field(ge=0)


class ImageAttachment(_AttachmentBase):
    type: Literal["image"] = "image"


class VideoAttachment(_AttachmentBase):
    type: Literal["video"] = "video"


class FileAttachment(_AttachmentBase):
    type: Literal["file"] = "file"


Attachment = Annotated[
    Union[ImageAttachment, VideoAttachment, FileAttachment],
    Field(discriminator="type"),
]

_attachment_list = TypeAdapter(list[Attachment])

_KIND_TO_CLASS: dict[AttachmentType, type[_AttachmentBase]] = {
    AttachmentType.IMAGE: ImageAttachment,
    AttachmentType.VIDEO: VideoAttachment,
    AttachmentType.FILE: FileAttachment,
}


def build_attachment(
    kind: AttachmentType, id: str, url: str, filename: str, size: int
) -> ImageAttachment | VideoAttachment | FileAttachment:
    """Construct the concrete attachment class for a kind."""
    return _KIND_TO_CLASS[kind](id=id, url=url, filename=filename, size=size)


def parse_attachments(raw: list[dict] | None) -> list[ImageAttachment | VideoAttachment | FileAttachment]:
    """Validate stored JSON into typed attachments, preserving order."""
    return _attachment_list.validate_python(raw or [])


def dump_attachments(attachments: list) -> list[dict]:
    """Serialize typed attachments for the JSON column."""
    return [a.model_dump(mode="json") for a in attachments]


def first_image_url(attachments: list) -> str | None:
    """URL of the first image attachment, if any."""
    for attachment in attachments:
        if isinstance(attachment, ImageAttachment):
            return attachment.url
    return None


class AttachmentPreview(BaseModel):
    """Truncated attachment list for compact rendering."""

    shown: list[Attachment]
    overflow: int


def preview_attachments(attachments: list, limit: int = PREVIEW_LIMIT) -> AttachmentPreview:
    """First ``limit`` attachments in insertion order plus the hidden count."""
    return AttachmentPreview(
        shown=list(attachments[:limit]),
        overflow=max(len(attachments) - limit, 0),
    )
