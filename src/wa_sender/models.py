from __future__ import annotations

import mimetypes
from enum import Enum
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class AttachmentKind(str, Enum):
    IMAGE = "image"
    VIDEO = "video"
    DOCUMENT = "document"


def classify_content_type(content_type: str | None) -> AttachmentKind:
    """Map a MIME type onto the attachment kind that selects the provider field."""
    value = (content_type or "").lower()
    if value.startswith("image/"):
        return AttachmentKind.IMAGE
    if value.startswith("video/"):
        return AttachmentKind.VIDEO
    return AttachmentKind.DOCUMENT


class Attachment(BaseModel):
    """
    A single media attachment.

    A message without media carries no Attachment at all, so a kind can
    never be set without a URL.
    """

    model_config = ConfigDict(frozen=True)

    kind: AttachmentKind
    url: str = Field(min_length=1)

    @classmethod
    def image(cls, url: str) -> Attachment:
        return cls(kind=AttachmentKind.IMAGE, url=url)

    @classmethod
    def video(cls, url: str) -> Attachment:
        return cls(kind=AttachmentKind.VIDEO, url=url)

    @classmethod
    def document(cls, url: str) -> Attachment:
        return cls(kind=AttachmentKind.DOCUMENT, url=url)

    @classmethod
    def from_file(cls, path: str | Path, content_type: str | None = None) -> Attachment:
        """
        Build an attachment for a local file.

        The URL is the file's file:// URI; nothing is uploaded, so the
        provider can only fetch it when it shares the filesystem.
        """
        file_path = Path(path).resolve()
        if content_type is None:
            content_type, _ = mimetypes.guess_type(file_path.name)
        return cls(kind=classify_content_type(content_type), url=file_path.as_uri())


class MessageStatus(str, Enum):
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"


class MessageRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    to: str
    text: str = ""
    attachment: Attachment | None = None
    status: MessageStatus = MessageStatus.PENDING
    timestamp: int  # epoch milliseconds
    error: str | None = None

    def resolve(self, error: str | None = None) -> MessageRecord:
        """Return the record moved out of pending: sent without an error, failed with one."""
        if self.status is not MessageStatus.PENDING:
            raise ValueError(f"Message {self.id} is already {self.status.value}")
        status = MessageStatus.SENT if error is None else MessageStatus.FAILED
        return self.model_copy(update={"status": status, "error": error})


# --- Relay wire format ---


class RelayRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    api_key: str = Field(alias="apiKey")
    to: str | None = None
    text: str | None = None
    file_url: str | None = Field(default=None, alias="fileUrl")
    file_type: AttachmentKind | None = Field(default=None, alias="fileType")
    action: Literal["verify"] | None = None

    @classmethod
    def for_record(cls, api_key: str, record: MessageRecord) -> RelayRequest:
        attachment = record.attachment
        return cls(
            api_key=api_key,
            to=record.to,
            text=record.text or None,
            file_url=attachment.url if attachment else None,
            file_type=attachment.kind if attachment else None,
        )

    @classmethod
    def verification(cls, api_key: str) -> RelayRequest:
        return cls(api_key=api_key, action="verify")

    def to_payload(self) -> dict[str, str]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class RelayResponse(BaseModel):
    """Provider response as relayed back, plus the normalised success flag."""

    model_config = ConfigDict(extra="allow")

    success: bool | None = None
    message: str | None = None
    error: str | None = None
    details: str | None = None


class VerifyResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    is_valid: bool = Field(alias="isValid")
    message: str | None = None
