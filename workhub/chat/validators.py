"""Content and attachment constraints applied to every incoming message."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from django.db import models
from django.utils.translation import gettext_lazy as _

if TYPE_CHECKING:
    from django.core.files.uploadedfile import UploadedFile

MAX_CONTENT_LENGTH = 2000
MAX_ATTACHMENT_BYTES = 10 * 1024 * 1024
MAX_FILENAME_LENGTH = 255

ALLOWED_ATTACHMENT_TYPES = frozenset(
    {
        "image/jpeg",
        "image/png",
        "image/gif",
        "image/webp",
        "application/pdf",
        "text/plain",
        "text/csv",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "application/vnd.ms-excel",
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    },
)

BLOCKED_FILENAME_RE = re.compile(r"\.(exe|bat|cmd|scr|vbs)\Z", re.IGNORECASE)


class RejectionReason(models.TextChoices):
    NOT_A_MEMBER = "not_a_member", _("You are not a member of this chat room.")
    EMPTY_MESSAGE = "empty_message", _("Message must have content or an attachment.")
    CONTENT_TOO_LONG = (
        "content_too_long",
        _("Message content is too long (maximum is 2000 characters)."),
    )
    ATTACHMENT_TOO_LARGE = (
        "attachment_too_large",
        _("Attachment must be less than 10MB."),
    )
    ATTACHMENT_TYPE_NOT_ALLOWED = (
        "attachment_type_not_allowed",
        _("Attachment type is not allowed."),
    )
    FILENAME_TOO_LONG = (
        "filename_too_long",
        _("Attachment filename is too long (maximum is 255 characters)."),
    )
    FILENAME_BLOCKED = (
        "filename_blocked",
        _("Attachment filename has a blocked extension."),
    )


def field_for(reason: RejectionReason) -> str:
    """Name of the input a rejection is reported against."""
    match reason:
        case RejectionReason.NOT_A_MEMBER:
            return "chat_room_id"
        case RejectionReason.EMPTY_MESSAGE | RejectionReason.CONTENT_TOO_LONG:
            return "content"
        case (
            RejectionReason.ATTACHMENT_TOO_LARGE
            | RejectionReason.ATTACHMENT_TYPE_NOT_ALLOWED
            | RejectionReason.FILENAME_TOO_LONG
            | RejectionReason.FILENAME_BLOCKED
        ):
            return "attachment"
    msg = f"Unknown rejection reason {reason!r}"
    raise ValueError(msg)


class MessageRejected(Exception):  # noqa: N818
    """An incoming message failed validation; nothing was persisted."""

    def __init__(self, reason: RejectionReason, message: str | None = None):
        self.reason = RejectionReason(reason)
        self.field = field_for(self.reason)
        self.message = message or str(self.reason.label)
        super().__init__(self.message)

    def as_dict(self) -> dict[str, object]:
        return {"code": self.reason.value, self.field: [self.message]}


def normalize_content_type(content_type: str | None) -> str:
    # "text/plain; charset=utf-8" -> "text/plain"
    return (content_type or "").split(";", 1)[0].strip().lower()


def validate_content_length(content: str) -> None:
    if len(content) > MAX_CONTENT_LENGTH:
        raise MessageRejected(RejectionReason.CONTENT_TOO_LONG)


def validate_attachment(upload: UploadedFile) -> None:
    """Check size, declared MIME type, then filename, in that order."""
    size = upload.size or 0
    if size > MAX_ATTACHMENT_BYTES:
        raise MessageRejected(RejectionReason.ATTACHMENT_TOO_LARGE)

    if normalize_content_type(upload.content_type) not in ALLOWED_ATTACHMENT_TYPES:
        raise MessageRejected(RejectionReason.ATTACHMENT_TYPE_NOT_ALLOWED)

    filename = upload.name or ""
    if len(filename) > MAX_FILENAME_LENGTH:
        raise MessageRejected(RejectionReason.FILENAME_TOO_LONG)
    # Windows drops trailing dots and spaces, so "setup.exe. " still runs.
    if BLOCKED_FILENAME_RE.search(filename.rstrip(". ")):
        raise MessageRejected(RejectionReason.FILENAME_BLOCKED)
