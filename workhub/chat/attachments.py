"""Signed, time-limited download links for message attachments."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from django.conf import settings
from django.core import signing
from django.http import FileResponse
from django.http import Http404
from django.urls import reverse

from workhub.chat.models import Message

if TYPE_CHECKING:
    from django.http import HttpRequest

logger = logging.getLogger(__name__)

_SALT = "workhub.chat.attachment"


def url_max_age() -> int:
    return int(getattr(settings, "CHAT_ATTACHMENT_URL_MAX_AGE", 300))


def attachment_token(message: Message) -> str:
    return signing.TimestampSigner(salt=_SALT).sign(str(message.pk))


def resolve_attachment_token(token: str) -> str | None:
    """Return the message id a token was issued for, or None if bad or expired."""
    try:
        return signing.TimestampSigner(salt=_SALT).unsign(token, max_age=url_max_age())
    except signing.BadSignature:
        return None


def attachment_url(message: Message, request: HttpRequest | None = None) -> str | None:
    if not message.has_attachment:
        return None
    path = reverse("chat-attachment", kwargs={"token": attachment_token(message)})
    return request.build_absolute_uri(path) if request is not None else path


def download_attachment(request: HttpRequest, token: str) -> FileResponse:
    """Stream an attachment; the signed token itself is the credential."""
    message_id = resolve_attachment_token(token)
    if message_id is None:
        raise Http404
    message = Message.objects.filter(pk=message_id).first()
    if message is None or not message.has_attachment:
        raise Http404
    try:
        handle = message.attachment.open("rb")
    except FileNotFoundError as exc:
        logger.warning("Attachment file missing for message %s", message.pk)
        raise Http404 from exc
    response = FileResponse(
        handle,
        as_attachment=False,
        filename=message.attachment_name,
    )
    if message.attachment_content_type:
        response["Content-Type"] = message.attachment_content_type
    response["X-Content-Type-Options"] = "nosniff"
    return response
