from __future__ import annotations

import logging
from typing import TYPE_CHECKING
from typing import Any

from django.conf import settings
from django.db import IntegrityError
from django.db import transaction
from django.utils import timezone

from workhub.chat import cache as room_cache
from workhub.chat.guards import can_access_room
from workhub.chat.guards import normalize_room_id
from workhub.chat.models import DIRECT_MESSAGE_NAME
from workhub.chat.models import ChatRoom
from workhub.chat.models import ChatRoomMembership
from workhub.chat.models import Message
from workhub.chat.models import direct_key_for
from workhub.chat.sanitization import sanitize_content
from workhub.chat.validators import MessageRejected
from workhub.chat.validators import RejectionReason
from workhub.chat.validators import validate_attachment
from workhub.chat.validators import validate_content_length

if TYPE_CHECKING:
    from collections.abc import Iterable

    from django.core.files.uploadedfile import UploadedFile

    from workhub.users.models import User

logger = logging.getLogger(__name__)

DEFAULT_READ_BATCH_SIZE = 100


def read_batch_size() -> int:
    return int(getattr(settings, "CHAT_READ_BATCH_SIZE", DEFAULT_READ_BATCH_SIZE))


# Ingestion
# ------------------------------------------------------------------------------


def ingest_message(
    room_id: Any,
    author: User,
    content: str | None = None,
    attachment: UploadedFile | None = None,
) -> Message:
    """Validate, sanitize and store one message from ``author``.

    Checks run in a fixed order so the first failing one decides the reason:
    membership, emptiness, sanitized length, then the attachment. Raises
    ``MessageRejected`` without writing anything on failure. Fan-out happens
    from the ``post_save`` handler once the transaction commits.
    """
    if not can_access_room(room_id, author.pk):
        raise MessageRejected(RejectionReason.NOT_A_MEMBER)

    text = sanitize_content(content)
    if not text and attachment is None:
        raise MessageRejected(RejectionReason.EMPTY_MESSAGE)
    validate_content_length(text)
    if attachment is not None:
        validate_attachment(attachment)

    room_pk = normalize_room_id(room_id)
    with transaction.atomic():
        # The cached membership answer may predate a room deletion.
        if not ChatRoom.objects.filter(pk=room_pk).exists():
            raise MessageRejected(RejectionReason.NOT_A_MEMBER)

        message = Message(room_id=room_pk, user=author, content=text)
        if attachment is not None:
            message.attachment_name = attachment.name
            message.attachment_content_type = attachment.content_type or ""
            message.attachment_size = attachment.size
            message.attachment.save(attachment.name, attachment, save=False)
        try:
            message.save()
        except Exception:
            if message.has_attachment:
                message.attachment.delete(save=False)
            raise
        # Keeps room lists ordered by latest activity.
        ChatRoom.objects.filter(pk=room_pk).update(updated_at=message.created_at)

    logger.info(
        "Stored message %s in room %s from user %s",
        message.pk,
        room_pk,
        author.pk,
    )
    return message


# Read state
# ------------------------------------------------------------------------------


def mark_room_messages_read(
    room_id: Any,
    user_id: int,
    batch_size: int | None = None,
) -> int:
    """Mark up to ``batch_size`` unread messages of the room as read.

    Oldest messages go first and the reader's own messages are never touched.
    All rows in the batch share one ``read_at``. The update is filtered on
    ``read=False`` so repeated or concurrent runs only count fresh changes.
    """
    limit = batch_size or read_batch_size()
    ids = list(
        Message.objects.filter(room_id=room_id, read=False)
        .exclude(user_id=user_id)
        .order_by("created_at")
        .values_list("id", flat=True)[:limit],
    )
    updated = 0
    if ids:
        now = timezone.now()
        updated = Message.objects.filter(id__in=ids, read=False).update(
            read=True,
            read_at=now,
            updated_at=now,
        )
    room_cache.delete(room_cache.unread_count_key(room_id, user_id))
    logger.info(
        "Marked %s messages as read in room %s for user %s",
        updated,
        room_id,
        user_id,
    )
    return updated


# Rooms and membership
# ------------------------------------------------------------------------------


def create_group_room(
    name: str,
    creator: User,
    member_ids: Iterable[int] = (),
) -> ChatRoom:
    """Create a named room; the creator becomes its admin."""
    with transaction.atomic():
        room = ChatRoom.objects.create(name=name, is_direct_message=False)
        ChatRoomMembership.objects.create(
            room=room,
            user=creator,
            role=ChatRoomMembership.Role.ADMIN,
        )
        others = {int(uid) for uid in member_ids} - {creator.pk}
        ChatRoomMembership.objects.bulk_create(
            [ChatRoomMembership(room=room, user_id=uid) for uid in sorted(others)],
        )
    return room


def get_or_create_direct_room(user: User, other: User) -> tuple[ChatRoom, bool]:
    """Return the DM room shared by exactly ``user`` and ``other``.

    Concurrent callers for the same pair converge on one room through the
    unique ``direct_key``.
    """
    key = direct_key_for([user.pk, other.pk])
    existing = ChatRoom.objects.filter(direct_key=key).first()
    if existing is not None:
        return existing, False
    try:
        with transaction.atomic():
            room = ChatRoom.objects.create(
                name=DIRECT_MESSAGE_NAME,
                is_direct_message=True,
                direct_key=key,
            )
            ChatRoomMembership.objects.bulk_create(
                [
                    ChatRoomMembership(room=room, user=user),
                    ChatRoomMembership(room=room, user=other),
                ],
            )
    except IntegrityError:
        return ChatRoom.objects.get(direct_key=key), False
    return room, True


def add_member(
    room: ChatRoom,
    user: User,
    role: str = ChatRoomMembership.Role.MEMBER,
) -> tuple[ChatRoomMembership, bool]:
    if room.is_direct_message:
        msg = "Members cannot be added to a direct message."
        raise ValueError(msg)
    return ChatRoomMembership.objects.get_or_create(
        room=room,
        user=user,
        defaults={"role": role},
    )


def remove_member(room: ChatRoom, user_id: int) -> bool:
    if room.is_direct_message:
        msg = "Members cannot be removed from a direct message."
        raise ValueError(msg)
    membership = ChatRoomMembership.objects.filter(room=room, user_id=user_id).first()
    if membership is None:
        return False
    # Instance delete so post_delete fires and evicts the room cache.
    membership.delete()
    return True
