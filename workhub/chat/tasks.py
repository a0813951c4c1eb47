import logging

from celery import shared_task
from celery.exceptions import Reject
from django.contrib.auth import get_user_model
from django.db import DatabaseError
from django.db import transaction
from redis.exceptions import RedisError

from workhub.chat.models import ChatRoom
from workhub.chat.services import mark_room_messages_read

logger = logging.getLogger(__name__)

User = get_user_model()


@shared_task(
    name="chat.mark_messages_as_read",
    bind=True,
    autoretry_for=(DatabaseError, RedisError),
    retry_backoff=True,
    max_retries=2,
)
def mark_messages_as_read(self, room_id: str, user_id: int) -> int:
    """Mark the next batch of a room's messages as read for ``user_id``.

    A missing room or user is permanent: the task is rejected, not retried.
    Database and Redis errors are retried with backoff, three attempts in all.

    Returns:
        Number of messages that changed from unread to read.
    """
    try:
        room = ChatRoom.objects.get(pk=room_id)
        user = User.objects.get(pk=user_id)
    except (ChatRoom.DoesNotExist, User.DoesNotExist) as exc:
        logger.warning(
            "Skipping read tracking for room %s user %s: %s",
            room_id,
            user_id,
            exc,
        )
        raise Reject(str(exc), requeue=False) from exc

    return mark_room_messages_read(room.pk, user.pk)


def enqueue_mark_read(room_id, user_id: int) -> None:
    """Queue the read tracker once the surrounding transaction commits."""
    transaction.on_commit(
        lambda: mark_messages_as_read.delay(str(room_id), int(user_id)),
    )
