"""Cached read-only views of a room.

Values are plain JSON-friendly structures so they survive any cache backend.
"""

from __future__ import annotations

from typing import Any

from django.db.models import Count
from django.db.models import Max
from django.db.models import Q

from workhub.chat import cache as room_cache
from workhub.chat.models import ChatRoomMembership
from workhub.chat.models import Message


def unread_count(room_id: Any, user_id: int) -> int:
    """Unread messages in the room written by someone other than ``user_id``."""

    def _compute() -> int:
        return (
            Message.objects.filter(room_id=room_id, read=False)
            .exclude(user_id=user_id)
            .count()
        )

    return room_cache.get_or_compute(
        room_cache.unread_count_key(room_id, user_id),
        room_cache.UNREAD_COUNT_TTL,
        _compute,
    )


def members(room_id: Any) -> list[dict[str, Any]]:
    def _compute() -> list[dict[str, Any]]:
        rows = ChatRoomMembership.objects.filter(room_id=room_id).select_related(
            "user",
        )
        return [
            {"id": m.user_id, "name": m.user.display_name, "role": m.role}
            for m in rows
        ]

    return room_cache.get_or_compute(
        room_cache.members_key(room_id),
        room_cache.MEMBERS_TTL,
        _compute,
    )


def last_message(room_id: Any) -> dict[str, Any] | None:
    def _compute() -> dict[str, Any] | None:
        message = (
            Message.objects.filter(room_id=room_id)
            .select_related("user")
            .order_by("-created_at")
            .first()
        )
        if message is None:
            return None
        return {
            "id": str(message.pk),
            "content": message.content,
            "user_id": message.user_id,
            "user_name": message.user.display_name,
            "has_attachment": message.has_attachment,
            "created_at": message.created_at.isoformat(),
        }

    return room_cache.get_or_compute(
        room_cache.last_message_key(room_id),
        room_cache.LAST_MESSAGE_TTL,
        _compute,
    )


def stats(room_id: Any) -> dict[str, Any]:
    def _compute() -> dict[str, Any]:
        agg = Message.objects.filter(room_id=room_id).aggregate(
            message_count=Count("id"),
            attachment_count=Count("id", filter=~Q(attachment="")),
            last_activity=Max("created_at"),
        )
        last_activity = agg["last_activity"]
        return {
            "message_count": agg["message_count"],
            "member_count": ChatRoomMembership.objects.filter(room_id=room_id).count(),
            "attachment_count": agg["attachment_count"],
            "last_activity": last_activity.isoformat() if last_activity else None,
        }

    return room_cache.get_or_compute(
        room_cache.stats_key(room_id),
        room_cache.STATS_TTL,
        _compute,
    )


def online_count(room_id: Any) -> int:
    """Members holding a live presence key for the room.

    Presence is written when a socket subscribes and cleared on unsubscribe
    or disconnect, so this is an estimate bounded by the presence TTL.
    """

    def _compute() -> int:
        user_ids = list(
            ChatRoomMembership.objects.filter(room_id=room_id).values_list(
                "user_id",
                flat=True,
            ),
        )
        return room_cache.count_present(room_id, user_ids)

    return room_cache.get_or_compute(
        room_cache.online_count_key(room_id),
        room_cache.ONLINE_COUNT_TTL,
        _compute,
    )
