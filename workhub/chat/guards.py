"""Membership checks that gate every room stream and message operation."""

from __future__ import annotations

import uuid
from typing import Any

from workhub.chat import cache as room_cache
from workhub.chat.models import ChatRoomMembership


def normalize_room_id(room_id: Any) -> uuid.UUID | None:
    """Parse a client-supplied room id; ``None`` for anything malformed."""
    if isinstance(room_id, uuid.UUID):
        return room_id
    if not isinstance(room_id, str) or not room_id.strip():
        return None
    try:
        return uuid.UUID(room_id.strip())
    except ValueError:
        return None


def can_access_room(room_id: Any, user_id: Any) -> bool:
    """Return True only if the room exists and ``user_id`` is one of its members.

    Missing rooms and non-members are indistinguishable to the caller. The
    answer is cached for a short TTL; membership and room changes evict it.
    """
    parsed = normalize_room_id(room_id)
    if parsed is None or user_id is None:
        return False

    def _compute() -> bool:
        return ChatRoomMembership.objects.filter(
            room_id=parsed, user_id=user_id
        ).exists()

    return bool(
        room_cache.get_or_compute(
            room_cache.accessible_key(parsed, user_id),
            room_cache.ACCESSIBLE_TTL,
            _compute,
        )
    )


def get_membership(room_id: Any, user_id: Any) -> ChatRoomMembership | None:
    parsed = normalize_room_id(room_id)
    if parsed is None:
        return None
    return ChatRoomMembership.objects.filter(room_id=parsed, user_id=user_id).first()


def is_room_admin(room_id: Any, user_id: Any) -> bool:
    membership = get_membership(room_id, user_id)
    return bool(membership and membership.is_admin)
