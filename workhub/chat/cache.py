"""Room-scoped read-through cache for derived chat views.

Every key lives under ``chat_room_<room-id>_`` so a room mutation can drop
all of them with one prefix delete, whatever user suffix they carry.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING
from typing import Any

from django.core.cache import cache

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)

ACCESSIBLE_TTL = 30
UNREAD_COUNT_TTL = 30
ONLINE_COUNT_TTL = 30
LAST_MESSAGE_TTL = 60
MEMBERS_TTL = 5 * 60
STATS_TTL = 10 * 60
PRESENCE_TTL = 5 * 60

_MISSING = object()


def room_prefix(room_id: Any) -> str:
    return f"chat_room_{room_id}_"


def accessible_key(room_id: Any, user_id: Any) -> str:
    return f"{room_prefix(room_id)}accessible_{user_id}"


def unread_count_key(room_id: Any, user_id: Any) -> str:
    return f"{room_prefix(room_id)}unread_count_{user_id}"


def members_key(room_id: Any) -> str:
    return f"{room_prefix(room_id)}members"


def last_message_key(room_id: Any) -> str:
    return f"{room_prefix(room_id)}last_message"


def stats_key(room_id: Any) -> str:
    return f"{room_prefix(room_id)}stats"


def online_count_key(room_id: Any) -> str:
    return f"{room_prefix(room_id)}online_count"


def presence_key(room_id: Any, user_id: Any) -> str:
    # Outside the room prefix: presence must survive a room cache eviction.
    return f"chat_presence_{room_id}_{user_id}"


def get_or_compute(key: str, ttl: int, compute: Callable[[], Any]) -> Any:
    """Return the cached value for ``key``, computing and storing it on a miss.

    Falsy results (``False``, ``0``, ``None``, ``[]``) are cached too.
    """
    value = cache.get(key, _MISSING)
    if value is _MISSING:
        value = compute()
        cache.set(key, value, ttl)
    return value


def delete(key: str) -> None:
    cache.delete(key)


def delete_prefix(prefix: str) -> int:
    """Delete every key starting with ``prefix``; returns the count removed."""
    removed = cache.delete_pattern(f"{prefix}*")
    logger.debug("Evicted %s cache keys under %s", removed, prefix)
    return removed or 0


def invalidate_room(room_id: Any) -> int:
    return delete_prefix(room_prefix(room_id))


def invalidate_message_views(room_id: Any) -> None:
    """Drop the views a newly stored message makes stale."""
    cache.delete_many([last_message_key(room_id), stats_key(room_id)])
    delete_prefix(f"{room_prefix(room_id)}unread_count_")


def set_presence(room_id: Any, user_id: Any, *, online: bool) -> None:
    if online:
        cache.set(presence_key(room_id, user_id), True, PRESENCE_TTL)  # noqa: FBT003
    else:
        cache.delete(presence_key(room_id, user_id))
    cache.delete(online_count_key(room_id))


def count_present(room_id: Any, user_ids: list[int]) -> int:
    keys = [presence_key(room_id, uid) for uid in user_ids]
    return len(cache.get_many(keys)) if keys else 0
