"""Chat publishers: build a payload and emit it onto the room stream.

Delivery is best effort. A transport failure is logged and dropped so it can
never undo a stored message or fail the request that produced it.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING
from typing import Any

from workhub.chat.api.serializers import MessageSerializer
from workhub.realtime.socketio import emit_event_to_room
from workhub.realtime.socketio import room_for_chat

if TYPE_CHECKING:  # import for type checking only
    from workhub.chat.models import Message

logger = logging.getLogger(__name__)


def build_message_payload(message: Message) -> dict[str, Any]:
    return dict(MessageSerializer(message).data)


def publish_new_message(message: Message) -> bool:
    """Publish a stored message to every subscriber of its room."""
    try:
        payload = build_message_payload(message)
        emit_event_to_room(room_for_chat(message.room_id), "new_message", payload)
    except Exception:
        logger.exception(
            "Failed to publish message %s to chat room %s",
            message.pk,
            message.room_id,
        )
        return False
    return True
