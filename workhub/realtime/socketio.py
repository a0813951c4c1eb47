"""Global Socket.IO server for the frontend.

Every chat room is a Socket.IO room named ``chat_room_<room-id>``; a client
joins it with ``subscribe`` once the membership guard agrees. Each user also
sits in a private ``user_<id>`` room.

Current frontend convention:
- URL base: ws://<host>:8000
- Socket.IO path: /ws/chat/
- Auth: `query.token`, `auth.token` or an `Authorization: Bearer` header
  (JWT access token)

Client events: subscribe, unsubscribe, send_message, typing, mark_read.
Server events: new_message, typing, user_status, message_read, error.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any
from urllib.parse import parse_qs

import socketio
from asgiref.sync import async_to_sync
from asgiref.sync import sync_to_async
from channels.db import database_sync_to_async
from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.utils import timezone
from rest_framework.exceptions import AuthenticationFailed
from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework_simplejwt.exceptions import TokenError

from workhub.chat import cache as room_cache
from workhub.chat.guards import can_access_room
from workhub.chat.guards import normalize_room_id
from workhub.chat.services import ingest_message
from workhub.chat.tasks import enqueue_mark_read
from workhub.chat.validators import MessageRejected

logger = logging.getLogger(__name__)


def _client_manager() -> socketio.AsyncManager | None:
    # A shared Redis queue lets several server processes reach each other's
    # sockets; a single process keeps the default in-memory manager.
    url = getattr(settings, "SOCKETIO_MESSAGE_QUEUE", "")
    if not url:
        return None
    return socketio.AsyncRedisManager(url)


sio = socketio.AsyncServer(
    async_mode="asgi",
    cors_allowed_origins="*",
    client_manager=_client_manager(),
    logger=False,
    engineio_logger=False,
)

RATE_LIMIT_WINDOW_SECONDS = 60


@dataclass(frozen=True)
class UserRealtimeContext:
    user_id: int
    user_name: str


def room_for_user(user_id: int) -> str:
    return f"user_{int(user_id)}"


def room_for_chat(room_id: Any) -> str:
    return f"chat_room_{room_id}"


@database_sync_to_async
def _get_user_context_from_access_token(token: str) -> UserRealtimeContext:
    jwt_auth = JWTAuthentication()
    validated = jwt_auth.get_validated_token(token)
    user = jwt_auth.get_user(validated)
    return UserRealtimeContext(user_id=int(user.id), user_name=user.display_name)


def _extract_token(environ: dict[str, Any], auth: Any | None) -> str | None:
    """Extract JWT token from Socket.IO environ/auth.

    Handles python-socketio environ shapes across ASGI/WSGI servers.
    """

    scope: Any = environ
    if isinstance(environ, dict) and "asgi.scope" in environ:
        inner = environ.get("asgi.scope")
        if isinstance(inner, dict):
            scope = inner

    query_string: str | bytes = ""
    if isinstance(scope, dict) and "query_string" in scope:
        query_string = scope.get("query_string", b"")
    elif isinstance(scope, dict) and "QUERY_STRING" in scope:
        query_string = scope.get("QUERY_STRING", "")

    if isinstance(query_string, (bytes, bytearray)):
        query_string = query_string.decode(errors="ignore")

    token = parse_qs(str(query_string)).get("token", [None])[0]
    if isinstance(token, str) and token:
        return token

    # Allow `auth: { token }` as fallback.
    if isinstance(auth, dict):
        auth_token = auth.get("token")
        if isinstance(auth_token, str) and auth_token:
            return auth_token

    header = environ.get("HTTP_AUTHORIZATION") if isinstance(environ, dict) else None
    if isinstance(header, str):
        scheme, _, value = header.partition(" ")
        if scheme.lower() == "bearer" and value.strip():
            return value.strip()

    return None


@database_sync_to_async
def _touch_last_seen(user_id: int) -> None:
    get_user_model().objects.filter(pk=user_id).update(last_seen_at=timezone.now())


@database_sync_to_async
def _can_access(room_id: Any, user_id: int) -> bool:
    return can_access_room(room_id, user_id)


@database_sync_to_async
def _ingest(room_id: Any, user_id: int, content: Any) -> str:
    author = get_user_model().objects.get(pk=user_id)
    text = content if isinstance(content, str) else None
    return str(ingest_message(room_id, author, content=text).pk)


@database_sync_to_async
def _enqueue_mark_read(room_id: Any, user_id: int) -> None:
    enqueue_mark_read(room_id, user_id)


@sync_to_async
def _set_presence(room_id: Any, user_id: int, *, online: bool) -> None:
    room_cache.set_presence(room_id, user_id, online=online)


def message_rate_limit() -> int:
    return int(getattr(settings, "CHAT_MESSAGE_RATE_LIMIT", 10))


@sync_to_async
def _within_rate_limit(user_id: int, room_id: Any) -> bool:
    """Count one send against the per-minute budget of (user, room)."""
    key = f"chat_rate_limit:{user_id}:{room_id}"
    cache.add(key, 0, RATE_LIMIT_WINDOW_SECONDS)
    try:
        count = cache.incr(key)
    except ValueError:
        # Expired between add and incr; this send opens a new window.
        cache.set(key, 1, RATE_LIMIT_WINDOW_SECONDS)
        count = 1
    return count <= message_rate_limit()


async def _session(sid: str) -> dict[str, Any]:
    session = await sio.get_session(sid)
    return session if isinstance(session, dict) else {}


async def _emit_error(sid: str, code: str, message: str, **extra: Any) -> dict:
    payload = {"code": code, "message": message, **extra}
    await sio.emit("error", payload, to=sid)
    return {"ok": False, **payload}


async def _emit_to_chat(room_id: Any, event: str, payload: dict, **kwargs) -> None:
    try:
        await sio.emit(event, payload, room=room_for_chat(room_id), **kwargs)
    except Exception:
        logger.exception("Failed to publish %s to chat room %s", event, room_id)


def _room_id_from(data: Any):
    raw = data.get("chat_room_id") if isinstance(data, dict) else None
    return normalize_room_id(raw)


@sio.event
async def connect(sid: str, environ: dict[str, Any], auth: Any | None = None):
    token = _extract_token(environ, auth)
    if not token:
        msg = "unauthorized"
        raise ConnectionRefusedError(msg)

    try:
        ctx = await _get_user_context_from_access_token(token)
    except TokenError as exc:
        message = str(exc)
        if "expired" in message.lower():
            msg = "jwt_expired"
            raise ConnectionRefusedError(msg) from exc
        msg = "unauthorized"
        raise ConnectionRefusedError(msg) from exc
    except AuthenticationFailed as exc:  # user not found / inactive, etc.
        msg = "unauthorized"
        raise ConnectionRefusedError(msg) from exc
    except Exception as exc:
        logger.exception("Socket.IO connect error")
        msg = "server_error"
        raise ConnectionRefusedError(msg) from exc

    await sio.save_session(
        sid,
        {"user_id": ctx.user_id, "user_name": ctx.user_name, "chat_rooms": []},
    )
    await sio.enter_room(sid, room_for_user(ctx.user_id))
    await _touch_last_seen(ctx.user_id)


@sio.event
async def disconnect(sid: str, *args: Any):
    session = await _session(sid)
    user_id = session.get("user_id")
    if user_id is None:
        return
    for room_id in session.get("chat_rooms", []):
        await _leave_chat(sid, session, room_id)
    await _touch_last_seen(user_id)


def _status_payload(session: dict[str, Any], room_id: Any, status: str) -> dict:
    return {
        "chat_room_id": str(room_id),
        "user_id": session["user_id"],
        "user_name": session.get("user_name", ""),
        "status": status,
        "timestamp": timezone.now().isoformat(),
    }


async def _leave_chat(sid: str, session: dict[str, Any], room_id: Any) -> None:
    await sio.leave_room(sid, room_for_chat(room_id))
    await _set_presence(room_id, session["user_id"], online=False)
    await _emit_to_chat(room_id, "user_status", _status_payload(session, room_id, "left"))


@sio.event
async def subscribe(sid: str, data: Any):
    session = await _session(sid)
    user_id = session.get("user_id")
    room_id = _room_id_from(data)
    if user_id is None or room_id is None or not await _can_access(room_id, user_id):
        return await _emit_error(sid, "not_found", "Chat room not found.")

    await sio.enter_room(sid, room_for_chat(room_id))
    rooms = [r for r in session.get("chat_rooms", []) if r != str(room_id)]
    session["chat_rooms"] = [*rooms, str(room_id)]
    await sio.save_session(sid, session)
    await _set_presence(room_id, user_id, online=True)
    await _emit_to_chat(
        room_id,
        "user_status",
        _status_payload(session, room_id, "joined"),
    )
    return {"ok": True, "chat_room_id": str(room_id)}


@sio.event
async def unsubscribe(sid: str, data: Any):
    session = await _session(sid)
    room_id = _room_id_from(data)
    if session.get("user_id") is None or room_id is None:
        return {"ok": False}
    if str(room_id) not in session.get("chat_rooms", []):
        return {"ok": True, "chat_room_id": str(room_id)}
    session["chat_rooms"] = [
        r for r in session.get("chat_rooms", []) if r != str(room_id)
    ]
    await sio.save_session(sid, session)
    await _leave_chat(sid, session, room_id)
    return {"ok": True, "chat_room_id": str(room_id)}


@sio.event
async def send_message(sid: str, data: Any):
    session = await _session(sid)
    user_id = session.get("user_id")
    room_id = _room_id_from(data)
    if user_id is None or room_id is None:
        return await _emit_error(sid, "not_found", "Chat room not found.")

    if not await _within_rate_limit(user_id, room_id):
        return await _emit_error(
            sid,
            "RATE_LIMIT_EXCEEDED",
            "Too many messages. Please slow down.",
        )

    try:
        message_id = await _ingest(room_id, user_id, data.get("content"))
    except MessageRejected as exc:
        return await _emit_error(
            sid,
            exc.reason.value,
            exc.message,
            field=exc.field,
        )
    except Exception:
        logger.exception("Failed to store socket message from user %s", user_id)
        return await _emit_error(sid, "server_error", "Failed to send message.")

    # new_message goes out from the post-commit handler of the stored row.
    return {"ok": True, "message_id": message_id}


@sio.event
async def typing(sid: str, data: Any):
    session = await _session(sid)
    user_id = session.get("user_id")
    room_id = _room_id_from(data)
    if user_id is None or room_id is None or not await _can_access(room_id, user_id):
        return await _emit_error(sid, "not_found", "Chat room not found.")

    payload = {
        "chat_room_id": str(room_id),
        "user_id": user_id,
        "user_name": session.get("user_name", ""),
        "is_typing": bool(data.get("is_typing")),
    }
    await _emit_to_chat(room_id, "typing", payload, skip_sid=sid)
    return {"ok": True}


@sio.event
async def mark_read(sid: str, data: Any):
    session = await _session(sid)
    user_id = session.get("user_id")
    room_id = _room_id_from(data)
    if user_id is None or room_id is None or not await _can_access(room_id, user_id):
        return await _emit_error(sid, "not_found", "Chat room not found.")

    await _enqueue_mark_read(room_id, user_id)
    payload = {
        "chat_room_id": str(room_id),
        "user_id": user_id,
        "timestamp": timezone.now().isoformat(),
    }
    await _emit_to_chat(room_id, "message_read", payload)
    return {"ok": True}


def emit_event_to_room(room: str, event: str, payload: dict[str, Any]) -> None:
    """Emit an event to a room from sync Django code."""

    async_to_sync(sio.emit)(event, payload, room=room)

