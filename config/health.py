from __future__ import annotations

from typing import Any

import redis
from django.conf import settings
from django.db import connection
from django.http import JsonResponse
from django_redis import get_redis_connection

# Probes must answer within a load balancer's check interval.
PROBE_TIMEOUT_SECONDS = 0.5


def check_db() -> dict[str, Any]:
    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1;")
            cursor.fetchone()
    except Exception as exc:  # noqa: BLE001
        return {"ok": False, "error": str(exc)}
    else:
        return {"ok": True}


def check_cache() -> dict[str, Any]:
    """Ping the Redis behind the default cache (guards, unread counts)."""
    try:
        get_redis_connection("default").ping()
    except Exception as exc:  # noqa: BLE001
        return {"ok": False, "error": str(exc)}
    else:
        return {"ok": True}


def check_socket_queue() -> dict[str, Any] | None:
    url = getattr(settings, "SOCKETIO_MESSAGE_QUEUE", "")
    if not url:
        # Single-process fan-out has nothing to probe.
        return None
    try:
        client = redis.Redis.from_url(
            url,
            socket_timeout=PROBE_TIMEOUT_SECONDS,
            socket_connect_timeout=PROBE_TIMEOUT_SECONDS,
        )
        client.ping()
    except Exception as exc:  # noqa: BLE001
        return {"ok": False, "error": str(exc)}
    else:
        return {"ok": True}


def health(request):
    components = {"db": check_db(), "cache": check_cache()}
    socket_queue = check_socket_queue()
    if socket_queue is not None:
        components["socket_queue"] = socket_queue

    healthy = [v.get("ok", False) for v in components.values()]
    if all(healthy):
        status = "ok"
    elif any(healthy):
        status = "degraded"
    else:
        status = "down"

    return JsonResponse(
        {"status": status, "components": components},
        status=200 if status == "ok" else 503,
    )
