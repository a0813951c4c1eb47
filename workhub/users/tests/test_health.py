from http import HTTPStatus
from unittest import mock

import pytest
from django.db import connection as dj_conn

pytestmark = pytest.mark.django_db


class DummyDbError(Exception):
    """Synthetic DB error for testing."""


def test_health_ok(client):
    resp = client.get("/health/")

    assert resp.status_code == HTTPStatus.OK
    data = resp.json()
    assert data["status"] == "ok"
    assert data["components"]["db"] == {"ok": True}
    assert data["components"]["cache"] == {"ok": True}
    # No message queue configured in tests.
    assert "socket_queue" not in data["components"]


def test_health_degraded_when_cache_fails(client):
    with mock.patch(
        "config.health.get_redis_connection",
        side_effect=TimeoutError("redis timeout"),
    ):
        resp = client.get("/health/")

    assert resp.status_code == HTTPStatus.SERVICE_UNAVAILABLE
    data = resp.json()
    assert data["status"] == "degraded"
    assert data["components"]["cache"]["error"] == "redis timeout"


def test_health_degraded_when_db_fails(client, monkeypatch):
    msg = "db down"

    def raise_cursor():
        raise DummyDbError(msg)

    monkeypatch.setattr(dj_conn, "cursor", raise_cursor, raising=True)
    resp = client.get("/health/")

    assert resp.status_code == HTTPStatus.SERVICE_UNAVAILABLE
    assert resp.json()["components"]["db"]["ok"] is False


def test_health_probes_socket_queue_when_configured(client, settings):
    settings.SOCKETIO_MESSAGE_QUEUE = "redis://queue:6379/1"
    with mock.patch(
        "config.health.redis.Redis.ping",
        side_effect=ConnectionError("refused"),
    ):
        resp = client.get("/health/")

    assert resp.status_code == HTTPStatus.SERVICE_UNAVAILABLE
    assert resp.json()["components"]["socket_queue"] == {
        "ok": False,
        "error": "refused",
    }
