from http import HTTPStatus

import pytest
from django.db import connection as dj_conn

from realtime_chat.realtime import socketio as realtime_socketio
from realtime_chat.realtime.registry import Connection


class DummyDbError(Exception):
    """Synthetic DB error for testing."""


@pytest.mark.django_db
def test_health_ok(client):
    resp = client.get("/health/")
    assert resp.status_code == HTTPStatus.OK
    data = resp.json()
    assert data["status"] == "ok"
    assert data["components"]["db"]["ok"] is True
    assert data["components"]["realtime"]["ok"] is True


@pytest.mark.django_db
def test_health_reports_online_users(client):
    realtime_socketio.registry.register(Connection(identity=5, connection_id="health-a"))
    realtime_socketio.registry.register(Connection(identity=5, connection_id="health-b"))
    try:
        data = client.get("/health/").json()
    finally:
        realtime_socketio.registry.unregister(5, "health-a")
        realtime_socketio.registry.unregister(5, "health-b")

    assert data["components"]["realtime"]["online_users"] == 1
    assert data["components"]["realtime"]["connections"] == 2  # noqa: PLR2004


@pytest.mark.django_db
def test_health_degraded_when_db_fails(client, monkeypatch):
    msg = "db down"

    def raise_cursor():
        raise DummyDbError(msg)

    monkeypatch.setattr(dj_conn, "cursor", raise_cursor, raising=True)
    resp = client.get("/health/")
    assert resp.status_code == HTTPStatus.SERVICE_UNAVAILABLE
    data = resp.json()
    assert data["status"] == "down"
    assert data["components"]["db"]["ok"] is False
