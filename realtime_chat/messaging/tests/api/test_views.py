from datetime import timedelta

import pytest
from django.urls import reverse
from django.utils import timezone
from rest_framework import status

from realtime_chat.messaging.models import Message
from realtime_chat.messaging.store import DjangoMessageStore
from realtime_chat.realtime import socketio as realtime_socketio
from realtime_chat.realtime.exceptions import PersistenceError
from realtime_chat.realtime.registry import Connection
from realtime_chat.realtime.transport import EVENT_MESSAGE_PUSHED
from realtime_chat.users.tests.factories import create_user

pytestmark = pytest.mark.django_db


@pytest.fixture
def pushes(monkeypatch):
    sent = []

    async def record(connection_id, event, payload):
        sent.append((connection_id, event, payload))

    monkeypatch.setattr(realtime_socketio.transport, "push", record)
    return sent


@pytest.fixture
def bob_online(other_user):
    realtime_socketio.registry.register(
        Connection(identity=other_user.id, connection_id="sid-bob"),
    )
    yield
    realtime_socketio.registry.unregister(other_user.id, "sid-bob")


def test_urls():
    assert reverse("api_v1:messages:users") == "/api/v1/messages/users/"
    assert reverse("api_v1:messages:send", kwargs={"user_id": 3}) == "/api/v1/messages/send/3/"
    assert reverse("api_v1:messages:conversation", kwargs={"user_id": 3}) == "/api/v1/messages/3/"


def test_requires_authentication(api_client):
    res = api_client.get("/api/v1/messages/users/")

    assert res.status_code == status.HTTP_401_UNAUTHORIZED


def test_sidebar_lists_everyone_but_me(api_client, user, other_user):
    create_user("zed@example.com", name="Zed", is_active=False)
    api_client.force_authenticate(user)

    res = api_client.get("/api/v1/messages/users/")

    assert res.status_code == status.HTTP_200_OK
    assert [u["email"] for u in res.data] == ["bob@example.com"]
    assert set(res.data[0]) == {"id", "full_name", "email", "profile_pic", "created_at"}


def test_conversation_in_send_order(api_client, user, other_user):
    start = timezone.now()
    for offset, (sender, receiver, text) in enumerate(
        [(user, other_user, "hi"), (other_user, user, "hey"), (user, other_user, "bye")],
    ):
        Message.objects.create(
            sender=sender,
            receiver=receiver,
            text=text,
            created_at=start + timedelta(seconds=offset),
        )
    api_client.force_authenticate(other_user)

    res = api_client.get(f"/api/v1/messages/{user.id}/")

    assert res.status_code == status.HTTP_200_OK
    assert [m["text"] for m in res.data] == ["hi", "hey", "bye"]
    assert res.data[0]["senderId"] == user.id
    assert res.data[0]["receiverId"] == other_user.id


def test_conversation_with_unknown_user(api_client, user):
    api_client.force_authenticate(user)

    res = api_client.get("/api/v1/messages/424242/")

    assert res.status_code == status.HTTP_404_NOT_FOUND


class TestSendMessage:
    def test_offline_recipient_message_is_stored(self, api_client, user, other_user, pushes):
        api_client.force_authenticate(user)

        res = api_client.post(
            f"/api/v1/messages/send/{other_user.id}/",
            {"text": "are you there?"},
            format="json",
        )

        assert res.status_code == status.HTTP_201_CREATED
        assert res.data["text"] == "are you there?"
        assert Message.objects.filter(uid=res.data["id"]).exists()
        assert pushes == []

    @pytest.mark.usefixtures("bob_online")
    def test_online_recipient_gets_a_push(self, api_client, user, other_user, pushes):
        api_client.force_authenticate(user)

        res = api_client.post(
            f"/api/v1/messages/send/{other_user.id}/",
            {"text": "hi", "image": "https://cdn.example.com/cat.png"},
            format="json",
        )

        assert res.status_code == status.HTTP_201_CREATED
        assert pushes == [("sid-bob", EVENT_MESSAGE_PUSHED, res.data)]

    def test_empty_message_is_rejected(self, api_client, user, other_user, pushes):
        api_client.force_authenticate(user)

        res = api_client.post(
            f"/api/v1/messages/send/{other_user.id}/",
            {"text": "   "},
            format="json",
        )

        assert res.status_code == status.HTTP_400_BAD_REQUEST
        assert res.data["code"] == "empty"
        assert Message.objects.count() == 0

    def test_unknown_recipient(self, api_client, user, pushes):
        api_client.force_authenticate(user)

        res = api_client.post("/api/v1/messages/send/424242/", {"text": "hi"}, format="json")

        assert res.status_code == status.HTTP_404_NOT_FOUND

    def test_store_failure_is_retryable(self, api_client, user, other_user, pushes, monkeypatch):
        def unavailable(self, draft):
            msg = "database unavailable"
            raise PersistenceError(msg)

        monkeypatch.setattr(DjangoMessageStore, "persist_sync", unavailable)
        api_client.force_authenticate(user)

        res = api_client.post(
            f"/api/v1/messages/send/{other_user.id}/",
            {"text": "hi"},
            format="json",
        )

        assert res.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
        assert pushes == []
