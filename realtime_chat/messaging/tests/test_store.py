from datetime import timedelta

import pytest
from django.db import DatabaseError
from django.utils import timezone

from realtime_chat.messaging.models import Message
from realtime_chat.messaging.store import DjangoMessageStore
from realtime_chat.messaging.store import MessageDraft
from realtime_chat.messaging.store import MessageStore
from realtime_chat.messaging.store import conversation_key
from realtime_chat.realtime.exceptions import PersistenceError
from realtime_chat.realtime.exceptions import UnknownRecipient


def test_conversation_key_is_order_independent():
    assert conversation_key(9, 3) == conversation_key(3, 9) == (3, 9)


def test_store_must_implement_both_operations():
    class WriteOnlyStore(MessageStore):
        async def persist(self, draft):
            return draft

    with pytest.raises(TypeError):
        WriteOnlyStore()


@pytest.mark.django_db
class TestDjangoMessageStore:
    def setup_method(self):
        self.store = DjangoMessageStore()

    def test_persist_keeps_draft_identity(self, user, other_user):
        draft = MessageDraft(sender_id=user.id, receiver_id=other_user.id, text="hi")

        message = self.store.persist_sync(draft)

        assert message.uid == draft.uid
        assert message.persisted is True
        row = Message.objects.get(uid=draft.uid)
        assert row.text == "hi"
        assert row.created_at == draft.created_at

    def test_unknown_recipient_stores_nothing(self, user):
        with pytest.raises(UnknownRecipient):
            self.store.persist_sync(MessageDraft(sender_id=user.id, receiver_id=999, text="?"))

        assert Message.objects.count() == 0

    def test_database_error_becomes_persistence_error(self, user, other_user, monkeypatch):
        def broken_create(**kwargs):
            msg = "disk full"
            raise DatabaseError(msg)

        monkeypatch.setattr(Message.objects, "create", broken_create)
        draft = MessageDraft(sender_id=user.id, receiver_id=other_user.id, text="hi")

        with pytest.raises(PersistenceError):
            self.store.persist_sync(draft)

    def test_fetch_returns_both_directions_in_send_order(self, user, other_user):
        start = timezone.now()
        texts = ["one", "two", "three"]
        for offset, text in enumerate(texts):
            sender, receiver = (user, other_user) if offset % 2 == 0 else (other_user, user)
            self.store.persist_sync(
                MessageDraft(
                    sender_id=sender.id,
                    receiver_id=receiver.id,
                    text=text,
                    created_at=start + timedelta(seconds=offset),
                ),
            )

        fetched = self.store.fetch_sync(conversation_key(other_user.id, user.id))

        assert [m.text for m in fetched] == texts

    def test_fetch_excludes_other_conversations(self, user, other_user, django_user_model):
        third = django_user_model.objects.create_user(
            username="third@example.com",
            email="third@example.com",
            password="pass1234",  # noqa: S106
        )
        self.store.persist_sync(MessageDraft(sender_id=user.id, receiver_id=third.id, text="x"))

        assert self.store.fetch_sync(conversation_key(user.id, other_user.id)) == []


@pytest.mark.django_db(transaction=True)
async def test_async_persist_and_fetch(user, other_user):
    store = DjangoMessageStore()

    first = await store.persist(MessageDraft(sender_id=user.id, receiver_id=other_user.id, text="a"))
    second = await store.persist(MessageDraft(sender_id=user.id, receiver_id=other_user.id, text="b"))

    assert await store.fetch(conversation_key(user.id, other_user.id)) == [first, second]
