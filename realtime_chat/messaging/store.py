"""Durable message storage used by the relay and the history endpoint."""

from __future__ import annotations

import logging
import uuid
from abc import ABC
from abc import abstractmethod
from dataclasses import dataclass
from dataclasses import field
from datetime import datetime

from channels.db import database_sync_to_async
from django.contrib.auth import get_user_model
from django.db import DatabaseError
from django.db import transaction
from django.utils import timezone

from realtime_chat.realtime.exceptions import PersistenceError
from realtime_chat.realtime.exceptions import UnknownRecipient

from .models import Message

logger = logging.getLogger(__name__)

ConversationKey = tuple[int, int]


def conversation_key(user_a_id: int, user_b_id: int) -> ConversationKey:
    """Order-independent key of the direct conversation between two users."""
    low, high = sorted((int(user_a_id), int(user_b_id)))
    return (low, high)


@dataclass(frozen=True)
class MessageDraft:
    sender_id: int
    receiver_id: int
    text: str
    image: str = ""
    uid: uuid.UUID = field(default_factory=uuid.uuid4)
    created_at: datetime = field(default_factory=timezone.now)


@dataclass(frozen=True)
class ChatMessage:
    uid: uuid.UUID
    sender_id: int
    receiver_id: int
    text: str
    image: str
    created_at: datetime
    persisted: bool = True

    @property
    def conversation(self) -> ConversationKey:
        return conversation_key(self.sender_id, self.receiver_id)

    @classmethod
    def from_model(cls, row: Message) -> ChatMessage:
        return cls(
            uid=row.uid,
            sender_id=row.sender_id,
            receiver_id=row.receiver_id,
            text=row.text,
            image=row.image,
            created_at=row.created_at,
        )


class MessageStore(ABC):
    """Store contract: ``persist`` is all-or-nothing, ``fetch`` is in send order."""

    @abstractmethod
    async def persist(self, draft: MessageDraft) -> ChatMessage: ...

    @abstractmethod
    async def fetch(self, key: ConversationKey) -> list[ChatMessage]: ...


class DjangoMessageStore(MessageStore):
    async def persist(self, draft: MessageDraft) -> ChatMessage:
        return await database_sync_to_async(self.persist_sync)(draft)

    async def fetch(self, key: ConversationKey) -> list[ChatMessage]:
        return await database_sync_to_async(self.fetch_sync)(key)

    def persist_sync(self, draft: MessageDraft) -> ChatMessage:
        user_model = get_user_model()
        try:
            with transaction.atomic():
                if not user_model.objects.filter(pk=draft.receiver_id).exists():
                    raise UnknownRecipient(draft.receiver_id)
                row = Message.objects.create(
                    uid=draft.uid,
                    sender_id=draft.sender_id,
                    receiver_id=draft.receiver_id,
                    text=draft.text,
                    image=draft.image,
                    created_at=draft.created_at,
                )
        except DatabaseError as exc:
            logger.exception("Failed to persist message %s", draft.uid)
            msg = "Message could not be stored"
            raise PersistenceError(msg) from exc
        logger.info(
            "Persisted message %s from %s to %s",
            row.uid,
            row.sender_id,
            row.receiver_id,
        )
        return ChatMessage.from_model(row)

    def fetch_sync(self, key: ConversationKey) -> list[ChatMessage]:
        user_a_id, user_b_id = key
        return [ChatMessage.from_model(row) for row in Message.between(user_a_id, user_b_id)]
