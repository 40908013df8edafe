from __future__ import annotations

import asyncio
from collections import defaultdict
from typing import Any

from realtime_chat.messaging.store import ChatMessage
from realtime_chat.messaging.store import MessageDraft
from realtime_chat.messaging.store import MessageStore
from realtime_chat.realtime.exceptions import PersistenceError
from realtime_chat.realtime.exceptions import PushDeliveryFailure
from realtime_chat.realtime.exceptions import UnknownRecipient


class FakeTransport:
    """Records pushes instead of emitting them."""

    def __init__(self, failing: set[str] | None = None) -> None:
        self.pushes: list[tuple[str, str, Any]] = []
        self.failing = failing or set()

    async def push(self, connection_id: str, event: str, payload: Any) -> None:
        if connection_id in self.failing:
            raise PushDeliveryFailure(connection_id)
        self.pushes.append((connection_id, event, payload))

    def received(self, connection_id: str, event: str | None = None) -> list[Any]:
        return [
            payload
            for cid, name, payload in self.pushes
            if cid == connection_id and (event is None or name == event)
        ]


class FakeServer:
    """Stands in for ``socketio.AsyncServer`` in gateway tests."""

    def __init__(self, failing: set[str] | None = None) -> None:
        self.sessions: dict[str, dict[str, Any]] = {}
        self.inbox: dict[str, list[tuple[str, Any]]] = defaultdict(list)
        self.failing = failing or set()

    async def save_session(self, sid: str, session: dict[str, Any]) -> None:
        self.sessions[sid] = session

    async def emit(self, event: str, data: Any = None, to: str | None = None, **kwargs: Any) -> None:
        if to in self.failing:
            msg = f"socket {to} is gone"
            raise OSError(msg)
        self.inbox[to].append((event, data))

    def events(self, sid: str, event: str) -> list[Any]:
        return [data for name, data in self.inbox[sid] if name == event]


class InMemoryMessageStore(MessageStore):
    def __init__(self, known_users: set[int] | None = None, delay: float = 0.0) -> None:
        self.messages: list[ChatMessage] = []
        self.known_users = known_users
        self.delay = delay
        self.error: Exception | None = None

    async def persist(self, draft: MessageDraft) -> ChatMessage:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        if self.known_users is not None and draft.receiver_id not in self.known_users:
            raise UnknownRecipient(draft.receiver_id)
        message = ChatMessage(
            uid=draft.uid,
            sender_id=draft.sender_id,
            receiver_id=draft.receiver_id,
            text=draft.text,
            image=draft.image,
            created_at=draft.created_at,
        )
        self.messages.append(message)
        return message

    async def fetch(self, key: tuple[int, int]) -> list[ChatMessage]:
        return [m for m in self.messages if m.conversation == key]

    def fail_with(self, error: Exception | None = None) -> None:
        self.error = error or PersistenceError("store unavailable")
