"""Persist-then-push message relay.

A message is confirmed to its sender only once the store has persisted it.
Live delivery to the recipient's connections is best effort: it is attempted
once, never retried, and its failure never turns a stored message into a
failed send. Offline recipients read the message later through the
conversation history endpoint.
"""

from __future__ import annotations

import logging
import threading
import weakref
from typing import TYPE_CHECKING

from django.core.exceptions import ValidationError
from django.core.validators import URLValidator

from realtime_chat.messaging.store import MessageDraft

from .events.messages import build_message_payload
from .exceptions import InvalidContent
from .exceptions import PersistenceError
from .exceptions import PushDeliveryFailure
from .exceptions import UnknownRecipient
from .locks import ThreadSafeAsyncLock
from .transport import EVENT_MESSAGE_PUSHED

if TYPE_CHECKING:  # import for type checking only
    from realtime_chat.messaging.store import ChatMessage
    from realtime_chat.messaging.store import MessageStore

    from .registry import ConnectionRegistry
    from .registry import UserIdentity
    from .transport import Transport

logger = logging.getLogger(__name__)

DEFAULT_MAX_LENGTH = 4000


class MessageRelay:
    def __init__(
        self,
        store: MessageStore,
        registry: ConnectionRegistry,
        transport: Transport,
        *,
        max_length: int = DEFAULT_MAX_LENGTH,
    ) -> None:
        self._store = store
        self._registry = registry
        self._transport = transport
        self._max_length = max_length
        self._url_validator = URLValidator(schemes=["http", "https"])
        self._sender_locks: weakref.WeakValueDictionary[UserIdentity, ThreadSafeAsyncLock] = (
            weakref.WeakValueDictionary()
        )
        self._sender_locks_guard = threading.Lock()

    def validate(self, text: object, image: object = "") -> tuple[str, str]:
        if text is None:
            text = ""
        if image is None:
            image = ""
        if not isinstance(text, str) or not isinstance(image, str):
            msg = "malformed"
            raise InvalidContent(msg)
        image = image.strip()
        if not text.strip() and not image:
            msg = "empty"
            raise InvalidContent(msg)
        if len(text) > self._max_length:
            msg = "too_long"
            raise InvalidContent(msg)
        if image:
            try:
                self._url_validator(image)
            except ValidationError as exc:
                msg = "invalid_image_url"
                raise InvalidContent(msg) from exc
        return text, image

    async def send(
        self,
        sender: UserIdentity,
        recipient: UserIdentity,
        text: object,
        image: object = "",
    ) -> ChatMessage:
        text, image = self.validate(text, image)

        # One sender's messages are stored and pushed in the order sent.
        async with self._lock_for(sender):
            draft = MessageDraft(
                sender_id=sender,
                receiver_id=recipient,
                text=text,
                image=image,
            )
            try:
                message = await self._store.persist(draft)
            except (PersistenceError, UnknownRecipient):
                raise
            except Exception as exc:
                logger.exception("Message store failed for sender %s", sender)
                msg = "Message could not be stored"
                raise PersistenceError(msg) from exc

            await self.push(message)
        return message

    async def push(self, message: ChatMessage) -> int:
        """Push ``message`` to the recipient's live connections.

        Returns the number of connections the push reached.
        """

        connections = self._registry.connections_for(message.receiver_id)
        if not connections:
            logger.debug(
                "User %s offline; message %s left for history fetch",
                message.receiver_id,
                message.uid,
            )
            return 0

        payload = build_message_payload(message)
        delivered = 0
        for connection in connections:
            try:
                await self._transport.push(
                    connection.connection_id,
                    EVENT_MESSAGE_PUSHED,
                    payload,
                )
            except PushDeliveryFailure:
                logger.warning(
                    "Push of message %s to %s failed; recipient falls back to fetch",
                    message.uid,
                    connection.connection_id,
                )
            else:
                delivered += 1
        return delivered

    def _lock_for(self, sender: UserIdentity) -> ThreadSafeAsyncLock:
        # Socket handlers and REST request threads share these locks.
        with self._sender_locks_guard:
            lock = self._sender_locks.get(sender)
            if lock is None:
                lock = ThreadSafeAsyncLock()
                self._sender_locks[sender] = lock
            return lock
