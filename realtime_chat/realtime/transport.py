"""Outbound push channel used by the relay and the presence broadcaster."""

from __future__ import annotations

import logging
from typing import Any
from typing import Protocol

from .exceptions import PushDeliveryFailure

logger = logging.getLogger(__name__)

# Client -> server
EVENT_SEND_MESSAGE = "sendMessage"
# Server -> client
EVENT_REGISTERED = "registered"
EVENT_MESSAGE_PUSHED = "newMessage"
EVENT_PRESENCE_UPDATED = "getOnlineUsers"


class Transport(Protocol):
    async def push(self, connection_id: str, event: str, payload: Any) -> None:
        """Deliver one event to one connection or raise ``PushDeliveryFailure``."""


class SocketIOTransport:
    """Push events to individual Socket.IO sessions."""

    def __init__(self, server) -> None:
        self._server = server

    async def push(self, connection_id: str, event: str, payload: Any) -> None:
        try:
            await self._server.emit(event, payload, to=connection_id)
        except Exception as exc:
            raise PushDeliveryFailure(connection_id) from exc
