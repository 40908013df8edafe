"""Global Socket.IO server for the chat frontend.

Frontend convention:
- URL base: ws://<host>:8000
- Socket.IO path: /ws/chat/ (``CHAT_SOCKETIO_PATH``)
- Auth: ``auth.token`` / ``query.token`` (JWT access token) or the access cookie

Events:
- client -> server: ``sendMessage`` {receiverId, text, image} (acknowledged)
- server -> client: ``registered``, ``newMessage``, ``getOnlineUsers``
"""

from __future__ import annotations

import logging
from typing import Any

import socketio
from django.conf import settings

from realtime_chat.messaging.store import DjangoMessageStore

from .gateway import ChatGateway
from .identity import IdentityVerifier
from .presence import PresenceBroadcaster
from .registry import ConnectionRegistry
from .relay import MessageRelay
from .transport import EVENT_SEND_MESSAGE
from .transport import SocketIOTransport

logger = logging.getLogger(__name__)


sio = socketio.AsyncServer(
    async_mode="asgi",
    cors_allowed_origins=settings.CHAT_SOCKETIO_CORS_ALLOWED_ORIGINS,
    logger=False,
    engineio_logger=False,
)

registry = ConnectionRegistry()
transport = SocketIOTransport(sio)
broadcaster = PresenceBroadcaster(
    registry,
    transport,
    mode=settings.CHAT_PRESENCE_BROADCAST_MODE,
)
relay = MessageRelay(
    DjangoMessageStore(),
    registry,
    transport,
    max_length=settings.CHAT_MESSAGE_MAX_LENGTH,
)
gateway = ChatGateway(sio, registry, IdentityVerifier(), broadcaster, relay)


@sio.event
async def connect(sid: str, environ: dict[str, Any], auth: Any | None = None):
    change = await gateway.connect(sid, environ, auth)
    sio.start_background_task(gateway.announce, sid, change)


@sio.event
async def disconnect(sid: str, reason: Any = None):
    await gateway.disconnect(sid)


@sio.on(EVENT_SEND_MESSAGE)
async def send_message(sid: str, data: Any):
    return await gateway.send_message(sid, data)
