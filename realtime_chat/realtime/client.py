"""Client-side connection manager for the chat Socket.IO endpoint.

State machine::

    DISCONNECTED --connect()--> CONNECTING --established--> CONNECTED
    CONNECTING --error, attempts left--> RECONNECTING --established--> CONNECTED
    CONNECTING/RECONNECTING --attempts exhausted--> DISCONNECTED (ReconnectionExhausted)
    CONNECTED --transport lost--> RECONNECTING
    CONNECTED --disconnect()--> DISCONNECTED

python-socketio's built-in reconnection is disabled; retries are bounded here
with a fixed delay and a per-attempt timeout.
"""

from __future__ import annotations

import asyncio
import contextlib
import enum
import inspect
import logging
from collections import OrderedDict
from collections.abc import Callable
from typing import Any

import socketio

from .exceptions import InvalidContent
from .exceptions import PersistenceError
from .exceptions import RealtimeError
from .exceptions import ReconnectionExhausted
from .exceptions import TransportLoss
from .exceptions import UnknownRecipient
from .transport import EVENT_MESSAGE_PUSHED
from .transport import EVENT_PRESENCE_UPDATED
from .transport import EVENT_REGISTERED
from .transport import EVENT_SEND_MESSAGE

logger = logging.getLogger(__name__)

_ACK_ERRORS: dict[str, type[RealtimeError]] = {
    InvalidContent.code: InvalidContent,
    UnknownRecipient.code: UnknownRecipient,
    PersistenceError.code: PersistenceError,
}


class ConnectionState(str, enum.Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"


def _default_client_factory() -> socketio.AsyncClient:
    return socketio.AsyncClient(reconnection=False, logger=False, engineio_logger=False)


async def _maybe_await(value: Any) -> None:
    if inspect.isawaitable(value):
        await value


class ClientConnectionManager:
    DEFAULT_ATTEMPTS = 3
    DEFAULT_DELAY = 1.0
    DEFAULT_CONNECT_TIMEOUT = 5.0
    SEEN_MESSAGE_LIMIT = 1000

    def __init__(  # noqa: PLR0913
        self,
        url: str,
        token: str | None,
        *,
        socketio_path: str = "ws/chat",
        attempts: int = DEFAULT_ATTEMPTS,
        delay: float = DEFAULT_DELAY,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        client_factory: Callable[[], Any] = _default_client_factory,
        on_message: Callable[[dict[str, Any]], Any] | None = None,
        on_presence: Callable[[list[Any]], Any] | None = None,
        on_failure: Callable[[ReconnectionExhausted], Any] | None = None,
    ) -> None:
        if attempts < 1:
            msg = "attempts must be at least 1"
            raise ValueError(msg)
        self.url = url
        self.token = token
        self.socketio_path = socketio_path
        self.attempts = attempts
        self.delay = delay
        self.connect_timeout = connect_timeout
        self.on_message = on_message
        self.on_presence = on_presence
        self.on_failure = on_failure

        self.online_users: list[Any] = []
        self.last_failure: ReconnectionExhausted | None = None
        self._state = ConnectionState.DISCONNECTED
        self._client_factory = client_factory
        self._client: Any | None = None
        self._session = 0
        self._registered_session: int | None = None
        self._closing = False
        self._reconnect_task: asyncio.Task[None] | None = None
        self._seen: OrderedDict[str, None] = OrderedDict()

    @classmethod
    def from_settings(cls, url: str, token: str | None, **kwargs: Any) -> ClientConnectionManager:
        from django.conf import settings  # noqa: PLC0415

        kwargs.setdefault("socketio_path", settings.CHAT_SOCKETIO_PATH)
        kwargs.setdefault("attempts", settings.CHAT_CLIENT_RECONNECT_ATTEMPTS)
        kwargs.setdefault("delay", settings.CHAT_CLIENT_RECONNECT_DELAY)
        kwargs.setdefault("connect_timeout", settings.CHAT_CLIENT_CONNECT_TIMEOUT)
        return cls(url, token, **kwargs)

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def registered(self) -> bool:
        return self._registered_session is not None and self._registered_session == self._session

    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> ConnectionState:
        """Connect, retrying up to ``attempts`` times.

        No-op while already connected or connecting. Raises
        ``ReconnectionExhausted`` when every attempt failed.
        """

        if self._state is not ConnectionState.DISCONNECTED:
            logger.debug("connect() ignored in state %s", self._state.value)
            return self._state
        if not self.token:
            msg = "No credential available; log in first"
            raise RealtimeError(msg)
        self._closing = False
        self.last_failure = None
        await self._attempt_until_connected(ConnectionState.CONNECTING)
        return self._state

    async def disconnect(self) -> None:
        """Explicit disconnect (e.g. logout); never reconnects."""

        self._closing = True
        task = self._reconnect_task
        self._reconnect_task = None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        if self._client is not None and getattr(self._client, "connected", False):
            await self._client.disconnect()
        self._registered_session = None
        self.online_users = []
        self._set_state(ConnectionState.DISCONNECTED)

    async def wait_reconnected(self) -> None:
        """Wait for a background reconnection, if one is running."""

        task = self._reconnect_task
        if task is not None:
            await task

    # Outbound
    # ------------------------------------------------------------------

    async def send_message(self, recipient_id: Any, text: str, image: str = "") -> dict[str, Any]:
        if self._state is not ConnectionState.CONNECTED or self._client is None:
            msg = "Not connected"
            raise TransportLoss(msg)
        try:
            ack = await self._client.call(
                EVENT_SEND_MESSAGE,
                {"receiverId": recipient_id, "text": text, "image": image},
                timeout=self.connect_timeout,
            )
        except socketio.exceptions.TimeoutError as exc:
            msg = "No acknowledgement from server"
            raise TransportLoss(msg) from exc

        if isinstance(ack, dict) and ack.get("ok"):
            return ack["message"]

        code = ack.get("error") if isinstance(ack, dict) else None
        detail = ack.get("detail", "") if isinstance(ack, dict) else ""
        error_class = _ACK_ERRORS.get(code or "")
        if error_class is InvalidContent:
            raise InvalidContent(detail)
        if error_class is UnknownRecipient:
            raise UnknownRecipient(recipient_id)
        if error_class is PersistenceError:
            raise PersistenceError(detail)
        raise RealtimeError(code or "send_failed")

    # Internals
    # ------------------------------------------------------------------

    def _set_state(self, state: ConnectionState) -> None:
        if state is not self._state:
            logger.info("Chat connection %s -> %s", self._state.value, state.value)
            self._state = state

    def _ensure_client(self) -> Any:
        if self._client is None:
            client = self._client_factory()
            client.on("disconnect", self._on_disconnect)
            client.on(EVENT_REGISTERED, self._on_registered)
            client.on(EVENT_MESSAGE_PUSHED, self._on_message)
            client.on(EVENT_PRESENCE_UPDATED, self._on_presence)
            self._client = client
        return self._client

    async def _attempt_until_connected(self, state: ConnectionState) -> None:
        self._set_state(state)
        client = self._ensure_client()
        last_error: BaseException | None = None

        for attempt in range(1, self.attempts + 1):
            if self._closing:
                return
            self._session += 1
            self._registered_session = None
            try:
                await asyncio.wait_for(
                    client.connect(
                        self.url,
                        auth={"token": self.token},
                        socketio_path=self.socketio_path,
                        transports=["websocket", "polling"],
                        wait_timeout=self.connect_timeout,
                    ),
                    timeout=self.connect_timeout,
                )
            except (socketio.exceptions.ConnectionError, TimeoutError, OSError) as exc:
                last_error = exc
                logger.warning(
                    "Chat connect attempt %d/%d failed: %s",
                    attempt,
                    self.attempts,
                    exc,
                )
                if getattr(client, "connected", False):
                    await client.disconnect()
                if attempt < self.attempts:
                    self._set_state(ConnectionState.RECONNECTING)
                    await asyncio.sleep(self.delay)
                continue

            if self._closing:
                await client.disconnect()
                return
            self._set_state(ConnectionState.CONNECTED)
            return

        self._set_state(ConnectionState.DISCONNECTED)
        failure = ReconnectionExhausted(self.attempts, last_error)
        self.last_failure = failure
        logger.error("Chat connection gave up after %d attempt(s)", self.attempts)
        raise failure

    async def _reconnect(self) -> None:
        try:
            await self._attempt_until_connected(ConnectionState.RECONNECTING)
        except ReconnectionExhausted as exc:
            if self.on_failure is not None:
                await _maybe_await(self.on_failure(exc))

    async def _on_disconnect(self, reason: Any = None) -> None:
        self._registered_session = None
        if self._closing or self._state is not ConnectionState.CONNECTED:
            return
        logger.warning("Chat transport lost (%s); reconnecting", reason)
        self._set_state(ConnectionState.RECONNECTING)
        self._reconnect_task = asyncio.create_task(self._reconnect())

    async def _on_registered(self, data: Any = None) -> None:
        self._registered_session = self._session
        logger.debug("Chat registration acknowledged: %s", data)

    async def _on_message(self, payload: Any) -> None:
        if not self.registered:
            logger.debug("Dropping message push received before registration")
            return
        if not isinstance(payload, dict):
            return
        message_id = str(payload.get("id", ""))
        if message_id in self._seen:
            return
        self._seen[message_id] = None
        while len(self._seen) > self.SEEN_MESSAGE_LIMIT:
            self._seen.popitem(last=False)
        if self.on_message is not None:
            await _maybe_await(self.on_message(payload))

    async def _on_presence(self, user_ids: Any) -> None:
        if not self.registered:
            logger.debug("Dropping presence push received before registration")
            return
        self.online_users = list(user_ids or [])
        if self.on_presence is not None:
            await _maybe_await(self.on_presence(self.online_users))
