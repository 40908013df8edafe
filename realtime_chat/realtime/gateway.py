"""Connection lifecycle and inbound events for one Socket.IO server.

Every handler isolates its own failures: an error on one connection is
reported to that connection (refusal or error acknowledgement) and never
propagates into the server loop.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING
from typing import Any

from .events.messages import build_message_payload
from .exceptions import IdentityRejected
from .exceptions import InvalidContent
from .exceptions import PersistenceError
from .exceptions import UnknownRecipient
from .identity import HandshakeCredentials
from .registry import Connection
from .transport import EVENT_REGISTERED

if TYPE_CHECKING:  # import for type checking only
    from .identity import IdentityVerifier
    from .presence import PresenceBroadcaster
    from .registry import ConnectionRegistry
    from .registry import RegistryChange
    from .relay import MessageRelay

logger = logging.getLogger(__name__)


def _error_ack(code: str, detail: str = "") -> dict[str, Any]:
    return {"ok": False, "error": code, "detail": detail}


class ChatGateway:
    def __init__(
        self,
        server,
        registry: ConnectionRegistry,
        verifier: IdentityVerifier,
        broadcaster: PresenceBroadcaster,
        relay: MessageRelay,
    ) -> None:
        self._server = server
        self._registry = registry
        self._verifier = verifier
        self._broadcaster = broadcaster
        self._relay = relay

    async def connect(
        self,
        sid: str,
        environ: dict[str, Any],
        auth: Any | None = None,
    ) -> RegistryChange:
        """Verify the handshake and register the connection.

        Raises ``ConnectionRefusedError`` with the rejection reason; the
        connection is then never registered.
        """

        credentials = HandshakeCredentials.from_handshake(environ, auth)
        try:
            identity = await self._verifier.verify(credentials)
        except IdentityRejected as exc:
            logger.info("Socket.IO connect refused for %s: %s", sid, exc.reason)
            raise ConnectionRefusedError(exc.reason) from exc
        except Exception as exc:
            logger.exception("Socket.IO connect error")
            msg = "server_error"
            raise ConnectionRefusedError(msg) from exc

        await self._server.save_session(sid, {"user_id": identity})
        change = self._registry.register(Connection(identity=identity, connection_id=sid))
        logger.info("Socket.IO connection %s registered for user %s", sid, identity)
        return change

    async def announce(self, sid: str, change: RegistryChange) -> None:
        """Acknowledge registration to the new connection, then fan out presence.

        Runs after the connect handler returned, once the client has been
        sent its CONNECT packet. A join that does not change membership is
        sent the current online list on its own.
        """

        try:
            await self._server.emit(
                EVENT_REGISTERED,
                {"connectionId": sid, "userId": change.identity},
                to=sid,
            )
        except Exception:
            logger.warning("Could not acknowledge registration of %s", sid, exc_info=True)
        if await self._broadcaster.on_change(change) is None:
            # No fan-out for this join; the new connection still needs a view.
            await self._broadcaster.send_current(sid)

    async def disconnect(self, sid: str) -> RegistryChange | None:
        identity = self._registry.identity_for(sid)
        if identity is None:
            # Refused handshake or duplicate close event.
            return None
        change = self._registry.unregister(identity, sid)
        logger.info("Socket.IO connection %s closed for user %s", sid, identity)
        await self._broadcaster.on_change(change)
        return change

    async def send_message(self, sid: str, data: Any) -> dict[str, Any]:
        """Handle ``sendMessage``; the return value is the client's ack."""

        sender = self._registry.identity_for(sid)
        if sender is None:
            return _error_ack("not_registered")
        if not isinstance(data, dict):
            return _error_ack(InvalidContent.code, "malformed")

        try:
            recipient = int(data.get("receiverId"))
        except (TypeError, ValueError):
            return _error_ack(UnknownRecipient.code, "receiverId is required")

        try:
            message = await self._relay.send(
                sender,
                recipient,
                data.get("text"),
                data.get("image") or "",
            )
        except InvalidContent as exc:
            return _error_ack(exc.code, exc.reason)
        except UnknownRecipient as exc:
            return _error_ack(exc.code, str(exc))
        except PersistenceError as exc:
            return _error_ack(exc.code, "Message was not sent, please retry")
        return {"ok": True, "message": build_message_payload(message)}
