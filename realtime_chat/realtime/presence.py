from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from .events.presence import build_presence_payload
from .exceptions import PushDeliveryFailure
from .transport import EVENT_PRESENCE_UPDATED

if TYPE_CHECKING:  # import for type checking only
    from .registry import ConnectionRegistry
    from .registry import PresenceSnapshot
    from .registry import RegistryChange
    from .transport import Transport

logger = logging.getLogger(__name__)


class PresenceBroadcaster:
    """Push the online-user list to every live connection.

    Broadcasts are serialized and always carry the registry's latest snapshot,
    so no connection is sent a view older than one it already received.
    Failed pushes are dropped; the next membership change re-broadcasts.
    """

    MEMBERSHIP = "membership"
    EVERY = "every"
    MODES = (MEMBERSHIP, EVERY)

    def __init__(
        self,
        registry: ConnectionRegistry,
        transport: Transport,
        mode: str = MEMBERSHIP,
    ) -> None:
        if mode not in self.MODES:
            msg = f"Unknown presence broadcast mode: {mode!r}"
            raise ValueError(msg)
        self._registry = registry
        self._transport = transport
        self._mode = mode
        self._lock = asyncio.Lock()
        self._last_version = -1

    @property
    def last_version(self) -> int:
        return self._last_version

    def should_broadcast(self, change: RegistryChange) -> bool:
        if not change.applied:
            return False
        return self._mode == self.EVERY or change.membership_changed

    async def on_change(self, change: RegistryChange) -> PresenceSnapshot | None:
        if not self.should_broadcast(change):
            return None
        return await self.broadcast()

    async def broadcast(self) -> PresenceSnapshot | None:
        async with self._lock:
            snapshot = self._registry.snapshot()
            if snapshot.version < self._last_version:
                logger.debug(
                    "Skipping stale presence v%s (sent v%s)",
                    snapshot.version,
                    self._last_version,
                )
                return None
            self._last_version = snapshot.version

            payload = build_presence_payload(snapshot)
            for connection in self._registry.all_connections():
                try:
                    await self._transport.push(
                        connection.connection_id,
                        EVENT_PRESENCE_UPDATED,
                        payload,
                    )
                except PushDeliveryFailure:
                    logger.warning(
                        "Presence push to %s (user %s) failed",
                        connection.connection_id,
                        connection.identity,
                    )
            logger.debug("Broadcast presence v%s: %s", snapshot.version, payload)
            return snapshot

    async def send_current(self, connection_id: str) -> PresenceSnapshot | None:
        """Push the latest snapshot to one connection only.

        Used for a connection that joined without changing membership, so it
        still starts with a view of who is online.
        """

        async with self._lock:
            snapshot = self._registry.snapshot()
            if snapshot.version < self._last_version:
                return None
            self._last_version = snapshot.version
            try:
                await self._transport.push(
                    connection_id,
                    EVENT_PRESENCE_UPDATED,
                    build_presence_payload(snapshot),
                )
            except PushDeliveryFailure:
                logger.warning("Presence push to %s failed", connection_id)
                return None
            return snapshot
