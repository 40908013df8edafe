"""Process-wide registry of live connections.

Connections are grouped in one bucket per user identity. Writers lock only the
bucket they touch, so unrelated users connect and disconnect independently.
Membership of the presence set is published as an immutable, versioned
snapshot under a separate lock; every membership change happens while the
bucket lock of the affected identity is held, so a snapshot never shows an
identity whose connection set disagrees with it.

Lock order: bucket lock -> table lock, bucket lock -> membership lock.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from dataclasses import field
from datetime import UTC
from datetime import datetime

logger = logging.getLogger(__name__)

UserIdentity = int


@dataclass(eq=False)
class Connection:
    """One live transport session (a Socket.IO ``sid``)."""

    identity: UserIdentity
    connection_id: str
    established_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))
    alive: bool = True


@dataclass(frozen=True)
class PresenceSnapshot:
    version: int
    identities: frozenset[UserIdentity]

    def as_list(self) -> list[UserIdentity]:
        return sorted(self.identities)

    def __contains__(self, identity: object) -> bool:
        return identity in self.identities


@dataclass(frozen=True)
class RegistryChange:
    """Outcome of a register/unregister call.

    ``applied`` is False for idempotent no-ops (duplicate register, unknown
    unregister). ``snapshot`` is the presence view right after the change.
    """

    identity: UserIdentity
    connection_id: str
    applied: bool
    membership_changed: bool
    snapshot: PresenceSnapshot


class _Bucket:
    __slots__ = ("connections", "lock", "retired")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.connections: dict[str, Connection] = {}
        self.retired = False


class ConnectionRegistry:
    def __init__(self) -> None:
        self._table_lock = threading.Lock()
        self._buckets: dict[UserIdentity, _Bucket] = {}
        self._owners: dict[str, UserIdentity] = {}
        self._membership_lock = threading.Lock()
        self._snapshot = PresenceSnapshot(version=0, identities=frozenset())

    # Writers
    # ------------------------------------------------------------------

    def register(self, connection: Connection) -> RegistryChange:
        identity = connection.identity
        while True:
            bucket = self._bucket_for_write(identity)
            with bucket.lock:
                if bucket.retired:
                    # Emptied and dropped by a concurrent unregister; retry
                    # against the replacement bucket.
                    continue
                if connection.connection_id in bucket.connections:
                    return self._unchanged(identity, connection.connection_id)
                came_online = not bucket.connections
                bucket.connections[connection.connection_id] = connection
                with self._table_lock:
                    self._owners[connection.connection_id] = identity
                if came_online:
                    snapshot = self._publish(add=identity)
                    logger.info("User %s is online", identity)
                else:
                    snapshot = self.snapshot()
                logger.debug(
                    "Registered connection %s for user %s (%d live)",
                    connection.connection_id,
                    identity,
                    len(bucket.connections),
                )
                return RegistryChange(
                    identity=identity,
                    connection_id=connection.connection_id,
                    applied=True,
                    membership_changed=came_online,
                    snapshot=snapshot,
                )

    def unregister(self, identity: UserIdentity, connection_id: str) -> RegistryChange:
        with self._table_lock:
            bucket = self._buckets.get(identity)
        if bucket is None:
            return self._unchanged(identity, connection_id)

        with bucket.lock:
            connection = bucket.connections.pop(connection_id, None)
            if connection is None:
                return self._unchanged(identity, connection_id)
            connection.alive = False
            went_offline = not bucket.connections
            # Publish before dropping the bucket: a replacement bucket (and its
            # "online" publication) can only appear once this one is gone.
            snapshot = self._publish(remove=identity) if went_offline else self.snapshot()
            with self._table_lock:
                self._owners.pop(connection_id, None)
                if went_offline and self._buckets.get(identity) is bucket:
                    del self._buckets[identity]
            if went_offline:
                bucket.retired = True
                logger.info("User %s is offline", identity)
            logger.debug("Unregistered connection %s for user %s", connection_id, identity)
            return RegistryChange(
                identity=identity,
                connection_id=connection_id,
                applied=True,
                membership_changed=went_offline,
                snapshot=snapshot,
            )

    # Readers
    # ------------------------------------------------------------------

    def is_online(self, identity: UserIdentity) -> bool:
        return identity in self._snapshot

    def snapshot(self) -> PresenceSnapshot:
        with self._membership_lock:
            return self._snapshot

    def snapshot_online_identities(self) -> frozenset[UserIdentity]:
        return self.snapshot().identities

    def identity_for(self, connection_id: str) -> UserIdentity | None:
        with self._table_lock:
            return self._owners.get(connection_id)

    def connections_for(self, identity: UserIdentity) -> tuple[Connection, ...]:
        with self._table_lock:
            bucket = self._buckets.get(identity)
        if bucket is None:
            return ()
        with bucket.lock:
            return tuple(c for c in bucket.connections.values() if c.alive)

    def all_connections(self) -> list[Connection]:
        """Live connections in registration order of their identities."""
        with self._table_lock:
            buckets = list(self._buckets.values())
        connections: list[Connection] = []
        for bucket in buckets:
            with bucket.lock:
                connections.extend(c for c in bucket.connections.values() if c.alive)
        return connections

    def connection_count(self, identity: UserIdentity | None = None) -> int:
        if identity is not None:
            return len(self.connections_for(identity))
        with self._table_lock:
            return len(self._owners)

    # Internals
    # ------------------------------------------------------------------

    def _bucket_for_write(self, identity: UserIdentity) -> _Bucket:
        with self._table_lock:
            bucket = self._buckets.get(identity)
            if bucket is None:
                bucket = self._buckets[identity] = _Bucket()
            return bucket

    def _publish(
        self,
        *,
        add: UserIdentity | None = None,
        remove: UserIdentity | None = None,
    ) -> PresenceSnapshot:
        with self._membership_lock:
            identities = set(self._snapshot.identities)
            if add is not None:
                identities.add(add)
            if remove is not None:
                identities.discard(remove)
            self._snapshot = PresenceSnapshot(
                version=self._snapshot.version + 1,
                identities=frozenset(identities),
            )
            return self._snapshot

    def _unchanged(self, identity: UserIdentity, connection_id: str) -> RegistryChange:
        return RegistryChange(
            identity=identity,
            connection_id=connection_id,
            applied=False,
            membership_changed=False,
            snapshot=self.snapshot(),
        )
