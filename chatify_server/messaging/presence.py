"""Identity & presence registry.

Owns the live connection tables: which Socket.IO session belongs to which
identity, and which sessions each identity holds (multi-device). An identity is
online while it has at least one connection. Going online or offline is
persisted on the identity document and broadcast to every connection.
"""
import logging
import threading
from datetime import datetime
from typing import Callable, Dict, List, Optional, Set

from chatify_server.utils.threading_util.locks import KeyedLock
from chatify_server.utils.time_utils import to_iso, utc_now
from chatify_server.websocket.event_emitter import EventEmitter

logger = logging.getLogger(__name__)


class PresenceRegistry:

    def __init__(self, user_repository, emitter, now_func: Callable[[], datetime] = utc_now):
        """
        Args:
            user_repository: persists is_online / last_seen on identities
            emitter: transport used for the process-wide presence broadcast
            now_func: clock for last_seen
        """
        self._users = user_repository
        self._emitter = emitter
        self._now = now_func
        self._index_lock = threading.Lock()
        self._identity_locks = KeyedLock()
        self._identity_by_connection: Dict[str, str] = {}
        self._connections_by_identity: Dict[str, Set[str]] = {}

    def connect(self, identity: str, connection: str) -> bool:
        """Bind `connection` to `identity`.

        Returns True when this was the identity's first connection (it just came
        online). Binding an already-bound pair again does nothing; a connection
        bound to a different identity is released from it first.
        """
        with self._index_lock:
            owner = self._identity_by_connection.get(connection)
        if owner == identity:
            return False
        if owner is not None:
            self.disconnect(connection)

        with self._identity_locks.hold(identity):
            with self._index_lock:
                self._identity_by_connection[connection] = identity
                connections = self._connections_by_identity.setdefault(identity, set())
                came_online = not connections
                connections.add(connection)

            logger.info("Presence: %s bound to %s (%d connection(s))", connection, identity, len(connections))
            if came_online:
                self._users.set_online(identity)
                self._emitter.broadcast(EventEmitter.PRESENCE_CHANGED, {
                    'phoneNumber': identity,
                    'isOnline': True,
                    'lastSeen': to_iso(self.last_seen(identity))
                })
        return came_online

    def disconnect(self, connection: str) -> Optional[str]:
        """Release `connection`. Returns the identity that owned it, if any.

        When it was the identity's last connection the identity goes offline and
        its last_seen is set to now.
        """
        with self._index_lock:
            identity = self._identity_by_connection.get(connection)
        if identity is None:
            return None

        with self._identity_locks.hold(identity):
            with self._index_lock:
                if self._identity_by_connection.get(connection) != identity:
                    return None
                del self._identity_by_connection[connection]
                connections = self._connections_by_identity.get(identity, set())
                connections.discard(connection)
                went_offline = not connections
                if went_offline:
                    self._connections_by_identity.pop(identity, None)

            logger.info("Presence: %s released from %s", connection, identity)
            if went_offline:
                seen = self._now()
                self._users.set_offline(identity, seen)
                self._emitter.broadcast(EventEmitter.PRESENCE_CHANGED, {
                    'phoneNumber': identity,
                    'isOnline': False,
                    'lastSeen': to_iso(seen)
                })
        return identity

    def is_online(self, identity: str) -> bool:
        with self._index_lock:
            return bool(self._connections_by_identity.get(identity))

    def last_seen(self, identity: str) -> Optional[datetime]:
        user = self._users.get(identity)
        return user.last_seen if user else None

    def identity_for(self, connection: str) -> Optional[str]:
        with self._index_lock:
            return self._identity_by_connection.get(connection)

    def connections_of(self, identity: str) -> List[str]:
        with self._index_lock:
            return sorted(self._connections_by_identity.get(identity, ()))

    def online_identities(self) -> List[str]:
        with self._index_lock:
            return sorted(self._connections_by_identity)

    def connection_count(self) -> int:
        with self._index_lock:
            return len(self._identity_by_connection)
