"""Event emitter for real-time WebSocket communication.

Thin transport wrapper around the Flask-SocketIO server: emit to one
connection, or broadcast to every connection. Which connections belong to
which identity is the presence registry's business, not this module's.

Usage:
    emitter = EventEmitter(socketio)

    # Emit to one connection
    emitter.emit_to_connection(sid, EventEmitter.MESSAGE, data)

    # Emit to everyone
    emitter.broadcast(EventEmitter.PRESENCE_CHANGED, data)
"""
import logging
from typing import Any, Dict

logger = logging.getLogger(__name__)


class EventEmitter:
    """Emits client-facing events through Socket.IO."""

    # =========================================================================
    # Event Type Constants
    # =========================================================================

    # Message Events
    MESSAGE = 'message'
    STATUS_CHANGED = 'status-changed'
    MESSAGE_DELETED = 'message-deleted'
    MESSAGE_HIDDEN = 'message-hidden'
    REACTION = 'reaction'
    TYPING = 'typing'

    # Presence Events
    PRESENCE_CHANGED = 'presence-changed'

    # Group Events
    GROUP_CREATED = 'group-created'

    # Session Events
    ERROR = 'error'
    PONG = 'pong'

    def __init__(self, socketio=None, namespace: str = '/'):
        self.socketio = socketio
        self.namespace = namespace

    # =========================================================================
    # Emit Methods
    # =========================================================================

    def emit_to_connection(self, sid: str, event: str, data: Dict[str, Any]) -> bool:
        """Emit event to a single Socket.IO session.

        Returns:
            True if the event was handed to the transport
        """
        if not self.socketio:
            logger.error("EVENT_EMITTER: Socket.IO NOT initialized, cannot emit %s to %s", event, sid)
            return False
        self.socketio.emit(event, data, to=sid, namespace=self.namespace)
        logger.debug("EVENT_EMITTER: Emitted '%s' to socket %s", event, sid)
        return True

    def broadcast(self, event: str, data: Dict[str, Any]) -> bool:
        """Broadcast event to all connected clients."""
        if not self.socketio:
            logger.warning("Socket.IO not initialized, cannot broadcast %s", event)
            return False
        try:
            self.socketio.emit(event, data, namespace=self.namespace)
            logger.debug("Broadcast %s to all clients", event)
            return True
        except Exception as e:
            logger.error("Error broadcasting %s: %s", event, e)
            return False
