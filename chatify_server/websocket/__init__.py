"""WebSocket module for real-time communication.

- Event Emitter: Socket.IO transport (emit to a connection, broadcast)
- Session Gateway: join handshake and inbound event handlers
"""

from chatify_server.websocket.event_emitter import EventEmitter

__all__ = ['EventEmitter']
