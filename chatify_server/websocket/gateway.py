"""Socket.IO session gateway.

A connection is accepted without credentials and stays inert until it sends
`join` with a registered phone number. After that its `typing` and `reaction`
events are forwarded to the delivery router on behalf of the joined identity.

Inbound events:
    join        '+15550000001' or {'phoneNumber': ...}   -> ack {success, phoneNumber}
    typing      {receiverPhone | groupId, isTyping}
    reaction    {messageId, reaction}
    ping        any                                     -> pong
"""
import functools
import logging
from typing import Any, Dict, Optional

from flask import request
from flask_socketio import SocketIO, emit
from pymongo.errors import PyMongoError

from chatify_server.exception import ChatError, NotFoundError, ValidationError
from chatify_server.messaging.models import Target
from chatify_server.utils.time_utils import to_iso, utc_now
from chatify_server.utils.validation import is_valid_phone
from chatify_server.websocket.event_emitter import EventEmitter

logger = logging.getLogger(__name__)


def socket_errors(func):
    """Report handler failures to the calling connection as an `error` event."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except ChatError as e:
            logger.warning("WS %s in %s: %s", e.code, func.__name__, e.message)
            emit(EventEmitter.ERROR, e.to_dict())
            return {'success': False, **e.to_dict()}
        except PyMongoError as e:
            logger.error("WS storage error in %s: %s", func.__name__, e)
            error = {'code': 'STORAGE_UNAVAILABLE', 'message': 'Storage temporarily unavailable'}
            emit(EventEmitter.ERROR, error)
            return {'success': False, **error}
    return wrapper


class SessionGateway:
    """Binds Socket.IO sessions to identities and forwards their events."""

    def __init__(self, socketio: SocketIO, registry, router, user_repository):
        self.socketio = socketio
        self.registry = registry
        self.router = router
        self.users = user_repository

    def register_handlers(self):
        """Register all session event handlers on the Socket.IO server."""

        @self.socketio.on_error_default
        def default_error_handler(e):
            logger.exception("WS error: %s", e)

        # =====================================================================
        # Connection Events
        # =====================================================================

        @self.socketio.on('connect')
        def handle_connect(auth=None):
            logger.info("WS connect: sid=%s, ip=%s", request.sid, request.remote_addr)
            return True

        @self.socketio.on('disconnect')
        def handle_disconnect(reason=None):
            identity = self.registry.disconnect(request.sid)
            logger.info("WS disconnect: sid=%s, identity=%s, reason=%s", request.sid, identity, reason)

        @self.socketio.on('join')
        @socket_errors
        def handle_join(data=None):
            identity = self._identity_from_join(data)
            if not self.users.exists(identity):
                raise NotFoundError(f"Identity {identity} is not registered")
            self.registry.connect(identity, request.sid)
            logger.info("WS join: sid=%s, identity=%s", request.sid, identity)
            return {'success': True, 'phoneNumber': identity}

        @self.socketio.on('ping')
        def handle_ping(data=None):
            emit(EventEmitter.PONG, {'timestamp': to_iso(utc_now())})

        # =====================================================================
        # Forwarded Events
        # =====================================================================

        @self.socketio.on('typing')
        @socket_errors
        def handle_typing(data=None):
            sender = self._joined_identity()
            if sender is None:
                return None
            data = data if isinstance(data, dict) else {}
            self.router.typing(sender, Target.from_payload(data), bool(data.get('isTyping')))
            return None

        @self.socketio.on('reaction')
        @socket_errors
        def handle_reaction(data=None):
            identity = self._joined_identity()
            if identity is None:
                return None
            data = data if isinstance(data, dict) else {}
            message_id = data.get('messageId')
            if not message_id or not isinstance(message_id, str):
                raise ValidationError('messageId is required')
            self.router.react(message_id, identity, data.get('reaction'))
            return {'success': True}

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _identity_from_join(data: Any) -> str:
        identity = data.get('phoneNumber') if isinstance(data, dict) else data
        if not is_valid_phone(identity):
            raise ValidationError('join requires a valid phone number')
        return identity

    def _joined_identity(self) -> Optional[str]:
        identity = self.registry.identity_for(request.sid)
        if identity is None:
            emit(EventEmitter.ERROR, {'code': 'UNAUTHORIZED', 'message': 'Send join before other events'})
        return identity

    def connection_summary(self) -> Dict[str, Any]:
        return {
            'connections': self.registry.connection_count(),
            'online': len(self.registry.online_identities())
        }
