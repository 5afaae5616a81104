"""Wiring for the messaging core.

One ChatCore per Flask app, stored in `app.extensions['chatify']`. Routes and
socket handlers reach the components through `get_core()` instead of module
globals, so several apps (e.g. in tests) can live side by side.
"""
import logging
from datetime import datetime
from typing import Callable

from flask import current_app
from flask_socketio import SocketIO

from chatify_server.messaging.channel_resolver import ChannelResolver
from chatify_server.messaging.presence import PresenceRegistry
from chatify_server.messaging.repository import MessageRepository
from chatify_server.messaging.router import DeliveryRouter
from chatify_server.repository.group_repository import GroupRepository
from chatify_server.repository.mongo_helper import ensure_indexes
from chatify_server.repository.user_repository import UserRepository
from chatify_server.utils.time_utils import utc_now
from chatify_server.websocket.event_emitter import EventEmitter
from chatify_server.websocket.gateway import SessionGateway

logger = logging.getLogger(__name__)

EXTENSION_KEY = 'chatify'


class ChatCore:
    """Holds the repositories and components that make up one chat server."""

    def __init__(
        self,
        db,
        socketio: SocketIO,
        page_size: int = 50,
        search_limit: int = 50,
        max_attachment_mb: int = 10,
        now_func: Callable[[], datetime] = utc_now
    ):
        self.db = db
        self.socketio = socketio
        self.max_attachment_bytes = max_attachment_mb * 1024 * 1024

        self.users = UserRepository(db)
        self.groups = GroupRepository(db)
        self.messages = MessageRepository(db, page_size=page_size, now_func=now_func)

        self.emitter = EventEmitter(socketio)
        self.registry = PresenceRegistry(self.users, self.emitter, now_func=now_func)
        self.resolver = ChannelResolver(self.groups)
        self.router = DeliveryRouter(self.messages, self.resolver, self.registry, self.emitter, search_limit=search_limit)
        self.gateway = SessionGateway(socketio, self.registry, self.router, self.users)

    def start(self):
        """Prepare storage and register socket handlers."""
        ensure_indexes(self.users, self.groups, self.messages)
        reset = self.users.reset_presence()
        if reset:
            logger.info("Cleared stale online flags on %d identities", reset)
        self.gateway.register_handlers()

    def init_app(self, app):
        app.extensions[EXTENSION_KEY] = self


def get_core(app=None) -> ChatCore:
    """Return the ChatCore of `app` (default: the current app)."""
    app = app or current_app
    return app.extensions[EXTENSION_KEY]
