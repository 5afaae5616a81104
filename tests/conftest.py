"""
Pytest configuration and shared fixtures.

MongoDB is replaced by mongomock; every test gets a fresh in-memory database.
Component tests use a RecordingEmitter instead of a Socket.IO server; app tests
build the real app through server.create_app.
"""
from datetime import datetime, timedelta

import mongomock
import pytest
from flask_socketio import SocketIO

from chatify_server.messaging.channel_resolver import ChannelResolver
from chatify_server.messaging.presence import PresenceRegistry
from chatify_server.messaging.repository import MessageRepository
from chatify_server.messaging.router import DeliveryRouter
from chatify_server.repository.group_repository import GroupRepository
from chatify_server.repository.user_repository import UserRepository
from server import create_app

ALICE = '+15550000001'
BOB = '+15550000002'
CAROL = '+15550000003'
DAVE = '+15550000004'

PEOPLE = {ALICE: 'alice', BOB: 'bob', CAROL: 'carol', DAVE: 'dave'}


class FixedClock:
    """Manually advanced clock; whole seconds so values survive a Mongo round trip."""

    def __init__(self, start=datetime(2024, 1, 1, 12, 0, 0)):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds=1):
        self.now += timedelta(seconds=seconds)
        return self.now


class RecordingEmitter:
    """Stands in for the Socket.IO transport and records what would be sent."""

    def __init__(self):
        self.emitted = []
        self.broadcasts = []

    def emit_to_connection(self, sid, event, data):
        self.emitted.append((sid, event, data))
        return True

    def broadcast(self, event, data):
        self.broadcasts.append((event, data))
        return True

    def received(self, sid, event=None):
        return [data for s, e, data in self.emitted if s == sid and (event is None or e == event)]

    def events(self, event):
        return [(sid, data) for sid, e, data in self.emitted if e == event]

    def clear(self):
        self.emitted.clear()
        self.broadcasts.clear()


# =============================================================================
# Component fixtures
# =============================================================================

@pytest.fixture
def db():
    return mongomock.MongoClient()['chatify_test']


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def emitter():
    return RecordingEmitter()


@pytest.fixture
def users(db):
    repo = UserRepository(db)
    repo.ensure_indexes()
    for phone, name in PEOPLE.items():
        repo.register(phone, name)
    return repo


@pytest.fixture
def groups(db):
    repo = GroupRepository(db)
    repo.ensure_indexes()
    return repo


@pytest.fixture
def messages(db, clock):
    repo = MessageRepository(db, now_func=clock)
    repo.ensure_indexes()
    return repo


@pytest.fixture
def registry(users, emitter, clock):
    return PresenceRegistry(users, emitter, now_func=clock)


@pytest.fixture
def resolver(groups):
    return ChannelResolver(groups)


@pytest.fixture
def router(messages, resolver, registry, emitter):
    return DeliveryRouter(messages, resolver, registry, emitter)


@pytest.fixture
def team(groups):
    """Group of ALICE, BOB and CAROL created by ALICE."""
    return groups.create_group('team', [BOB, CAROL], ALICE)


# =============================================================================
# Application fixtures
# =============================================================================

@pytest.fixture
def app(db, clock):
    app = create_app(db=db, socketio=SocketIO(async_mode='threading'), now_func=clock)
    app.config['TESTING'] = True
    core = app.extensions['chatify']
    for phone, name in PEOPLE.items():
        core.users.register(phone, name)
    return app


@pytest.fixture
def core(app):
    return app.extensions['chatify']


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def connect_socket(app):
    """Factory for Socket.IO test clients; optionally joined as an identity."""
    socketio = app.extensions['socketio']
    clients = []

    def _connect(identity=None):
        socket_client = socketio.test_client(app, flask_test_client=app.test_client())
        clients.append(socket_client)
        if identity is not None:
            ack = socket_client.emit('join', identity, callback=True)
            assert ack['success'] is True
            socket_client.get_received()
        return socket_client

    yield _connect

    for socket_client in clients:
        if socket_client.is_connected():
            socket_client.disconnect()


def events_named(socket_client, name):
    """Payloads of the events `name` queued for a Socket.IO test client."""
    return [packet_payload(packet) for packet in socket_client.get_received() if packet['name'] == name]


def packet_payload(packet):
    # the test client keeps the payload of a `message` event unwrapped
    args = packet['args']
    return args[0] if isinstance(args, list) else args
