import os
import tempfile
import pytest

# Set test environment before importing app
os.environ['DATABASE_URL'] = 'sqlite:///:memory:'
os.environ['SECRET_KEY'] = 'test-secret'
os.environ['UPLOAD_FOLDER'] = tempfile.mkdtemp(prefix='chatroom_uploads_')

# Force threading mode for tests to avoid eventlet issues
os.environ['SOCKETIO_ASYNC_MODE'] = 'threading'

from app import app, socketio
from chatroom.models import Base, engine, ChatStore
from chatroom.services.presence import PresenceRegistry


@pytest.fixture
def database():
    """Fresh tables for every test"""
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    yield
    Base.metadata.drop_all(engine)


@pytest.fixture
def store(database):
    return ChatStore()


@pytest.fixture
def registry():
    return PresenceRegistry()


@pytest.fixture
def join_user(store, registry):
    """Create (or reuse) a user and register a participant for it"""
    counter = {'n': 0}

    def _join(username, connection_id=None):
        counter['n'] += 1
        user = store.find_or_create_user(username)
        return registry.register(connection_id or f'sid-{counter["n"]}', user)

    return _join


@pytest.fixture
def client(database):
    """Create a test client"""
    app.config['TESTING'] = True

    with app.test_client() as client:
        yield client


@pytest.fixture
def connect(database):
    """Open Socket.IO test clients, optionally joining them; all are closed afterwards"""
    clients = []

    def _connect(username=None):
        sio = socketio.test_client(app)
        clients.append(sio)
        if username is not None:
            sio.emit('join', username)
        return sio

    yield _connect

    for sio in clients:
        if sio.is_connected():
            sio.disconnect()
