import os

# Keep eventlet (if installed) from monkey-patching the test process.
os.environ.setdefault("DUOCHAT_SOCKETIO_ASYNC", "threading")

import pytest

from interactive_setup import get_default_settings
from realtime.session import RoomSession
from realtime.throttle import SendThrottle
from server_init import create_app
from tests.helpers import FakeClock


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def session(clock):
    return RoomSession(throttle=SendThrottle(clock=clock), clock=clock)


@pytest.fixture
def settings():
    s = get_default_settings()
    s["log_file_path"] = ""
    s["secret_key"] = "test-secret"
    return s


@pytest.fixture
def app(settings, session):
    app, _ = create_app(settings, session=session)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def make_client(app):
    socketio = app.config["DUOCHAT_SOCKETIO"]
    clients = []

    def _make():
        client = socketio.test_client(app)
        assert client.is_connected()
        clients.append(client)
        return client

    yield _make

    for c in clients:
        if c.is_connected():
            c.disconnect()
