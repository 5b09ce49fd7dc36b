"""End-to-end tests for the /ws chat endpoint through FastAPI's TestClient."""

from __future__ import annotations

import json
import time

import pytest
from fastapi.testclient import TestClient

from ws.hub import ConnectionHub


def _wait_for(predicate, timeout: float = 2.0) -> None:
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not met in time")
        time.sleep(0.01)


@pytest.fixture
def hub():
    return ConnectionHub()


@pytest.fixture
def app(db, hub):
    from main import app as _app
    from database import get_db
    from ws.chat import get_hub

    def _override_get_db():
        try:
            yield db
        finally:
            pass

    _app.dependency_overrides[get_db] = _override_get_db
    _app.dependency_overrides[get_hub] = lambda: hub
    yield _app
    _app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


class TestChatWsEndpoint:
    def test_connect_registers_and_disconnect_unregisters(self, client, hub):
        with client.websocket_connect("/ws"):
            _wait_for(lambda: hub.connection_count == 1)
        _wait_for(lambda: hub.connection_count == 0)

    def test_payload_reaches_every_other_client(self, client, hub):
        payload = json.dumps({"type": "chat_message", "dumpRunId": 7, "userId": 3, "message": "hello"})

        with client.websocket_connect("/ws") as a, \
             client.websocket_connect("/ws") as b, \
             client.websocket_connect("/ws") as c:
            _wait_for(lambda: hub.connection_count == 3)

            a.send_text(payload)

            assert b.receive_text() == payload
            assert c.receive_text() == payload

    def test_malformed_frame_does_not_close_sender(self, client, hub):
        good = json.dumps({"type": "typing", "dumpRunId": 7, "userId": 3})

        with client.websocket_connect("/ws") as a, client.websocket_connect("/ws") as b:
            _wait_for(lambda: hub.connection_count == 2)

            a.send_text("this is not json")
            a.send_text(good)

            # The first thing b sees is the valid frame; the bad one was dropped
            assert b.receive_text() == good
            assert hub.connection_count == 2

    def test_binary_frames_are_relayed_as_text(self, client, hub):
        with client.websocket_connect("/ws") as a, client.websocket_connect("/ws") as b:
            _wait_for(lambda: hub.connection_count == 2)

            a.send_bytes(b'{"type": "typing"}')

            assert b.receive_text() == '{"type": "typing"}'
