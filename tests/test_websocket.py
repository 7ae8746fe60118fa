"""Tests for the realtime notification socket."""

from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from proposal_api.core.security import create_access_token
from proposal_api.core.websocket import ConnectionManager
from proposal_api.main import app


def test_websocket_ping_pong():
    token = create_access_token(uuid4(), "representative")
    with TestClient(app) as test_client:
        with test_client.websocket_connect(f"/ws/notifications?token={token}") as ws:
            ws.send_text("ping")
            assert ws.receive_text() == "pong"


def test_websocket_rejects_invalid_token():
    with TestClient(app) as test_client:
        with pytest.raises(WebSocketDisconnect) as exc_info:
            with test_client.websocket_connect("/ws/notifications?token=garbage") as ws:
                ws.receive_text()

    assert exc_info.value.code == 4001


class _FakeSocket:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.accepted = False
        self.sent: list[str] = []

    async def accept(self):
        self.accepted = True

    async def send_text(self, data: str):
        if self.fail:
            raise ConnectionResetError("closed")
        self.sent.append(data)


async def test_connection_manager_fans_out_and_prunes_dead_sockets():
    manager = ConnectionManager()
    user_id = uuid4()
    alive, dead = _FakeSocket(), _FakeSocket(fail=True)

    await manager.connect(alive, user_id)
    await manager.connect(dead, user_id)
    assert len(manager._connections[user_id]) == 2

    await manager.send_to_user(user_id, {"type": "notification", "data": {"id": user_id}})

    assert alive.sent == [f'{{"type": "notification", "data": {{"id": "{user_id}"}}}}']
    assert manager._connections[user_id] == {alive}

    await manager.disconnect(alive, user_id)
    assert manager.is_connected(user_id) is False
