from __future__ import annotations

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect, WebSocketState

from cinescript.ws.manager import ConnectionManager
from tests.fakes import make_content


@pytest.fixture()
def client(app):
    with TestClient(app) as client:
        yield client


@pytest.fixture()
def session_id(store, gateway):
    sid, _ = store.create(gateway)
    return sid


def test_ws_ping_and_echo(client, session_id):
    with client.websocket_connect(f"/ws/sessions/{session_id}") as ws:
        assert ws.receive_json() == {"type": "connected", "data": {"session_id": session_id}}

        ws.send_json({"type": "ping"})
        assert ws.receive_json() == {"type": "pong", "data": {}}

        ws.send_json({"type": "echo", "data": "xin chào"})
        assert ws.receive_json() == {"type": "echo", "data": {"value": "xin chào"}}


def test_ws_unknown_session_is_closed(client):
    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect("/ws/sessions/missing") as ws:
            ws.receive_json()
    assert exc_info.value.code == 4404


def test_session_created_over_http_is_visible_to_ws(client):
    session_id = client.post("/api/v1/sessions").json()["id"]
    with client.websocket_connect(f"/ws/sessions/{session_id}") as ws:
        assert ws.receive_json()["type"] == "connected"


def test_roster_change_is_pushed_to_subscribers(client, session_id, ws_manager):
    with client.websocket_connect(f"/ws/sessions/{session_id}") as ws:
        ws.receive_json()
        assert ws_manager.subscriber_count(session_id) == 1

        res = client.post(f"/api/v1/sessions/{session_id}/roster")
        assert res.status_code == 201

        event = ws.receive_json()
        assert event["type"] == "roster_updated"
        assert [p["id"] for p in event["data"]["roster"]] == [res.json()["id"]]

    assert ws_manager.subscriber_count(session_id) == 0


class FakeSocket:
    def __init__(self, fail: bool = False):
        self.client_state = WebSocketState.CONNECTED
        self.fail = fail
        self.sent: list[dict] = []

    async def send_json(self, data):
        if self.fail:
            raise RuntimeError("socket closed")
        self.sent.append(data)


@pytest.mark.asyncio
async def test_broadcast_drops_broken_subscribers():
    manager = ConnectionManager()
    good, broken = FakeSocket(), FakeSocket(fail=True)
    manager._subscribers["s1"] = [good, broken]

    await manager.content_replaced("s1", make_content("A"))

    assert good.sent[0]["type"] == "content_replaced"
    assert good.sent[0]["data"]["content"]["script"][0]["primary"] == "A"
    assert manager.subscriber_count("s1") == 1


@pytest.mark.asyncio
async def test_broadcast_is_scoped_to_session():
    manager = ConnectionManager()
    mine, other = FakeSocket(), FakeSocket()
    manager._subscribers["s1"] = [mine]
    manager._subscribers["s2"] = [other]

    await manager.generation_failed("s1", "bulk", "upstream down")

    assert mine.sent == [{"type": "generation_failed", "data": {"kind": "bulk", "message": "upstream down"}}]
    assert other.sent == []


def test_drop_session_forgets_subscribers():
    manager = ConnectionManager()
    manager._subscribers["s1"] = [FakeSocket()]
    manager.drop_session("s1")
    assert manager.subscriber_count("s1") == 0
    manager.unsubscribe("s1", FakeSocket())
