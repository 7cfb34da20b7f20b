"""
Websocket listener tests (login_server.api.routes.world).

Frames on one channel are handled concurrently, so these tests only assert on
request/reply pairs. Ordering of fire-and-forget events is covered by the
coordinator tests.
"""

import base64
import json
from datetime import UTC, datetime

import pytest
from fastapi.testclient import TestClient

from login_server.api.server import create_app
from tests.constants import NODE_A, PROFILE, TEST_PASSWORD


@pytest.fixture
def client(coordinator):
    """TestClient around an app sharing the test coordinator."""
    with TestClient(create_app(coordinator)) as test_client:
        yield test_client


def _login_frame(username: str, password: str = TEST_PASSWORD, reply_to: int = 1) -> str:
    return json.dumps(
        {
            "type": "player_login",
            "replyTo": reply_to,
            "username": username,
            "password": password,
            "uid": 77,
            "profile": PROFILE,
            "socket": f"conn-{reply_to}",
            "remoteAddress": "203.0.113.9",
            "nodeId": NODE_A,
            "nodeTime": datetime.now(UTC).isoformat(),
        }
    )


@pytest.mark.api
def test_login_reply(client, make_account):
    make_account("alice")

    with client.websocket_connect("/") as ws:
        ws.send_text(_login_frame("alice", reply_to=11))
        reply = ws.receive_json()

    assert reply == {
        "type": "player_login",
        "replyTo": 11,
        "code": 4,
        "staff_level": 0,
        "muted_until": None,
    }


@pytest.mark.api
def test_ws_alias_path(client, make_account):
    make_account("alice")

    with client.websocket_connect("/ws") as ws:
        ws.send_text(_login_frame("alice", password="wrong"))
        assert ws.receive_json()["code"] == 1


@pytest.mark.api
def test_malformed_frames_do_not_close_channel(client, make_account):
    make_account("alice")

    with client.websocket_connect("/") as ws:
        ws.send_text("{not json")
        ws.send_text(json.dumps({"type": "player_teleport", "username": "alice"}))
        ws.send_text(json.dumps({"type": "player_login", "replyTo": 3}))
        ws.send_text(_login_frame("alice", reply_to=4))
        reply = ws.receive_json()

    assert reply["replyTo"] == 4
    assert reply["code"] == 4


@pytest.mark.api
def test_logout_reply_after_login(client, make_account, valid_save):
    make_account("alice")

    with client.websocket_connect("/") as ws:
        ws.send_text(_login_frame("alice", reply_to=1))
        assert ws.receive_json()["code"] == 4

        ws.send_text(
            json.dumps(
                {
                    "type": "player_logout",
                    "replyTo": 2,
                    "username": "alice",
                    "save": base64.b64encode(valid_save).decode("ascii"),
                    "profile": PROFILE,
                }
            )
        )
        assert ws.receive_json() == {"type": "player_logout", "replyTo": 2, "code": 0}

        ws.send_text(_login_frame("alice", reply_to=3))
        reply = ws.receive_json()

    assert reply["code"] == 0
    assert base64.b64decode(reply["save"]) == valid_save


@pytest.mark.api
def test_second_node_sees_already_logged_in(client, make_account):
    make_account("alice")

    with client.websocket_connect("/") as first, client.websocket_connect("/") as second:
        first.send_text(_login_frame("alice", reply_to=1))
        assert first.receive_json()["code"] == 4

        frame = json.loads(_login_frame("alice", reply_to=2))
        frame["nodeId"] = NODE_A + 1
        second.send_text(json.dumps(frame))
        assert second.receive_json()["code"] == 3


@pytest.mark.api
def test_handler_error_is_contained(client, make_account, monkeypatch):
    make_account("alice")
    calls = {"n": 0}
    real_login = client.app.state.coordinator.player_login

    def flaky_login(event):
        calls["n"] += 1
        if calls["n"] == 1:
            raise RuntimeError("boom")
        return real_login(event)

    monkeypatch.setattr(client.app.state.coordinator, "player_login", flaky_login)

    with client.websocket_connect("/") as ws:
        ws.send_text(_login_frame("alice", reply_to=1))
        ws.send_text(_login_frame("alice", reply_to=2))
        reply = ws.receive_json()

    assert reply["code"] in (2, 4)


@pytest.mark.api
def test_health_reports_connected_nodes(client, make_account):
    response = client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["connected_nodes"] == 0

    make_account("alice")
    with client.websocket_connect("/") as ws:
        ws.send_text(_login_frame("alice"))
        ws.receive_json()
        assert client.get("/health").json()["connected_nodes"] == 1
