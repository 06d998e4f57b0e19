from aiohttp.test_utils import TestClient, TestServer

from conftest import FakeTransport
from unipager_client.panel import OperatorPanel


async def test_state_endpoint(client):
    panel = OperatorPanel(client)
    async with TestClient(TestServer(panel.app)) as http:
        resp = await http.get("/api/state")
        assert resp.status == 200
        assert resp.headers["X-Frame-Options"] == "DENY"
        data = await resp.json()

    assert data["connected"] is False
    assert data["telemetry"] == {"node": {}, "config": {}, "messages": {}}
    assert data["page_defaults"]["payload"]["address"] == 0


async def test_websocket_sends_initial_state_and_rejects_bad_input(client):
    panel = OperatorPanel(client)
    async with TestClient(TestServer(panel.app)) as http:
        ws = await http.ws_connect("/ws")
        first = await ws.receive_json()
        assert first["type"] == "state"
        assert first["state"]["connected"] is False

        await ws.send_str("not json")
        assert (await ws.receive_json())["error"] == "Invalid JSON format"

        await ws.send_json(["list"])
        assert (await ws.receive_json())["error"] == "Message must be a JSON object"

        await ws.send_json({"type": "reboot"})
        assert (await ws.receive_json())["error"] == "Invalid message type"

        await ws.close()


async def test_websocket_action_not_connected(client):
    panel = OperatorPanel(client)
    async with TestClient(TestServer(panel.app)) as http:
        ws = await http.ws_connect("/ws")
        await ws.receive_json()

        await ws.send_json({"type": "run_test"})
        reply = await ws.receive_json()
        assert reply == {"type": "error", "error": "Not connected to UniPager"}

        await ws.close()


async def test_websocket_actions_reach_server(client, settings):
    transport = FakeTransport()
    client.connection.handle_open(transport)
    panel = OperatorPanel(client)

    async with TestClient(TestServer(panel.app)) as http:
        ws = await http.ws_connect("/ws")
        await ws.receive_json()

        await ws.send_json({"type": "run_test"})
        assert await ws.receive_json() == {"type": "ok", "action": "run_test"}

        await ws.send_json({"type": "submit_page", "page": {"payload": {"address": 55, "data": "hi"}}})
        assert await ws.receive_json() == {"type": "ok", "action": "submit_page"}

        await ws.send_json({"type": "submit_page", "page": {"payload": {"type": "morse"}}})
        assert (await ws.receive_json())["type"] == "error"

        await ws.send_json({"type": "save_config"})
        assert await ws.receive_json() == {"type": "error", "error": "No configuration loaded"}

        await ws.send_json({"type": "save_config", "config": {"ptt": {"pin": 3}}})
        assert await ws.receive_json() == {"type": "ok", "action": "save_config"}

        await ws.send_json({"type": "authenticate", "secret": "pw"})
        assert await ws.receive_json() == {"type": "ok", "action": "authenticate"}

        await ws.close()

    assert transport.sent[1] == "Test"
    assert transport.sent[2]["SendMessage"]["message"]["addr"] == 55
    assert transport.sent[3] == {"SetConfig": {"ptt": {"pin": 3}}}
    assert transport.sent[4] == {"Authenticate": "pw"}
    assert settings.read_pager_address() == 55
    assert settings.read() == "pw"


async def test_state_changes_are_broadcast(client):
    panel = OperatorPanel(client, port=0)
    panel._unsubscribe = client.subscribe(panel._on_change)

    async with TestClient(TestServer(panel.app)) as http:
        ws = await http.ws_connect("/ws")
        await ws.receive_json()

        client.connection.handle_open(FakeTransport())
        topics = [(await ws.receive_json())["topic"] for _ in range(2)]
        assert topics == ["log", "session"]

        await ws.close()

    await panel.stop()


async def test_token_auth(client):
    panel = OperatorPanel(client, config={"enable_auth": True, "auth_token": "s3cret"})
    async with TestClient(TestServer(panel.app)) as http:
        resp = await http.get("/api/state")
        assert resp.status == 401

        resp = await http.get("/api/state", headers={"Authorization": "Bearer wrong"})
        assert resp.status == 401

        resp = await http.get("/api/state", headers={"Authorization": "Bearer s3cret"})
        assert resp.status == 200

        resp = await http.get("/api/state", params={"token": "s3cret"})
        assert resp.status == 200


async def test_auth_without_token_is_disabled(client):
    panel = OperatorPanel(client, config={"enable_auth": True, "auth_token": ""})
    async with TestClient(TestServer(panel.app)) as http:
        resp = await http.get("/api/state")
        assert resp.status == 200


def test_handle_message_validation(client):
    panel = OperatorPanel(client)

    assert panel.handle_message("{") == {"type": "error", "error": "Invalid JSON format"}
    assert panel.handle_message('{"type": ["run_test"]}') == {
        "type": "error",
        "error": "Invalid message type",
    }
    assert panel.handle_message('{"type": "get_state"}')["type"] == "state"


async def test_websocket_rate_limit(client):
    panel = OperatorPanel(client)
    async with TestClient(TestServer(panel.app)) as http:
        ws = await http.ws_connect("/ws")
        await ws.receive_json()

        for _ in range(25):
            await ws.send_json({"type": "get_state"})
        replies = [await ws.receive_json() for _ in range(25)]

        assert [r["type"] for r in replies[:20]] == ["state"] * 20
        assert replies[-1] == {"type": "error", "error": "Rate limit exceeded"}

        await ws.close()
