"""
End-to-end tests through FastAPI's TestClient.

Run with:
    pytest relay/tests/test_server.py -v
"""

import time

import pytest
from fastapi import status
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from relay.config import RelaySettings
from relay.server import create_app


def wait_for_connections(app, expected: int, timeout: float = 2.0):
    """Block until the registry holds ``expected`` connections."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if app.state.registry.get_connection_count() == expected:
            return
        time.sleep(0.01)
    raise AssertionError(
        f"expected {expected} connections, have {app.state.registry.get_connection_count()}"
    )


@pytest.fixture
def app():
    return create_app(RelaySettings(write_timeout=1.0))


def test_result_is_broadcast_back_to_sender(app):
    with TestClient(app) as client:
        with client.websocket_connect("/compute") as ws:
            ws.send_json({"name": "alice", "expression": "3+4"})
            assert ws.receive_text() == "alice: 3.00 + 4.00 = 7.00"


def test_result_reaches_every_client(app):
    with TestClient(app) as client:
        with client.websocket_connect("/compute") as alice, client.websocket_connect("/compute") as bob:
            wait_for_connections(app, 2)

            alice.send_json({"name": "alice", "expression": "10/2"})
            assert alice.receive_text() == "alice: 10.00 / 2.00 = 5.00"
            assert bob.receive_text() == "alice: 10.00 / 2.00 = 5.00"

            bob.send_json({"name": "bob", "expression": "2*-3"})
            assert alice.receive_text() == "bob: 2.00 * -3.00 = -6.00"
            assert bob.receive_text() == "bob: 2.00 * -3.00 = -6.00"


def test_malformed_expression_closes_connection(app):
    with TestClient(app) as client:
        with client.websocket_connect("/compute") as ws:
            ws.send_json({"name": "alice", "expression": "abc+2"})
            with pytest.raises(WebSocketDisconnect) as exc:
                ws.receive_text()
            assert exc.value.code == status.WS_1003_UNSUPPORTED_DATA

        wait_for_connections(app, 0)


def test_other_clients_survive_a_bad_request(app):
    with TestClient(app) as client:
        with client.websocket_connect("/compute") as good:
            with client.websocket_connect("/compute") as bad:
                wait_for_connections(app, 2)
                bad.send_text("not json")
                with pytest.raises(WebSocketDisconnect):
                    bad.receive_text()

            wait_for_connections(app, 1)
            good.send_json({"name": "carol", "expression": "1-1"})
            assert good.receive_text() == "carol: 1.00 - 1.00 = 0.00"


def test_landing_page_points_at_compute_endpoint(app):
    with TestClient(app) as client:
        response = client.get("/")
        assert response.status_code == 200
        assert "ws://testserver/compute" in response.text


def test_health_reports_running_hub(app):
    with TestClient(app) as client:
        body = client.get("/health").json()
        assert body["status"] == "healthy"
        assert body["hub"]["running"] is True
        assert body["hub"]["policy"] == "block"


def test_websocket_status_counts_connections(app):
    with TestClient(app) as client:
        assert client.get("/ws/status").json()["total_connections"] == 0
        with client.websocket_connect("/compute"):
            wait_for_connections(app, 1)
            assert client.get("/ws/status").json()["total_connections"] == 1


def test_hub_stops_with_app(app):
    with TestClient(app):
        assert app.state.hub.is_running
    assert not app.state.hub.is_running


def test_landing_page_escapes_host_header(app):
    hostile = 'x";alert(1);//</script><script>alert(2)</script>'
    with TestClient(app) as client:
        body = client.get("/", headers={"host": hostile}).text

    assert "<script>alert(2)</script>" not in body
    assert 'new WebSocket("ws://x\\";alert(1)' in body


def test_default_app_reads_environment(monkeypatch):
    monkeypatch.setattr("relay.config.load_dotenv", lambda: None)
    monkeypatch.setenv("RELAY_QUEUE_SIZE", "7")
    monkeypatch.setenv("RELAY_BACKPRESSURE", "drop_newest")

    app = create_app()

    stats = app.state.hub.stats()
    assert stats["queue_capacity"] == 7
    assert stats["policy"] == "drop_newest"
