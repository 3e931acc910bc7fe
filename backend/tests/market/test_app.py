"""Tests for the FastAPI application wiring."""

import numpy as np
from fastapi.testclient import TestClient

from quote_relay.main import create_app
from quote_relay.market.lifecycle import RelayController


def _app(settings, http_client, connector):
    controller = RelayController(
        settings,
        http_client=http_client,
        connect=connector,
        rng=np.random.default_rng(0),
    )
    return create_app(settings, controller), controller


class TestApp:
    """Health endpoints and the downstream WebSocket."""

    def test_health_endpoints(self, settings, http_client, provider, connector):
        app, _ = _app(settings, http_client, connector)
        with TestClient(app) as client:
            index = client.get("/")
            assert index.status_code == 200
            assert "running" in index.text

            health = client.get("/healthz")
            assert health.status_code == 200
            assert health.text == "OK"

    def test_status_endpoint(self, settings, http_client, provider, connector):
        app, _ = _app(settings, http_client, connector)
        with TestClient(app) as client:
            body = client.get("/status").json()
        assert body["epic"] == "GOLD"
        assert "connection" in body

    def test_websocket_receives_welcome_then_mock_quotes(self, settings, http_client, provider, connector):
        """Closed market: a subscriber is greeted, then fed synthetic quotes."""
        provider.market_status = "CLOSED"
        app, controller = _app(settings, http_client, connector)

        with TestClient(app) as client:
            with client.websocket_connect("/") as ws:
                welcome = ws.receive_json()
                assert welcome["message"] == "Connected to GOLD price feed"

                quote = ws.receive_json()
                assert quote["source"] == "Mock"
                assert quote["ask"] > quote["bid"]
                assert isinstance(quote["timestamp"], int)

        assert connector.calls == []
        assert len(controller.hub) == 0

    def test_websocket_alias_path(self, settings, http_client, provider, connector):
        provider.market_status = "CLOSED"
        app, _ = _app(settings, http_client, connector)
        with TestClient(app) as client:
            with client.websocket_connect("/ws") as ws:
                assert "message" in ws.receive_json()

    def test_credentials_loaded_before_serving(self, settings, http_client, provider, connector):
        settings.session_file.write_text('{"cst": "saved", "securityToken": "saved-x"}')
        app, controller = _app(settings, http_client, connector)
        with TestClient(app):
            assert controller.store.present
