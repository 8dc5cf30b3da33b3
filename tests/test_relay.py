"""
Tests for nebula_chat.relay -- same-origin FastAPI relay.
"""

import httpx
from fastapi.testclient import TestClient

from nebula_chat.relay import create_relay_app

from .conftest import CLIENT_ID, SECRET_KEY, WALLET, delta, make_client, stream_response


def _relay(respond, **config):
    client, handler = make_client(respond, **config)
    return TestClient(create_relay_app(client=client)), handler


class TestRelayChat:

    def test_missing_fields(self):
        app, handler = _relay(lambda request: httpx.Response(200))

        response = app.post("/api/nebula", json={"message": "hi"})

        assert response.status_code == 400
        assert response.json() == {"error": "message and walletAddress are required"}
        assert handler.requests == []

    def test_missing_key(self):
        app, handler = _relay(lambda request: httpx.Response(200), secret_key=None)

        response = app.post("/api/nebula", json={"message": "hi", "walletAddress": WALLET})

        assert response.status_code == 400
        assert "API key is required" in response.json()["error"]
        assert handler.requests == []

    def test_stream_passthrough(self):
        upstream, _ = stream_response(delta("Hel"), delta("lo"))
        app, handler = _relay(lambda request: upstream)

        response = app.post("/api/nebula", json={"message": "hi", "walletAddress": WALLET, "userId": "u1"})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        assert response.headers["cache-control"] == "no-cache"
        assert response.content == delta("Hel") + delta("lo")
        assert handler.last_json["user_id"] == "u1"
        assert handler.last_json["execute_config"]["signer_wallet_address"] == WALLET

    def test_body_api_key_used(self):
        upstream, _ = stream_response(delta("ok"))
        app, handler = _relay(lambda request: upstream, secret_key=None)

        response = app.post(
            "/api/nebula",
            json={"message": "hi", "walletAddress": WALLET, "apiKey": SECRET_KEY},
        )

        assert response.status_code == 200
        assert handler.requests[0].headers["x-secret-key"] == SECRET_KEY

    def test_non_stream_json(self):
        payload = {"result": {"message": "$3000", "session_id": "s1", "message_id": "m1"}}
        app, _ = _relay(lambda request: httpx.Response(200, json=payload))

        response = app.post("/api/nebula", json={"message": "hi", "walletAddress": WALLET, "stream": False})

        assert response.status_code == 200
        assert response.json() == payload

    def test_upstream_error(self):
        app, _ = _relay(lambda request: httpx.Response(503, text="unavailable"))

        response = app.post("/api/nebula", json={"message": "hi", "walletAddress": WALLET})

        assert response.status_code == 500
        assert "503" in response.json()["error"]


class TestConnectionCheck:

    def _body(self, **overrides):
        body = {"apiKey": SECRET_KEY, "clientId": CLIENT_ID}
        body.update(overrides)
        return body

    def test_success(self):
        app, handler = _relay(lambda request: httpx.Response(200, json={"message": "Hi"}), secret_key=None)

        response = app.post("/api/test-connection", json=self._body())

        assert response.status_code == 200
        assert response.json() == {"success": True}
        assert handler.requests[0].headers["x-client-id"] == CLIENT_ID

    def test_missing_fields(self):
        app, _ = _relay(lambda request: httpx.Response(200))
        response = app.post("/api/test-connection", json={"apiKey": SECRET_KEY})
        assert response.status_code == 400

    def test_bad_format(self):
        app, handler = _relay(lambda request: httpx.Response(200))

        response = app.post("/api/test-connection", json=self._body(apiKey="pk_short"))

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid API Key format"}
        assert handler.requests == []

    def test_rejected_key(self):
        app, _ = _relay(lambda request: httpx.Response(401, text="unauthorized"))
        response = app.post("/api/test-connection", json=self._body())
        assert response.status_code == 401

    def test_network_failure(self):
        def respond(request):
            raise httpx.ConnectError("connection refused", request=request)

        app, _ = _relay(respond)

        response = app.post("/api/test-connection", json=self._body())

        assert response.status_code == 500


def test_health():
    app, _ = _relay(lambda request: httpx.Response(200))
    assert app.get("/api/health").json() == {"status": "healthy"}
