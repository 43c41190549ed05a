"""End-to-end tests through the FastAPI app: transport seams, limits and CORS."""

from __future__ import annotations

from typing import Any

import pytest
from fastapi.testclient import TestClient

from conftest import admin_header
from milobanana.api.server import create_app
from milobanana.providers.openai_provider import OpenAIProvider
from milobanana.providers.registry import ProviderRegistry


@pytest.fixture
def make_client(config, store, fake_provider, fake_wechat):
    clients: list[TestClient] = []

    def _make(**client_kwargs: Any) -> TestClient:
        app = create_app(
            config,
            store=store,
            providers=ProviderRegistry({"gemini": fake_provider, "openai": OpenAIProvider()}),
            wechat_client=fake_wechat,
        )
        client = TestClient(app, **client_kwargs)
        client.__enter__()
        clients.append(client)
        return client

    yield _make
    for client in clients:
        client.__exit__(None, None, None)


def rpc(method: str, params: Any = None, request_id: Any = 1) -> dict[str, Any]:
    body: dict[str, Any] = {"jsonrpc": "2.0", "method": method, "id": request_id}
    if params is not None:
        body["params"] = params
    return body


def test_health(make_client):
    client = make_client()
    resp = client.post("/health", json=rpc("health.check", request_id="abc"))
    assert resp.status_code == 200
    body = resp.json()
    assert body["jsonrpc"] == "2.0"
    assert body["id"] == "abc"
    assert body["result"]["status"] == "OK"


def test_invalid_json_is_parse_error(make_client):
    client = make_client()
    resp = client.post("/health", content=b"{not json", headers={"Content-Type": "application/json"})
    assert resp.status_code == 200
    assert resp.json() == {"jsonrpc": "2.0", "error": {"code": -32700, "message": "Parse error"}, "id": None}


def test_empty_body_is_parse_error(make_client):
    client = make_client()
    resp = client.post("/health", content=b"")
    assert resp.json()["error"]["code"] == -32700


def test_bad_envelope_has_null_id(make_client):
    client = make_client()
    resp = client.post("/health", json={"jsonrpc": "1.0", "method": "health.check", "id": 5})
    body = resp.json()
    assert body["id"] is None
    assert body["error"] == {
        "code": -32600,
        "message": "Invalid JSON-RPC request format",
        "data": "Invalid JSON-RPC version",
    }


def test_method_from_another_namespace_is_not_found(make_client):
    client = make_client()
    resp = client.post("/health", json=rpc("users.list", request_id=9))
    body = resp.json()
    assert body["id"] == 9
    assert body["error"]["code"] == -32601


def test_unknown_path_and_wrong_verb(make_client):
    client = make_client()
    assert client.post("/api/nothing", json=rpc("x")).status_code == 404
    resp = client.get("/health")
    assert resp.status_code == 404
    assert resp.json() == {"error": "Endpoint not found"}


def test_admin_statuses(make_client):
    client = make_client()
    missing = client.post("/api/users", json=rpc("users.list"))
    assert missing.status_code == 401
    assert missing.json()["error"]["code"] == -32002

    ok = client.post("/api/users", json=rpc("users.list"), headers={"Authorization": admin_header()})
    assert ok.status_code == 200
    assert ok.json()["result"] == []


def test_admin_not_configured(make_client, config):
    config.auth.admin_password = ""
    client = make_client()
    resp = client.post("/api/config", json=rpc("config.get"), headers={"Authorization": "Bearer anything"})
    assert resp.status_code == 500
    assert resp.json()["error"] == {"code": -32603, "message": "Admin password not configured"}


def test_signup_then_generate(make_client, fake_provider):
    client = make_client()
    signup = client.post("/api/signup", json=rpc("auth.signup", {"username": "alice", "password": "secret1"}))
    token = signup.json()["result"]["access_token"]
    headers = {"Authorization": f"Bearer {token}"}

    resp = client.post(
        "/api/images/generations",
        json=rpc("images.generate", {"platform": "gemini", "prompt": [{"text": "banana"}]}),
        headers=headers,
    )
    assert resp.json()["result"]["data"] == [{"text": "a banana"}]
    me = client.post("/api/me", json=rpc("user.profile"), headers=headers)
    assert me.json()["result"]["points"] == 99


def test_global_rate_limit(make_client, config):
    config.rate_limit.enabled = True
    config.rate_limit.max_requests = 2
    client = make_client()
    for _ in range(2):
        assert "result" in client.post("/health", json=rpc("health.check")).json()
    resp = client.post("/health", json=rpc("health.check", request_id=3))
    assert resp.status_code == 200
    body = resp.json()
    assert body["id"] is None
    assert body["error"]["code"] == -32005
    assert body["error"]["message"] == "Too many requests from this IP, please try again later."


def test_auth_rate_limit(make_client, config):
    config.rate_limit.enabled = True
    config.rate_limit.auth_max_requests = 1
    client = make_client()
    params = {"username": "alice", "password": "secret1"}
    client.post("/api/login", json=rpc("auth.login", params))
    resp = client.post("/api/login", json=rpc("auth.login", params))
    assert resp.json()["error"]["message"] == "Too many authentication attempts, please try again later."
    assert "result" in client.post("/health", json=rpc("health.check")).json()


def test_body_too_large(make_client, config):
    config.server.max_body_bytes = 16
    client = make_client()
    resp = client.post("/health", json=rpc("health.check", {"padding": "x" * 64}))
    assert resp.status_code == 413


def test_streamed_body_over_limit_is_rejected(make_client, config):
    config.server.max_body_bytes = 16
    client = make_client()
    resp = client.post("/health", content=iter([b"{\"jsonrpc\": ", b"\"2.0\", \"method\": \"health.check\"}"]))
    assert resp.status_code == 413


def test_unhandled_transport_error(make_client, monkeypatch):
    client = make_client(raise_server_exceptions=False)

    async def explode(*args, **kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr(client.app.state.dispatcher, "dispatch", explode)
    resp = client.post("/health", json=rpc("health.check"))
    assert resp.status_code == 500
    assert resp.json() == {"error": "Internal server error"}


def test_cors_allows_configured_origin(make_client):
    client = make_client()
    resp = client.post("/health", json=rpc("health.check"), headers={"Origin": "http://localhost:5173"})
    assert resp.headers["access-control-allow-origin"] == "http://localhost:5173"
    other = client.post("/health", json=rpc("health.check"), headers={"Origin": "https://evil.example"})
    assert "access-control-allow-origin" not in other.headers
