"""Unit tests for /api/analyze and related endpoints.

Uses FastAPI TestClient so the full ASGI app is exercised, including the
startup event. build_orchestrator is patched to wire in fake backends.
"""

from unittest.mock import patch

from fastapi.testclient import TestClient

from conftest import FAKE_JPEG_B64, FakeGemini, FakeOllama, FakeProbe, make_orchestrator


def _client_with(orch):
    import app as app_module
    return patch.object(app_module, "build_orchestrator", return_value=orch), app_module.app


# ---------------------------------------------------------------------------
# /api/analyze
# ---------------------------------------------------------------------------

def test_analyze_returns_sanitized_text(test_client):
    client, orch = test_client
    resp = client.post("/api/analyze", json={"prompt": "Hello"})
    assert resp.status_code == 200
    assert resp.json() == {"text": "remote answer"}


def test_legacy_route(test_client):
    client, _ = test_client
    resp = client.post("/analisar", json={"prompt": "Hello"})
    assert resp.status_code == 200
    assert "text" in resp.json()


def test_analyze_rejects_missing_media(test_client):
    client, orch = test_client
    resp = client.post("/api/analyze", json={"searchResults": "irrelevant"})
    assert resp.status_code == 400
    assert "error" in resp.json()
    for backend in orch.backends.values():
        assert backend.calls == []


def test_analyze_rejects_bad_base64(test_client):
    client, _ = test_client
    resp = client.post("/api/analyze", json={"image": "%%%"})
    assert resp.status_code == 400


def test_malformed_field_types_get_error_shape(test_client):
    client, orch = test_client
    resp = client.post("/api/analyze", json={"prompt": "hi", "isInitialAnalysis": "maybe"})
    assert resp.status_code == 400
    body = resp.json()
    assert set(body) == {"error"}
    assert "isInitialAnalysis" in body["error"]
    for backend in orch.backends.values():
        assert backend.calls == []


def test_non_string_prompt_gets_error_shape(test_client):
    client, _ = test_client
    resp = client.post("/analisar", json={"prompt": {"nested": True}})
    assert resp.status_code == 400
    assert "error" in resp.json()


def test_followup_fields_use_client_names(test_client):
    client, orch = test_client
    resp = client.post("/api/analyze", json={
        "prompt": "What color is it?",
        "image": FAKE_JPEG_B64,
        "llavaDescription": "a red bicycle",
        "isInitialAnalysis": False,
    })
    assert resp.status_code == 200

    from models import BackendKind
    request, _model = orch.backends[BackendKind.REMOTE].calls[0]
    assert "a red bicycle" in request.prompt_text
    assert request.is_initial_analysis is False


def test_offline_image_is_client_error():
    orch = make_orchestrator(probe=FakeProbe(local=False, network=False))
    patcher, app = _client_with(orch)
    with patcher, TestClient(app) as client:
        resp = client.post("/api/analyze", json={"image": FAKE_JPEG_B64, "isInitialAnalysis": True})
    assert resp.status_code == 400
    assert "offline" in resp.json()["error"]


def test_no_backend_is_server_error():
    orch = make_orchestrator(
        remote=FakeGemini(credentialed=False),
        probe=FakeProbe(local=False, network=True),
    )
    patcher, app = _client_with(orch)
    with patcher, TestClient(app) as client:
        resp = client.post("/api/analyze", json={"prompt": "Hi"})
    assert resp.status_code == 500
    assert "error" in resp.json()


def test_all_backends_failed_is_server_error():
    orch = make_orchestrator(
        local=FakeOllama(fail="refused"),
        remote=FakeGemini(fail="quota"),
        probe=FakeProbe(),
    )
    patcher, app = _client_with(orch)
    with patcher, TestClient(app) as client:
        resp = client.post("/api/analyze", json={"prompt": "Hi"})
    assert resp.status_code == 500
    assert "All backends failed" in resp.json()["error"]


def test_fallback_text_returned():
    orch = make_orchestrator(
        local=FakeOllama(reply="**local** _answer_"),
        remote=FakeGemini(fail="quota"),
        probe=FakeProbe(),
    )
    patcher, app = _client_with(orch)
    with patcher, TestClient(app) as client:
        resp = client.post("/api/analyze", json={"prompt": "Hi"})
    assert resp.status_code == 200
    assert resp.json() == {"text": "local answer"}


# ---------------------------------------------------------------------------
# /health and /api/connectivity
# ---------------------------------------------------------------------------

def test_health_check(test_client):
    client, _ = test_client
    resp = client.get("/health")
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "ok"
    assert body["routing_policy"] in ("remote_first", "local_first")
    assert body["remote_credential"] is True


def test_connectivity_reports_probe(test_client):
    client, orch = test_client
    resp = client.get("/api/connectivity")
    assert resp.status_code == 200
    assert resp.json() == {"local": True, "network": True, "remote_credential": True}
    assert orch.probe.checks == 1
