from fastapi.testclient import TestClient


def _get_client() -> TestClient:
    from easymode.main import app

    return TestClient(app)


def test_health_endpoint_returns_ok(monkeypatch) -> None:
    from easymode.observability import client as client_module

    monkeypatch.setattr(client_module.settings, "opik_enabled", False)
    client_module.reset_opik_client()
    client = _get_client()
    response = client.get("/health")
    client_module.reset_opik_client()

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "tracing": "disabled"}


def test_request_id_generated_and_returned() -> None:
    client = _get_client()
    response = client.get("/health")

    assert response.headers.get("X-Request-Id")


def test_request_id_echoed_from_header() -> None:
    client = _get_client()
    req_id = "test-request-id-123"
    response = client.get("/health", headers={"X-Request-Id": req_id})

    assert response.headers.get("X-Request-Id") == req_id
