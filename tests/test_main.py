from fastapi.testclient import TestClient

from rushr_messaging.middleware import resolve_request_id


def test_health_check(client: TestClient) -> None:
    """Test the health check endpoint."""
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert "status" in data
    assert "database" in data
    assert "version" in data
    # Status should be healthy or degraded
    assert data["status"] in ["healthy", "degraded"]


def test_request_id_is_echoed(client: TestClient) -> None:
    response = client.get("/health", headers={"X-Request-ID": "req-123.abc"})
    assert response.headers["X-Request-ID"] == "req-123.abc"


def test_request_id_is_generated(client: TestClient) -> None:
    response = client.get("/health", headers={"X-Request-ID": "bad id; drop table"})
    generated = response.headers["X-Request-ID"]
    assert generated != "bad id; drop table"
    assert len(generated) == 36


def test_resolve_request_id() -> None:
    assert resolve_request_id("abc_DEF-1.2") == "abc_DEF-1.2"
    assert resolve_request_id("") != ""
    assert resolve_request_id("x" * 200) != "x" * 200


def test_openapi_lists_messaging_routes(client: TestClient) -> None:
    paths = client.get("/openapi.json").json()["paths"]
    assert "/api/conversations" in paths
    assert "/api/conversations/{conversation_id}/messages" in paths
    assert "/api/messages/{message_id}" in paths
    assert "/api/offers/{offer_id}/respond" in paths
