"""Integration tests for the health probes."""

from fastapi.testclient import TestClient


def test_health_reports_database_and_progress(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "healthy"
    assert payload["checks"]["database"]["connected"] is True
    assert payload["checks"]["progress"]["active_sessions"] == 0
    assert payload["uptime_seconds"] >= 0


def test_liveness(client: TestClient) -> None:
    response = client.get("/health/live")
    assert response.status_code == 200
    assert response.json()["status"] == "alive"


def test_health_needs_no_login(client: TestClient) -> None:
    assert client.get("/health").status_code == 200
