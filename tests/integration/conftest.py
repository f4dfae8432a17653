"""Integration fixtures: the real app, booted through its lifespan."""

from collections.abc import Callable, Iterator

import pytest
from fastapi.testclient import TestClient

from musicdrop.config import Settings
from musicdrop.main import create_app

Login = Callable[[str, str], dict[str, str]]


@pytest.fixture
def client(settings: Settings) -> Iterator[TestClient]:
    """App with a temp database, bootstrapped admin/admin and no tools installed."""
    with TestClient(create_app(settings)) as test_client:
        yield test_client


@pytest.fixture
def login(client: TestClient) -> Login:
    """Log in and return an Authorization header for the new session."""

    def _login(username: str, password: str) -> dict[str, str]:
        response = client.post("/api/login", json={"username": username, "password": password})
        assert response.status_code == 200, response.text
        return {"Authorization": f"Bearer {response.json()['token']}"}

    return _login


@pytest.fixture
def admin_headers(login: Login) -> dict[str, str]:
    """Bearer header for the bootstrapped admin."""
    return login("admin", "admin")


@pytest.fixture
def user_headers(
    client: TestClient, login: Login, admin_headers: dict[str, str]
) -> dict[str, str]:
    """Bearer header for a plain user created through the admin API."""
    response = client.post(
        "/api/admin/users",
        json={"username": "alice", "password": "alice-password"},
        headers=admin_headers,
    )
    assert response.status_code == 201, response.text
    return login("alice", "alice-password")
