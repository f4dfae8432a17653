"""Integration tests for login, logout and self-service account endpoints."""

from fastapi.testclient import TestClient

from musicdrop.config import Settings


def test_login_returns_token_and_cookie(client: TestClient) -> None:
    response = client.post("/api/login", json={"username": "admin", "password": "admin"})

    assert response.status_code == 200
    payload = response.json()
    assert payload["username"] == "admin"
    assert payload["is_admin"] is True
    assert payload["token"]
    assert response.cookies.get("session_id") == payload["token"]


def test_wrong_password(client: TestClient) -> None:
    response = client.post("/api/login", json={"username": "admin", "password": "nope"})
    assert response.status_code == 401
    assert response.json() == {"error": "Invalid username or password"}


def test_me_with_bearer_token(client: TestClient, admin_headers: dict[str, str]) -> None:
    response = client.get("/api/me", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["username"] == "admin"
    assert "password_hash" not in response.json()


def test_me_with_cookie(client: TestClient) -> None:
    # TestClient keeps the cookie from the login response
    client.post("/api/login", json={"username": "admin", "password": "admin"})
    assert client.get("/api/me").status_code == 200


def test_me_without_login(client: TestClient) -> None:
    response = client.get("/api/me")
    assert response.status_code == 401


def test_garbage_token(client: TestClient) -> None:
    response = client.get("/api/me", headers={"Authorization": "Bearer not-a-session"})
    assert response.status_code == 401


def test_logout_revokes_token(client: TestClient, admin_headers: dict[str, str]) -> None:
    assert client.post("/api/logout", headers=admin_headers).status_code == 200
    client.cookies.clear()
    assert client.get("/api/me", headers=admin_headers).status_code == 401


def test_logout_without_session_still_succeeds(client: TestClient) -> None:
    assert client.post("/api/logout").status_code == 200


def test_change_password(client: TestClient, user_headers: dict[str, str]) -> None:
    too_short = client.post(
        "/api/user/change-password",
        json={"old_password": "alice-password", "new_password": "short"},
        headers=user_headers,
    )
    assert too_short.status_code == 400

    wrong_old = client.post(
        "/api/user/change-password",
        json={"old_password": "guess", "new_password": "brand-new-password"},
        headers=user_headers,
    )
    assert wrong_old.status_code == 401

    ok = client.post(
        "/api/user/change-password",
        json={"old_password": "alice-password", "new_password": "brand-new-password"},
        headers=user_headers,
    )
    assert ok.status_code == 200

    relogin = client.post(
        "/api/login", json={"username": "alice", "password": "brand-new-password"}
    )
    assert relogin.status_code == 200


def test_change_username(client: TestClient, user_headers: dict[str, str]) -> None:
    taken = client.post(
        "/api/user/change-username", json={"new_username": "admin"}, headers=user_headers
    )
    assert taken.status_code == 409

    response = client.post(
        "/api/user/change-username", json={"new_username": "alicia"}, headers=user_headers
    )
    assert response.status_code == 200
    assert response.json()["new_username"] == "alicia"
    assert client.get("/api/me", headers=user_headers).json()["username"] == "alicia"


def test_my_directories_only_resolve(
    client: TestClient, admin_headers: dict[str, str], settings: Settings, tmp_path
) -> None:
    me = client.get("/api/me", headers=admin_headers).json()
    library = tmp_path / "admin-lib"
    client.put(
        f"/api/admin/users/{me['id']}/library-path",
        json={"library_path": str(library)},
        headers=admin_headers,
    )

    response = client.get("/api/me/directories", headers=admin_headers)

    assert response.status_code == 200
    payload = response.json()
    assert payload["music_dir"] == str(library)
    assert payload["temp_dir"] == str(library / "tmp")
    assert payload["music_dir_exists"] is False
    assert not library.exists()
