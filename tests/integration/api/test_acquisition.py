"""Integration tests for /api/upload, /api/youtube and /api/spotify."""

from fastapi.testclient import TestClient

from musicdrop.config import Settings

WRITE_TWO_FILES = """
out_dir = os.path.dirname(option("--output"))
for name in ("First.opus", "Second.opus"):
    with open(os.path.join(out_dir, name), "wb") as fh:
        fh.write(b"audio")
"""


def _logs(client: TestClient, headers: dict[str, str]) -> list[dict]:
    response = client.get("/api/admin/logs", headers=headers)
    assert response.status_code == 200
    return response.json()["logs"]


# Hey future me - this is the whole happy path: fake yt-dlp writes two files into the
# directory of its --output template, the organizer is off so they get moved over.
def test_youtube_download_completes(
    client: TestClient, admin_headers: dict[str, str], settings: Settings, fake_tool
) -> None:
    fake_tool("yt-dlp", WRITE_TWO_FILES)

    response = client.post(
        "/api/youtube",
        json={"url": "https://youtu.be/abc", "session_id": "yt-1"},
        headers=admin_headers,
    )

    assert response.status_code == 200, response.text
    payload = response.json()
    assert payload["success"] is True
    assert payload["file_count"] == 2
    assert payload["session_id"] == "yt-1"

    [log] = _logs(client, admin_headers)
    assert log["id"] == payload["log_id"]
    assert log["upload_type"] == "youtube"
    assert log["status"] == "completed"
    assert log["file_count"] == 2
    assert log["completed_at"] is not None
    assert (settings.paths.music_dir / "First.opus").is_file()


def test_injection_url_is_rejected_without_job(
    client: TestClient, admin_headers: dict[str, str]
) -> None:
    response = client.post(
        "/api/youtube", json={"url": "https://evil.com/x;rm -rf"}, headers=admin_headers
    )

    assert response.status_code == 400
    assert "error" in response.json()
    assert _logs(client, admin_headers) == []


def test_missing_tool_returns_500_with_log_id(
    client: TestClient, admin_headers: dict[str, str]
) -> None:
    response = client.post(
        "/api/spotify",
        json={"url": "https://open.spotify.com/track/xyz"},
        headers=admin_headers,
    )

    assert response.status_code == 500
    payload = response.json()
    [log] = _logs(client, admin_headers)
    assert payload["log_id"] == log["id"]
    assert log["status"] == "failed"
    assert log["error_message"].startswith("Download failed")


def test_disabled_source_is_forbidden(client: TestClient, admin_headers: dict[str, str]) -> None:
    client.post(
        "/api/admin/config",
        json={"key": "spotify_enabled", "value": "false"},
        headers=admin_headers,
    )

    response = client.post(
        "/api/spotify",
        json={"url": "https://open.spotify.com/track/xyz"},
        headers=admin_headers,
    )

    assert response.status_code == 403
    assert _logs(client, admin_headers) == []


def test_missing_url_is_422(client: TestClient, admin_headers: dict[str, str]) -> None:
    response = client.post("/api/youtube", json={}, headers=admin_headers)
    assert response.status_code == 422
    assert response.json()["error"] == "Invalid request"


def test_acquisition_requires_login(client: TestClient) -> None:
    response = client.post("/api/youtube", json={"url": "https://youtu.be/abc"})
    assert response.status_code == 401


def test_upload_stores_files(
    client: TestClient, admin_headers: dict[str, str], settings: Settings
) -> None:
    response = client.post(
        "/api/upload",
        files=[
            ("files", ("one.mp3", b"ID3 audio", "audio/mpeg")),
            ("files[]", ("two.flac", b"fLaC audio", "audio/flac")),
        ],
        data={"session_id": "up-1"},
        headers=admin_headers,
    )

    assert response.status_code == 200, response.text
    payload = response.json()
    assert payload["file_count"] == 2
    assert payload["session_id"] == "up-1"
    assert (settings.paths.music_dir / "one.mp3").read_bytes() == b"ID3 audio"
    assert (settings.paths.music_dir / "two.flac").is_file()

    [log] = _logs(client, admin_headers)
    assert log["upload_type"] == "file"
    assert log["status"] == "completed"


def test_upload_of_disallowed_type_fails_job(
    client: TestClient, admin_headers: dict[str, str], settings: Settings
) -> None:
    response = client.post(
        "/api/upload",
        files=[("files", ("setup.exe", b"MZ", "application/octet-stream"))],
        headers=admin_headers,
    )

    assert response.status_code == 400
    assert "not allowed" in response.json()["error"]

    [log] = _logs(client, admin_headers)
    assert log["status"] == "failed"
    assert "not allowed" in log["error_message"]
    assert list(settings.paths.temp_dir.iterdir()) == []


def test_upload_without_files(client: TestClient, admin_headers: dict[str, str]) -> None:
    response = client.post("/api/upload", data={"note": "nothing"}, headers=admin_headers)

    assert response.status_code == 400
    [log] = _logs(client, admin_headers)
    assert log["status"] == "failed"


def test_upload_over_size_limit(client: TestClient, admin_headers: dict[str, str]) -> None:
    big = b"x" * (1024 * 1024 + 10)
    response = client.post(
        "/api/upload",
        files=[("files", ("big.mp3", big, "audio/mpeg"))],
        headers=admin_headers,
    )

    assert response.status_code == 400
    assert "too large" in response.json()["error"]
