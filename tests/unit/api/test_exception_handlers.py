"""Unit tests for the domain exception -> HTTP mapping."""

import pytest
from fastapi import FastAPI, HTTPException
from fastapi.testclient import TestClient
from pydantic import BaseModel
from sqlalchemy.exc import OperationalError

from musicdrop.api.exception_handlers import register_exception_handlers
from musicdrop.domain.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConfigurationError,
    DisallowedExtensionError,
    DuplicateEntityException,
    EntityNotFoundException,
    InvalidStateException,
    InvalidUrlError,
    PipelineFailedError,
    ProcessFailedError,
    StorageError,
)

RAISERS = {
    "invalid-url": lambda: InvalidUrlError("Invalid youtube URL: unsupported address"),
    "extension": lambda: DisallowedExtensionError("x.exe", "exe", ["mp3"]),
    "unauthenticated": lambda: AuthenticationError("Not authenticated"),
    "forbidden": lambda: AuthorizationError("Admin access required"),
    "missing": lambda: EntityNotFoundException("User", "u1"),
    "duplicate": lambda: DuplicateEntityException("User", "bob"),
    "state": lambda: InvalidStateException("Cannot delete your own account"),
    "process": lambda: ProcessFailedError("ferric", 2, stderr="bad"),
    "storage": lambda: StorageError("Failed to create directory /x"),
    "config": lambda: ConfigurationError("database directory not writable"),
    "locked": lambda: OperationalError("SELECT", {}, Exception("database is locked")),
    "db": lambda: OperationalError("SELECT", {}, Exception("no such table")),
}


class Body(BaseModel):
    url: str


class TestExceptionHandlers:
    """Every error comes back as {"error": ...} with the right status."""

    @pytest.fixture
    def client(self) -> TestClient:
        app = FastAPI()
        register_exception_handlers(app)

        @app.get("/raise/{name}")
        async def raise_named(name: str):
            raise RAISERS[name]()

        @app.get("/pipeline")
        async def pipeline_failed():
            cause = ProcessFailedError("yt-dlp", 1, stderr="Video unavailable")
            raise PipelineFailedError(f"Download failed: {cause.message}", 12, cause)

        @app.get("/http")
        async def http_error():
            raise HTTPException(status_code=503, detail="Pipeline not initialized")

        @app.post("/body")
        async def body(payload: Body):
            return payload

        return TestClient(app)

    @pytest.mark.parametrize(
        ("name", "status_code"),
        [
            ("invalid-url", 400),
            ("extension", 400),
            ("unauthenticated", 401),
            ("forbidden", 403),
            ("missing", 404),
            ("duplicate", 409),
            ("state", 409),
            ("process", 500),
            ("storage", 500),
            ("config", 503),
            ("db", 500),
        ],
    )
    def test_status_mapping(self, client: TestClient, name: str, status_code: int) -> None:
        response = client.get(f"/raise/{name}")
        assert response.status_code == status_code
        assert set(response.json()) == {"error"}
        assert response.json()["error"]

    def test_validation_message_is_passed_through(self, client: TestClient) -> None:
        response = client.get("/raise/extension")
        assert "not allowed" in response.json()["error"]

    def test_pipeline_failure_carries_log_id(self, client: TestClient) -> None:
        response = client.get("/pipeline")
        assert response.status_code == 500
        assert response.json() == {
            "error": "Download failed: yt-dlp exited with status 1: Video unavailable",
            "log_id": 12,
        }

    def test_locked_database_asks_for_retry(self, client: TestClient) -> None:
        response = client.get("/raise/locked")
        assert response.status_code == 503
        assert response.headers["Retry-After"] == "3"

    def test_http_exception_uses_error_key(self, client: TestClient) -> None:
        response = client.get("/http")
        assert response.status_code == 503
        assert response.json() == {"error": "Pipeline not initialized"}

    def test_request_validation(self, client: TestClient) -> None:
        response = client.post(
            "/body", content=b"not json", headers={"content-type": "application/json"}
        )
        assert response.status_code == 422
        payload = response.json()
        assert payload["error"] == "Invalid request"
        assert isinstance(payload["details"], list)

    def test_unknown_route_is_json(self, client: TestClient) -> None:
        response = client.get("/nope")
        assert response.status_code == 404
        assert "error" in response.json()
