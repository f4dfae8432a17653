"""Health check endpoints for Docker/Kubernetes probes."""

from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from musicdrop import __version__

router = APIRouter(prefix="/health", tags=["Health"])


class HealthStatus(BaseModel):
    """Overall health status response."""

    status: str = Field(description="Overall status: healthy or unhealthy")
    timestamp: str = Field(description="ISO timestamp of health check")
    version: str = Field(default=__version__, description="Application version")
    uptime_seconds: float | None = Field(
        default=None, description="Seconds since app started"
    )
    checks: dict[str, Any] = Field(
        default_factory=dict, description="Individual component checks"
    )


class LivenessStatus(BaseModel):
    """Simple liveness probe response."""

    status: str = Field(description="alive or dead")
    timestamp: str = Field(description="ISO timestamp")


async def _database_ok(request: Request) -> tuple[bool, str | None]:
    db = getattr(request.app.state, "db", None)
    if db is None:
        return False, "Not initialized"
    try:
        async with db.session_scope() as session:
            await session.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        return False, str(e)
    return True, None


@router.get("/live", response_model=LivenessStatus)
async def liveness_probe() -> LivenessStatus:
    """Liveness probe: 200 while the process is running, no dependency checks."""
    return LivenessStatus(status="alive", timestamp=datetime.now(UTC).isoformat())


@router.get("", response_model=HealthStatus)
async def health_check(request: Request) -> JSONResponse:
    """Health check: database reachability plus progress/uptime info.

    Returns 200 when healthy, 503 when the database is unreachable.
    """
    checks: dict[str, Any] = {}

    db_ok, db_error = await _database_ok(request)
    checks["database"] = {"status": "ok" if db_ok else "error", "connected": db_ok}
    if db_error:
        checks["database"]["error"] = db_error

    broadcaster = getattr(request.app.state, "broadcaster", None)
    if broadcaster is not None:
        checks["progress"] = {"status": "ok", "active_sessions": broadcaster.active_sessions}

    uptime = None
    startup_time = getattr(request.app.state, "startup_time", None)
    if startup_time is not None:
        uptime = (datetime.now(UTC) - startup_time).total_seconds()

    response = HealthStatus(
        status="healthy" if db_ok else "unhealthy",
        timestamp=datetime.now(UTC).isoformat(),
        uptime_seconds=uptime,
        checks=checks,
    )
    status_code = status.HTTP_200_OK if db_ok else status.HTTP_503_SERVICE_UNAVAILABLE
    return JSONResponse(content=response.model_dump(), status_code=status_code)
