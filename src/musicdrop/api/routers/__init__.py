"""API router initialization."""

# Hey future me, this is the MAIN API router aggregator, mounted at /api in main.py.
# /health is NOT in here, it lives at the root so probes don't need the /api prefix.

from fastapi import APIRouter

from musicdrop.api.routers import acquisition, admin, auth, health, progress

api_router = APIRouter()

api_router.include_router(auth.router)
api_router.include_router(acquisition.router)
api_router.include_router(progress.router)
api_router.include_router(admin.router)

__all__ = [
    "acquisition",
    "admin",
    "api_router",
    "auth",
    "health",
    "progress",
]
