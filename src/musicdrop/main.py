"""FastAPI application factory."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from musicdrop import __version__
from musicdrop.api import api_router, register_exception_handlers
from musicdrop.api.routers import health
from musicdrop.config import Settings, get_settings
from musicdrop.infrastructure.lifecycle import lifespan
from musicdrop.infrastructure.observability import RequestLoggingMiddleware


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Pin the settings (tests). Defaults to get_settings().

    Returns:
        Configured application; startup work happens in the lifespan
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="musicdrop",
        description="Upload audio or fetch it from YouTube/Spotify into a tagged library",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.api.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(api_router, prefix="/api")

    return app


app = create_app()
