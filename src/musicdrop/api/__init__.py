"""HTTP API for musicdrop.

- routers/: endpoints (acquisition, progress, auth, admin, health)
- schemas/: Pydantic request/response models
- dependencies.py: dependency injection (settings, sessions, services, current user)
- exception_handlers.py: domain exception -> HTTP status mapping
"""

from musicdrop.api.exception_handlers import register_exception_handlers
from musicdrop.api.routers import api_router

__all__ = ["api_router", "register_exception_handlers"]
