"""Dependency injection for API endpoints."""

import logging
from collections.abc import AsyncGenerator
from typing import cast

from fastapi import Cookie, Depends, Header, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from musicdrop.application.services.acquisition_pipeline import AcquisitionPipeline
from musicdrop.application.services.app_settings_service import (
    AppSettingsService,
    EffectiveSettings,
)
from musicdrop.application.services.auth_service import (
    AuthService,
    parse_bearer_token,
    require_admin,
)
from musicdrop.application.services.progress_broadcaster import ProgressBroadcaster
from musicdrop.application.services.user_service import UserService
from musicdrop.config import Settings
from musicdrop.domain.entities import AuthUser
from musicdrop.domain.ports import UnitOfWorkFactory
from musicdrop.infrastructure.persistence import Database, SqlAlchemyUnitOfWork

logger = logging.getLogger(__name__)


def _app_state(request: Request, name: str, label: str) -> object:
    # Missing state means startup didn't finish. 503 = "not ready yet"
    value = getattr(request.app.state, name, None)
    if value is None:
        raise HTTPException(status_code=503, detail=f"{label} not initialized")
    return value


def get_app_settings(request: Request) -> Settings:
    """Settings the app was started with."""
    return cast(Settings, _app_state(request, "settings", "Settings"))


# Hey future me, this uses session_scope() so the request's session commits on success and
# rolls back on any exception. Use it for the short CRUD endpoints only; the acquisition
# pipeline opens its own short transactions through the unit-of-work factory instead.
async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Get database session from app state."""
    db = cast(Database, _app_state(request, "db", "Database"))
    async with db.session_scope() as session:
        yield session


def get_uow(session: AsyncSession = Depends(get_db_session)) -> SqlAlchemyUnitOfWork:
    """All repositories bound to the request's session."""
    return SqlAlchemyUnitOfWork(session)


def get_uow_factory(request: Request) -> UnitOfWorkFactory:
    """Factory for short, self-committing transactions."""
    return cast(UnitOfWorkFactory, _app_state(request, "uow_factory", "Database"))


# Hey future me, tokens come from EITHER the Authorization header OR the session_id cookie.
# Header first (explicit beats implicit). A blank "Authorization: " header falls back to the
# cookie instead of being treated as an empty token.
async def get_session_token(
    authorization: str | None = Header(None),
    session_id_cookie: str | None = Cookie(None, alias="session_id"),
) -> str | None:
    """Extract the login token from the Authorization header or cookie."""
    if authorization and authorization.strip():
        return parse_bearer_token(authorization)
    return session_id_cookie


def get_auth_service(
    uow: SqlAlchemyUnitOfWork = Depends(get_uow),
    settings: Settings = Depends(get_app_settings),
) -> AuthService:
    """AuthService over the request's session."""
    return AuthService(
        uow.users,
        uow.auth_sessions,
        session_timeout_hours=settings.security.session_timeout_hours,
    )


# Hey future me - authentication runs in its OWN short transaction, not the request session.
# Upload and download requests run for minutes and the SSE stream for as long as the
# browser listens; none of them should pin a pooled connection just to know who called.
async def get_current_user(
    token: str | None = Depends(get_session_token),
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory),
    settings: Settings = Depends(get_app_settings),
) -> AuthUser:
    """The authenticated caller, or 401 via AuthenticationError."""
    async with uow_factory() as store:
        auth_service = AuthService(
            store.users,
            store.auth_sessions,
            session_timeout_hours=settings.security.session_timeout_hours,
        )
        return await auth_service.authenticate(token)


async def get_admin_user(user: AuthUser = Depends(get_current_user)) -> AuthUser:
    """The authenticated caller if they are an admin, else 403."""
    return require_admin(user)


def get_user_service(uow: SqlAlchemyUnitOfWork = Depends(get_uow)) -> UserService:
    """UserService over the request's session."""
    return UserService(uow.users, uow.auth_sessions)


def get_app_settings_service(
    uow: SqlAlchemyUnitOfWork = Depends(get_uow),
) -> AppSettingsService:
    """Runtime key/value settings over the request's session."""
    return AppSettingsService(uow.config)


def get_effective_settings(
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory),
) -> EffectiveSettings:
    """Two-tier (store over static config) flag lookup."""
    return EffectiveSettings(uow_factory)


def get_pipeline(request: Request) -> AcquisitionPipeline:
    """The acquisition pipeline singleton."""
    return cast(AcquisitionPipeline, _app_state(request, "pipeline", "Pipeline"))


def get_broadcaster(request: Request) -> ProgressBroadcaster:
    """The progress broadcaster singleton."""
    return cast(ProgressBroadcaster, _app_state(request, "broadcaster", "Progress broadcaster"))
