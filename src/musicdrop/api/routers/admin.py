"""Admin endpoints: users, runtime config, upload log and system info."""

import logging
from typing import Any

from fastapi import APIRouter, Depends, Query, status

from musicdrop import __version__
from musicdrop.api.dependencies import (
    get_admin_user,
    get_app_settings,
    get_app_settings_service,
    get_current_user,
    get_effective_settings,
    get_uow,
    get_user_service,
)
from musicdrop.api.schemas import (
    AdminChangePasswordRequest,
    ConfigEntry,
    CreateUserRequest,
    JobLogResponse,
    SystemInfoResponse,
    UpdateLibraryPathRequest,
    UserResponse,
)
from musicdrop.application.services.app_settings_service import (
    FERRIC_ENABLED,
    SPOTIFY_ENABLED,
    YOUTUBE_ENABLED,
    AppSettingsService,
    EffectiveSettings,
)
from musicdrop.application.services.user_service import UserService
from musicdrop.config import Settings
from musicdrop.domain.entities import AuthUser
from musicdrop.domain.exceptions import EntityNotFoundException
from musicdrop.infrastructure.persistence import SqlAlchemyUnitOfWork

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"])


# =============================================================================
# USERS
# =============================================================================


@router.get("/users", response_model=list[UserResponse])
async def list_users(
    _admin: AuthUser = Depends(get_admin_user),
    user_service: UserService = Depends(get_user_service),
) -> list[UserResponse]:
    """All users ordered by username."""
    return [UserResponse.model_validate(u) for u in await user_service.list_users()]


@router.post("/users", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    body: CreateUserRequest,
    _admin: AuthUser = Depends(get_admin_user),
    user_service: UserService = Depends(get_user_service),
) -> UserResponse:
    """Create a user (409 if the username is taken)."""
    user = await user_service.create_user(
        body.username,
        body.password,
        is_admin=body.is_admin,
        library_path=body.library_path,
    )
    return UserResponse.model_validate(user)


@router.delete("/users/{user_id}")
async def delete_user(
    user_id: str,
    admin: AuthUser = Depends(get_admin_user),
    user_service: UserService = Depends(get_user_service),
) -> dict[str, str]:
    """Delete a user and, by cascade, their sessions and upload log."""
    await user_service.delete_user(admin, user_id)
    return {"message": "User deleted successfully"}


@router.post("/users/{user_id}/password")
async def change_user_password(
    user_id: str,
    body: AdminChangePasswordRequest,
    _admin: AuthUser = Depends(get_admin_user),
    user_service: UserService = Depends(get_user_service),
) -> dict[str, str]:
    """Reset another user's password. Their open sessions are revoked."""
    await user_service.set_password(user_id, body.new_password)
    return {"message": "Password changed successfully"}


@router.put("/users/{user_id}/library-path", response_model=UserResponse)
async def update_user_library_path(
    user_id: str,
    body: UpdateLibraryPathRequest,
    _admin: AuthUser = Depends(get_admin_user),
    user_service: UserService = Depends(get_user_service),
) -> UserResponse:
    """Point a user at their own library directory."""
    user = await user_service.set_library_path(user_id, body.library_path)
    return UserResponse.model_validate(user)


# =============================================================================
# RUNTIME CONFIG
# =============================================================================


@router.get("/config")
async def list_config(
    _admin: AuthUser = Depends(get_admin_user),
    app_settings: AppSettingsService = Depends(get_app_settings_service),
) -> list[ConfigEntry]:
    """Every stored key/value pair."""
    stored = await app_settings.list_all()
    return [ConfigEntry(key=key, value=value) for key, value in stored.items()]


@router.post("/config")
async def update_config(
    body: ConfigEntry,
    _admin: AuthUser = Depends(get_admin_user),
    app_settings: AppSettingsService = Depends(get_app_settings_service),
) -> dict[str, str]:
    """Insert or replace a runtime value. Takes effect on the next job."""
    await app_settings.set(body.key, body.value)
    return {"message": "Config updated successfully", "key": body.key, "value": body.value}


@router.get("/config/{key}", response_model=ConfigEntry)
async def get_config(
    key: str,
    _admin: AuthUser = Depends(get_admin_user),
    app_settings: AppSettingsService = Depends(get_app_settings_service),
) -> ConfigEntry:
    """One stored value (404 if unset)."""
    value = await app_settings.get_string(key)
    if value is None:
        raise EntityNotFoundException("Config", key)
    return ConfigEntry(key=key, value=value)


# =============================================================================
# UPLOAD LOG / SYSTEM
# =============================================================================


# Hey future me - despite the /admin prefix this one is open to every logged-in user.
# Admins see all jobs (optionally one user's), everyone else only ever sees their own.
@router.get("/logs")
async def get_upload_logs(
    user_id: str | None = Query(None, description="Only this user's jobs (admin only)"),
    limit: int = Query(100, ge=1, le=1000),
    user: AuthUser = Depends(get_current_user),
    uow: SqlAlchemyUnitOfWork = Depends(get_uow),
) -> dict[str, Any]:
    """Recent jobs, newest first."""
    owner = user_id if user.is_admin else user.id
    jobs = await uow.job_logs.list_recent(user_id=owner, limit=limit)
    return {"logs": [JobLogResponse.from_job(job).model_dump(mode="json") for job in jobs]}


@router.get("/system", response_model=SystemInfoResponse)
async def get_system_info(
    _admin: AuthUser = Depends(get_admin_user),
    effective: EffectiveSettings = Depends(get_effective_settings),
    settings: Settings = Depends(get_app_settings),
) -> SystemInfoResponse:
    """Feature flags as the next job would see them (runtime store over config)."""
    return SystemInfoResponse(
        ferric_enabled=await effective.get_bool(FERRIC_ENABLED, settings.paths.ferric_enabled),
        youtube_enabled=await effective.get_bool(YOUTUBE_ENABLED, settings.youtube.enabled),
        spotify_enabled=await effective.get_bool(SPOTIFY_ENABLED, settings.spotify.enabled),
        version=__version__,
    )
