"""Login, logout and self-service account endpoints."""

import asyncio
import logging
from typing import Any

from fastapi import APIRouter, Depends, Response

from musicdrop.api.dependencies import (
    get_app_settings,
    get_auth_service,
    get_current_user,
    get_session_token,
    get_user_service,
)
from musicdrop.api.schemas import (
    ChangePasswordRequest,
    ChangeUsernameRequest,
    LoginRequest,
    LoginResponse,
    UserDirectoriesResponse,
    UserResponse,
)
from musicdrop.application.services.auth_service import AuthService
from musicdrop.application.services.user_service import UserService
from musicdrop.config import Settings
from musicdrop.domain.entities import AuthUser
from musicdrop.domain.value_objects.user_directories import resolve

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Authentication"])

SESSION_COOKIE = "session_id"


# Hey future me - login hands the token out twice: in the JSON body for API clients
# (send it back as "Authorization: Bearer <token>") and as an httponly cookie for the
# browser. Both are the same opaque auth_sessions row.
@router.post("/login", response_model=LoginResponse)
async def login(
    body: LoginRequest,
    response: Response,
    auth_service: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_app_settings),
) -> LoginResponse:
    """Exchange username/password for a session token."""
    auth_session, user = await auth_service.login(body.username, body.password)
    response.set_cookie(
        key=SESSION_COOKIE,
        value=auth_session.token,
        max_age=settings.security.session_timeout_hours * 3600,
        httponly=True,
        secure=settings.security.cookie_secure,
        samesite="lax",
    )
    return LoginResponse(
        token=auth_session.token,
        username=user.username,
        is_admin=user.is_admin,
        expires_at=auth_session.expires_at,
    )


@router.post("/logout")
async def logout(
    response: Response,
    token: str | None = Depends(get_session_token),
    auth_service: AuthService = Depends(get_auth_service),
) -> dict[str, str]:
    """Forget the caller's session. Always succeeds."""
    if token:
        await auth_service.logout(token)
    response.delete_cookie(SESSION_COOKIE)
    return {"message": "Logged out successfully"}


@router.get("/me", response_model=UserResponse)
async def get_me(
    user: AuthUser = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service),
) -> UserResponse:
    """The calling user."""
    record = await user_service.get_user(user.id)
    return UserResponse.model_validate(record)


@router.get("/me/directories", response_model=UserDirectoriesResponse)
async def get_my_directories(
    user: AuthUser = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service),
    settings: Settings = Depends(get_app_settings),
) -> UserDirectoriesResponse:
    """Where the caller's jobs would put files right now (debugging aid).

    Only resolves, never creates, so the *_exists flags show the real state.
    """
    record = await user_service.get_user(user.id)
    dirs = resolve(settings.paths, record.library_path)
    return UserDirectoriesResponse(
        username=record.username,
        library_path=record.library_path,
        music_dir=str(dirs.music_dir),
        temp_dir=str(dirs.temp_dir),
        music_dir_exists=await asyncio.to_thread(dirs.music_dir.is_dir),
        temp_dir_exists=await asyncio.to_thread(dirs.temp_dir.is_dir),
    )


@router.post("/user/change-password")
async def change_own_password(
    body: ChangePasswordRequest,
    user: AuthUser = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service),
) -> dict[str, str]:
    """Change the caller's password (the current one is required)."""
    await auth_service.change_password(user, body.old_password, body.new_password)
    return {"message": "Password changed successfully"}


@router.post("/user/change-username")
async def change_own_username(
    body: ChangeUsernameRequest,
    user: AuthUser = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service),
) -> dict[str, Any]:
    """Rename the caller."""
    new_username = await user_service.change_username(user, body.new_username)
    logger.info("User %s renamed to %s", user.username, new_username)
    return {"message": "Username changed successfully", "new_username": new_username}
