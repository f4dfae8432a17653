"""Pydantic request/response models for the HTTP API."""

from musicdrop.api.schemas.accounts import (
    AdminChangePasswordRequest,
    ChangePasswordRequest,
    ChangeUsernameRequest,
    ConfigEntry,
    CreateUserRequest,
    JobLogResponse,
    LoginRequest,
    LoginResponse,
    SystemInfoResponse,
    UpdateLibraryPathRequest,
    UserDirectoriesResponse,
    UserResponse,
)
from musicdrop.api.schemas.acquisition import RemoteDownloadRequest, UploadResponse

__all__ = [
    "AdminChangePasswordRequest",
    "ChangePasswordRequest",
    "ChangeUsernameRequest",
    "ConfigEntry",
    "CreateUserRequest",
    "JobLogResponse",
    "LoginRequest",
    "LoginResponse",
    "RemoteDownloadRequest",
    "SystemInfoResponse",
    "UpdateLibraryPathRequest",
    "UploadResponse",
    "UserDirectoriesResponse",
    "UserResponse",
]
