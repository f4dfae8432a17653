"""API schemas for login, users and runtime config."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from musicdrop.domain.entities import Job


class LoginRequest(BaseModel):
    """Credentials for POST /api/login."""

    username: str
    password: str


class LoginResponse(BaseModel):
    """Issued session token plus who it belongs to."""

    token: str
    username: str
    is_admin: bool
    expires_at: datetime


class UserResponse(BaseModel):
    """Public view of a user (never includes the password hash)."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    username: str
    is_admin: bool
    library_path: str | None = None
    created_at: datetime
    updated_at: datetime


class CreateUserRequest(BaseModel):
    """Admin request to create a user."""

    username: str
    password: str
    is_admin: bool = False
    library_path: str | None = None


class ChangePasswordRequest(BaseModel):
    """Self-service password change."""

    old_password: str
    new_password: str


class AdminChangePasswordRequest(BaseModel):
    """Admin password reset for another user."""

    new_password: str


class ChangeUsernameRequest(BaseModel):
    """Self-service rename."""

    new_username: str


class UpdateLibraryPathRequest(BaseModel):
    """Admin request to point a user at their own library directory."""

    library_path: str


class UserDirectoriesResponse(BaseModel):
    """Where the caller's files would go right now."""

    username: str
    library_path: str | None
    music_dir: str
    temp_dir: str
    music_dir_exists: bool
    temp_dir_exists: bool


class ConfigEntry(BaseModel):
    """One runtime config key/value pair."""

    key: str = Field(..., min_length=1, max_length=255)
    value: str


class JobLogResponse(BaseModel):
    """One row of the upload log."""

    id: int
    user_id: str
    upload_type: str
    source: str
    status: str
    file_count: int | None = None
    error_message: str | None = None
    created_at: datetime
    completed_at: datetime | None = None

    @classmethod
    def from_job(cls, job: Job) -> "JobLogResponse":
        """Build the wire shape, which keeps the historical upload_type column name."""
        return cls(
            id=job.id,
            user_id=job.user_id,
            upload_type=job.kind.value,
            source=job.source,
            status=job.status.value,
            file_count=job.file_count,
            error_message=job.error_message,
            created_at=job.created_at,
            completed_at=job.completed_at,
        )


class SystemInfoResponse(BaseModel):
    """Effective feature flags (runtime store over static config)."""

    ferric_enabled: bool
    youtube_enabled: bool
    spotify_enabled: bool
    version: str
