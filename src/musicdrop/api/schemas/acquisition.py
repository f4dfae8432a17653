"""API schemas for uploads and remote downloads."""

from pydantic import BaseModel, Field


class RemoteDownloadRequest(BaseModel):
    """Request body for POST /api/youtube and POST /api/spotify."""

    url: str = Field(..., description="YouTube or Spotify URL to fetch")
    session_id: str | None = Field(
        default=None,
        max_length=128,
        description="Progress session to report into (generated when omitted)",
    )


class UploadResponse(BaseModel):
    """Result of a finished acquisition job."""

    success: bool
    message: str
    log_id: int = Field(..., description="Id of the job row in the upload log")
    session_id: str | None = None
    file_count: int = 0
