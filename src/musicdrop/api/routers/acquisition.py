"""Acquisition endpoints: direct uploads and YouTube / Spotify downloads.

Hey future me - these handlers are thin on purpose. All the rules (validation order,
job rows, progress, temp cleanup) live in AcquisitionPipeline. The request only waits
for the job to finish; live progress goes out through /api/progress/{session_id}.
"""

import logging

from fastapi import APIRouter, Depends, Request
from starlette.datastructures import UploadFile

from musicdrop.api.dependencies import get_current_user, get_pipeline
from musicdrop.api.schemas import RemoteDownloadRequest, UploadResponse
from musicdrop.application.services.acquisition_pipeline import (
    AcquisitionPipeline,
    AcquisitionResult,
)
from musicdrop.domain.entities import AuthUser, JobKind
from musicdrop.domain.exceptions import ValidationException

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Acquisition"])

MAX_SESSION_ID_LENGTH = 128


def _to_response(result: AcquisitionResult) -> UploadResponse:
    return UploadResponse(
        success=result.success,
        message=result.message,
        log_id=result.log_id,
        session_id=result.session_id,
        file_count=result.file_count,
    )


def _clean_session_id(raw: object) -> str | None:
    if not isinstance(raw, str) or not raw.strip():
        return None
    session_id = raw.strip()
    if len(session_id) > MAX_SESSION_ID_LENGTH:
        raise ValidationException("session_id is too long")
    return session_id


# Hey future me - we read the raw form instead of declaring `files: list[UploadFile]`. Every
# file part counts no matter what the browser named the field ("files", "files[]", "file"),
# and an empty form must still reach the pipeline so it can record the failed job.
@router.post("/upload", response_model=UploadResponse)
async def upload_files(
    request: Request,
    user: AuthUser = Depends(get_current_user),
    pipeline: AcquisitionPipeline = Depends(get_pipeline),
) -> UploadResponse:
    """Upload audio files straight into the caller's library.

    Multipart body: any number of file parts plus an optional `session_id` field
    for live progress.
    """
    async with request.form() as form:
        files = [value for _, value in form.multi_items() if isinstance(value, UploadFile)]
        session_id = _clean_session_id(form.get("session_id"))
        logger.info(
            "Upload request from %s with %d file part(s)",
            user.username,
            len(files),
            extra={"user_id": user.id},
        )
        result = await pipeline.acquire_upload(user, files, session_id=session_id)
    return _to_response(result)


@router.post("/youtube", response_model=UploadResponse)
async def download_youtube(
    body: RemoteDownloadRequest,
    user: AuthUser = Depends(get_current_user),
    pipeline: AcquisitionPipeline = Depends(get_pipeline),
) -> UploadResponse:
    """Download audio from a YouTube URL with yt-dlp."""
    logger.info("YouTube request from %s", user.username, extra={"user_id": user.id})
    result = await pipeline.acquire_remote(
        user, JobKind.YOUTUBE, body.url, session_id=_clean_session_id(body.session_id)
    )
    return _to_response(result)


@router.post("/spotify", response_model=UploadResponse)
async def download_spotify(
    body: RemoteDownloadRequest,
    user: AuthUser = Depends(get_current_user),
    pipeline: AcquisitionPipeline = Depends(get_pipeline),
) -> UploadResponse:
    """Download a Spotify track, album or playlist with spotdl."""
    logger.info("Spotify request from %s", user.username, extra={"user_id": user.id})
    result = await pipeline.acquire_remote(
        user, JobKind.SPOTIFY, body.url, session_id=_clean_session_id(body.session_id)
    )
    return _to_response(result)
