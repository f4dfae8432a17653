"""The acquisition pipeline: upload or remote URL in, organized library files out.

Hey future me - this is the heart of the app. Both job shapes share one skeleton:

    validate -> resolve dirs -> create job -> (fetch) -> organize -> finalize -> teardown

Rules that matter:
- Rejected input (bad URL, disabled source) never creates a job row.
- Once a job row exists, every failure is written into it BEFORE we raise, and
  recording the failure itself is best-effort (JobTracker.mark_failed never raises).
- A cancelled job (client gone, shutdown) is marked failed with "Cancelled".
- The temp dir is drained of plain files after EVERY job, whatever happened.
- No lock or DB session is held while an external tool runs. Each job-row write
  opens its own short transaction through the unit-of-work factory.
- Two jobs of the same user share the same temp dir. They are NOT serialized; the
  drain of one may remove files of the other. Known and accepted for now.
"""

import asyncio
import logging
import os
import shutil
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import aiofiles
import aiofiles.os

from musicdrop.application.services.app_settings_service import (
    FERRIC_ENABLED,
    SPOTIFY_ENABLED,
    YOUTUBE_ENABLED,
    EffectiveSettings,
)
from musicdrop.application.services.directory_service import get_user_directories
from musicdrop.application.services.job_tracker import JobTracker
from musicdrop.application.services.progress_broadcaster import ProgressBroadcaster
from musicdrop.config import Settings
from musicdrop.domain.entities import AuthUser, Job, JobKind, JobStatus
from musicdrop.domain.exceptions import (
    AuthorizationError,
    DomainException,
    EntityNotFoundException,
    InvalidFilenameError,
    InvalidUrlError,
    NoFilesUploadedError,
    PipelineFailedError,
    ProcessError,
    StorageError,
    ValidationException,
)
from musicdrop.domain.ports import UnitOfWorkFactory
from musicdrop.domain.value_objects.input_validation import (
    check_upload_size,
    validate_remote_url,
    validate_upload_filename,
)
from musicdrop.domain.value_objects.user_directories import UserDirectories
from musicdrop.infrastructure.integrations.fetch_commands import (
    build_organizer_args,
    build_spotdl_args,
    build_ytdlp_args,
)
from musicdrop.infrastructure.integrations.process_runner import (
    ProcessRunner,
    count_files,
)

logger = logging.getLogger(__name__)

UPLOAD_SOURCE = "multipart upload"
UPLOAD_CHUNK_SIZE = 1024 * 1024
CANCELLED_MESSAGE = "Cancelled"

_SOURCE_LABELS: dict[JobKind, str] = {
    JobKind.YOUTUBE: "YouTube",
    JobKind.SPOTIFY: "Spotify",
}


class UploadedFile(Protocol):
    """What the pipeline needs from a multipart part (starlette's UploadFile fits)."""

    filename: str | None
    size: int | None

    async def read(self, size: int = -1) -> bytes: ...


@dataclass(frozen=True)
class AcquisitionResult:
    """Outcome of a successful job."""

    success: bool
    message: str
    log_id: int
    session_id: str | None
    file_count: int


# =============================================================================
# FILESYSTEM HELPERS (run in worker threads)
# =============================================================================


def _plain_files(directory: Path) -> list[Path]:
    try:
        with os.scandir(directory) as entries:
            return [
                Path(entry.path)
                for entry in entries
                if entry.is_file(follow_symlinks=False)
            ]
    except FileNotFoundError:
        return []


def _copy_then_delete(temp_dir: Path, music_dir: Path) -> int:
    # copy + unlink instead of rename: temp and music may live on different volumes
    moved = 0
    for source in _plain_files(temp_dir):
        shutil.copy2(source, music_dir / source.name)
        source.unlink()
        moved += 1
    return moved


def _drain(directory: Path) -> int:
    removed = 0
    for path in _plain_files(directory):
        try:
            path.unlink()
            removed += 1
        except FileNotFoundError:
            continue
    return removed


class AcquisitionPipeline:
    """Runs upload and remote-fetch jobs end to end."""

    def __init__(
        self,
        settings: Settings,
        uow_factory: UnitOfWorkFactory,
        runner: ProcessRunner,
        broadcaster: ProgressBroadcaster,
        tracker: JobTracker | None = None,
        effective: EffectiveSettings | None = None,
    ) -> None:
        self._settings = settings
        self._uow_factory = uow_factory
        self._runner = runner
        self._broadcaster = broadcaster
        self._tracker = tracker or JobTracker(uow_factory)
        self._effective = effective or EffectiveSettings(uow_factory)

    # =========================================================================
    # SHARED STEPS
    # =========================================================================

    async def _user_directories(self, user: AuthUser) -> UserDirectories:
        async with self._uow_factory() as store:
            record = await store.users.get_by_id(user.id)
        if record is None:
            raise EntityNotFoundException("User", user.id)
        return await get_user_directories(self._settings.paths, record.library_path)

    async def _source_enabled(self, kind: JobKind) -> bool:
        if kind is JobKind.YOUTUBE:
            return await self._effective.get_bool(
                YOUTUBE_ENABLED, self._settings.youtube.enabled
            )
        if kind is JobKind.SPOTIFY:
            return await self._effective.get_bool(
                SPOTIFY_ENABLED, self._settings.spotify.enabled
            )
        return True

    def _fetch_command(self, kind: JobKind, temp_dir: Path, url: str) -> tuple[str, list[str]]:
        if kind is JobKind.SPOTIFY:
            spotify = self._settings.spotify
            return spotify.spotdl_path, build_spotdl_args(spotify, temp_dir, url)
        youtube = self._settings.youtube
        return youtube.ytdlp_path, build_ytdlp_args(youtube, temp_dir, url)

    async def _organize(self, dirs: UserDirectories) -> None:
        """Hand temp_dir to the organizer, or move files over directly when it's off."""
        ferric_enabled = await self._effective.get_bool(
            FERRIC_ENABLED, self._settings.paths.ferric_enabled
        )
        if ferric_enabled:
            await self._runner.run(
                self._settings.paths.ferric_path,
                build_organizer_args(dirs.temp_dir, dirs.music_dir),
                timeout=self._settings.processes.effective_timeout,
            )
            return

        try:
            moved = await asyncio.to_thread(_copy_then_delete, dirs.temp_dir, dirs.music_dir)
        except OSError as e:
            raise StorageError(f"Failed to move files into {dirs.music_dir}: {e}") from e
        logger.info("Organizer disabled, moved %d file(s) to %s", moved, dirs.music_dir)

    async def _drain_temp(self, temp_dir: Path) -> None:
        try:
            removed = await asyncio.to_thread(_drain, temp_dir)
        except OSError:
            logger.warning("Could not clean temp dir %s", temp_dir, exc_info=True)
            return
        if removed:
            logger.debug("Removed %d leftover file(s) from %s", removed, temp_dir)

    def _finish_progress(self, session_id: str | None, text: str) -> None:
        if session_id is None:
            return
        self._broadcaster.send(session_id, text, final=True)
        self._broadcaster.schedule_unregister(
            session_id, self._settings.progress.teardown_delay_seconds
        )

    async def _fail(
        self,
        job: Job,
        session_id: str | None,
        message: str,
        cause: DomainException,
        file_count: int | None = None,
    ) -> PipelineFailedError:
        await self._tracker.mark_failed(job, message, file_count)
        self._finish_progress(session_id, f"✗ {message}")
        return PipelineFailedError(message, log_id=job.id, cause=cause)

    async def _organize_and_complete(
        self,
        job: Job,
        dirs: UserDirectories,
        session_id: str | None,
        file_count: int,
    ) -> None:
        try:
            await self._organize(dirs)
        except (ProcessError, StorageError) as e:
            raise await self._fail(
                job, session_id, f"Processing failed: {e.message}", e, file_count
            ) from e

        try:
            await self._tracker.mark_completed(job, file_count)
        except StorageError as e:
            raise await self._fail(job, session_id, e.message, e, file_count) from e

    # Hey future me - cancellation (client disconnect, shutdown) skips every except branch
    # above, so without this the row would sit in "processing" forever. The runner has
    # already killed the child process by the time we get here.
    async def _record_cancelled(
        self, job: Job, session_id: str | None, temp_dir: Path
    ) -> None:
        if not job.can_transition_to(JobStatus.FAILED):
            return
        partial = await asyncio.to_thread(count_files, temp_dir)
        logger.warning("Job %d cancelled", job.id, extra={"job_id": job.id})
        await self._tracker.mark_failed(job, CANCELLED_MESSAGE, partial)
        self._finish_progress(session_id, f"✗ {CANCELLED_MESSAGE}")

    # =========================================================================
    # REMOTE JOBS (YouTube / Spotify)
    # =========================================================================

    async def acquire_remote(
        self,
        user: AuthUser,
        kind: JobKind,
        url: str,
        session_id: str | None = None,
    ) -> AcquisitionResult:
        """Fetch `url` with the kind's tool, organize, and record the job.

        Args:
            user: Caller
            kind: JobKind.YOUTUBE or JobKind.SPOTIFY
            url: Untrusted URL from the request
            session_id: Progress session chosen by the client, generated if None

        Returns:
            AcquisitionResult for the completed job

        Raises:
            AuthorizationError: The source is disabled, or session_id belongs to another user
            InvalidUrlError: The URL failed validation (no job row written)
            StorageError: Directories or the job row could not be created
            PipelineFailedError: The job ran and failed; its row says why
        """
        label = _SOURCE_LABELS.get(kind, kind.value)
        if not kind.is_remote:
            raise InvalidUrlError(f"'{kind.value}' is not a remote source")
        if not await self._source_enabled(kind):
            raise AuthorizationError(f"{label} downloads are disabled")

        # Validate before resolving, so a rejected URL doesn't even create directories
        clean_url = validate_remote_url(kind, url)
        dirs = await self._user_directories(user)

        session_id = session_id or str(uuid.uuid4())
        await self._broadcaster.register(session_id, owner=user.id)
        self._broadcaster.send(session_id, f"Starting {label} download...")

        try:
            job = await self._tracker.create(user.id, kind, clean_url)
            await self._tracker.mark_processing(job)
        except StorageError:
            self._finish_progress(session_id, "✗ Could not start job")
            raise

        # Job exists from here on, any exit goes through mark_failed or mark_completed
        try:
            return await self._run_remote(job, kind, label, clean_url, dirs, session_id)
        except asyncio.CancelledError:
            await self._record_cancelled(job, session_id, dirs.temp_dir)
            raise
        finally:
            await self._drain_temp(dirs.temp_dir)

    async def _run_remote(
        self,
        job: Job,
        kind: JobKind,
        label: str,
        url: str,
        dirs: UserDirectories,
        session_id: str,
    ) -> AcquisitionResult:
        self._broadcaster.send(session_id, f"Downloading from {label}...")
        executable, args = self._fetch_command(kind, dirs.temp_dir, url)

        try:
            await self._runner.run(
                executable, args, timeout=self._settings.processes.effective_timeout
            )
        except ProcessError as e:
            partial = await asyncio.to_thread(count_files, dirs.temp_dir)
            raise await self._fail(
                job, session_id, f"Download failed: {e.message}", e, partial
            ) from e

        file_count = await asyncio.to_thread(count_files, dirs.temp_dir)
        self._broadcaster.send(
            session_id, f"Downloaded {file_count} file(s), now processing..."
        )

        await self._organize_and_complete(job, dirs, session_id, file_count)

        self._finish_progress(session_id, "✓ Complete!")
        return AcquisitionResult(
            success=True,
            message=f"Successfully downloaded and processed {file_count} file(s)",
            log_id=job.id,
            session_id=session_id,
            file_count=file_count,
        )

    # =========================================================================
    # DIRECT UPLOADS
    # =========================================================================

    async def acquire_upload(
        self,
        user: AuthUser,
        files: list[UploadedFile],
        session_id: str | None = None,
    ) -> AcquisitionResult:
        """Store uploaded files, organize them, and record the job.

        Unlike remote jobs, the job row is created before the files are looked at,
        so an invalid file leaves a failed job behind with the reason.

        Raises:
            ValidationException: A file was rejected (job marked failed)
            StorageError: Directories or the job row could not be created
            PipelineFailedError: Writing or organizing failed (job marked failed)
        """
        dirs = await self._user_directories(user)

        if session_id:
            await self._broadcaster.register(session_id, owner=user.id)
            self._broadcaster.send(session_id, "Receiving upload...")

        try:
            job = await self._tracker.create(user.id, JobKind.FILE, UPLOAD_SOURCE)
            await self._tracker.mark_processing(job)
        except StorageError:
            self._finish_progress(session_id, "✗ Could not start job")
            raise

        try:
            return await self._run_upload(job, files, dirs, session_id)
        except asyncio.CancelledError:
            await self._record_cancelled(job, session_id, dirs.temp_dir)
            raise
        finally:
            await self._drain_temp(dirs.temp_dir)

    async def _run_upload(
        self,
        job: Job,
        files: list[UploadedFile],
        dirs: UserDirectories,
        session_id: str | None,
    ) -> AcquisitionResult:
        upload = self._settings.upload
        stored = 0
        accepted: set[str] = set()

        for part in files:
            # An empty <input type=file> still sends a part, just without a filename
            if not part.filename:
                continue
            try:
                name = validate_upload_filename(part.filename, upload.allowed_extensions)
                # "a/song.mp3" and "b/song.mp3" both land on temp_dir/song.mp3
                if name in accepted:
                    raise InvalidFilenameError(f"Duplicate filename in upload: {name}")
                accepted.add(name)
                if part.size is not None:
                    check_upload_size(part.size, upload.max_file_size_bytes, name)
                await self._store_upload(part, dirs.temp_dir / name, upload.max_file_size_bytes)
            except ValidationException as e:
                # Validation keeps its own status code, only the job row records it
                await self._tracker.mark_failed(job, e.message, stored)
                self._finish_progress(session_id, f"✗ {e.message}")
                raise
            except StorageError as e:
                raise await self._fail(job, session_id, e.message, e, stored) from e
            stored += 1
            if session_id:
                self._broadcaster.send(session_id, f"Received {name}")

        if stored == 0:
            error = NoFilesUploadedError()
            await self._tracker.mark_failed(job, error.message, 0)
            self._finish_progress(session_id, f"✗ {error.message}")
            raise error

        if session_id:
            self._broadcaster.send(session_id, f"Processing {stored} file(s)...")

        await self._organize_and_complete(job, dirs, session_id, stored)

        self._finish_progress(session_id, "✓ Complete!")
        return AcquisitionResult(
            success=True,
            message=f"Successfully uploaded and processed {stored} file(s)",
            log_id=job.id,
            session_id=session_id,
            file_count=stored,
        )

    async def _store_upload(self, part: UploadedFile, target: Path, max_bytes: int) -> None:
        """Stream one part to disk, enforcing the size limit while writing."""
        written = 0
        try:
            async with aiofiles.open(target, "wb") as out_file:
                while chunk := await part.read(UPLOAD_CHUNK_SIZE):
                    written += len(chunk)
                    check_upload_size(written, max_bytes, target.name)
                    await out_file.write(chunk)
        except (ValidationException, asyncio.CancelledError):
            await self._remove_partial(target)
            raise
        except OSError as e:
            await self._remove_partial(target)
            raise StorageError(f"Failed to write {target.name}: {e}") from e

    @staticmethod
    async def _remove_partial(target: Path) -> None:
        try:
            await aiofiles.os.remove(target)
        except FileNotFoundError:
            pass

