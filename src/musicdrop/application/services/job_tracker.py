"""Persisting job state transitions.

Hey future me - the two write paths behave differently:
- create / mark_processing / mark_completed are on the critical path. If the write fails
  we raise StorageError and the request aborts.
- mark_failed is best-effort. We're already handling a failure; if recording it ALSO
  fails, we log loudly and carry on so the caller still gets the original error.

The Job entity decides whether a transition is legal, this class only writes it.
"""

import logging
from dataclasses import replace

from sqlalchemy.exc import SQLAlchemyError

from musicdrop.domain.entities import Job, JobKind, JobStatus
from musicdrop.domain.exceptions import (
    EntityNotFoundException,
    InvalidStateException,
    StorageError,
)
from musicdrop.domain.ports import UnitOfWorkFactory

logger = logging.getLogger(__name__)

# Storage problems as seen through the repositories
_STORAGE_ERRORS = (SQLAlchemyError, OSError, EntityNotFoundException)


class JobTracker:
    """Writes job rows through short transactions."""

    def __init__(self, uow_factory: UnitOfWorkFactory) -> None:
        self._uow_factory = uow_factory

    async def create(self, user_id: str, kind: JobKind, source: str) -> Job:
        """Insert a pending job."""
        try:
            async with self._uow_factory() as store:
                job = await store.job_logs.create(user_id, kind, source)
        except _STORAGE_ERRORS as e:
            raise StorageError(f"Failed to create job record: {e}") from e
        logger.info(
            "Job %d created (%s) for user %s",
            job.id,
            kind.value,
            user_id,
            extra={"job_id": job.id, "kind": kind.value, "user_id": user_id},
        )
        return job

    async def _write(self, job: Job) -> None:
        async with self._uow_factory() as store:
            await store.job_logs.update_status(
                job.id,
                job.status,
                file_count=job.file_count,
                error_message=job.error_message,
            )

    async def _write_or_restore(self, job: Job, snapshot: Job, action: str) -> None:
        try:
            await self._write(job)
        except _STORAGE_ERRORS as e:
            # Keep the in-memory job in sync with the row so mark_failed still applies
            job.status = snapshot.status
            job.file_count = snapshot.file_count
            job.error_message = snapshot.error_message
            job.completed_at = snapshot.completed_at
            raise StorageError(f"Failed to {action} job {job.id}: {e}") from e

    async def mark_processing(self, job: Job) -> None:
        """pending -> processing."""
        snapshot = replace(job)
        job.start()
        await self._write_or_restore(job, snapshot, "start")

    async def mark_completed(self, job: Job, file_count: int) -> None:
        """processing -> completed."""
        snapshot = replace(job)
        job.complete(file_count)
        await self._write_or_restore(job, snapshot, "complete")
        logger.info(
            "Job %d completed with %d file(s)",
            job.id,
            file_count,
            extra={"job_id": job.id, "file_count": file_count},
        )

    async def mark_failed(
        self, job: Job, message: str, file_count: int | None = None
    ) -> None:
        """pending|processing -> failed. Never raises."""
        if job.status is JobStatus.FAILED:
            return
        try:
            job.fail(message, file_count)
        except InvalidStateException:
            logger.error("Job %d already %s, not marking failed", job.id, job.status.value)
            return

        logger.info(
            "Job %d failed: %s",
            job.id,
            job.error_message,
            extra={"job_id": job.id, "error": job.error_message},
        )
        try:
            await self._write(job)
        except Exception:
            # Whatever breaks here must not replace the error the caller is about to raise
            logger.error("Could not record failure of job %d", job.id, exc_info=True)
