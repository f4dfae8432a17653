"""Domain entities."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum

from musicdrop.domain.exceptions import InvalidStateException


class JobKind(str, Enum):
    """Where the audio for a job comes from."""

    FILE = "file"
    YOUTUBE = "youtube"
    SPOTIFY = "spotify"

    @property
    def is_remote(self) -> bool:
        """True for kinds that need a fetch tool."""
        return self is not JobKind.FILE


# Hey future me, the job lifecycle is strictly forward-only:
#   pending -> processing -> completed
#   pending -> processing -> failed
#   pending -> failed            (e.g. directory creation blew up before we started)
# Nothing ever goes back to pending and terminal states are final. The rules live on
# Job itself so the tracker and the tests can't disagree about them.
class JobStatus(str, Enum):
    """Lifecycle state of an acquisition job."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        """Check if the job is finished (no further transitions)."""
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


_ALLOWED_TRANSITIONS: dict[JobStatus, frozenset[JobStatus]] = {
    JobStatus.PENDING: frozenset({JobStatus.PROCESSING, JobStatus.FAILED}),
    JobStatus.PROCESSING: frozenset({JobStatus.COMPLETED, JobStatus.FAILED}),
    JobStatus.COMPLETED: frozenset(),
    JobStatus.FAILED: frozenset(),
}


@dataclass
class Job:
    """One acquisition request (upload or remote fetch), persisted in upload_logs."""

    id: int
    user_id: str
    kind: JobKind
    source: str
    status: JobStatus = JobStatus.PENDING
    file_count: int | None = None
    error_message: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    completed_at: datetime | None = None

    def can_transition_to(self, target: JobStatus) -> bool:
        """Check whether moving to `target` is a legal transition."""
        return target in _ALLOWED_TRANSITIONS[self.status]

    def _transition(self, target: JobStatus) -> None:
        if not self.can_transition_to(target):
            raise InvalidStateException(
                f"Job {self.id} cannot move from {self.status.value} to {target.value}"
            )
        self.status = target

    def start(self) -> None:
        """Mark job as processing."""
        self._transition(JobStatus.PROCESSING)

    def complete(self, file_count: int) -> None:
        """Mark job as completed with the final file count."""
        if file_count < 0:
            raise ValueError("file_count cannot be negative")
        self._transition(JobStatus.COMPLETED)
        self.file_count = file_count
        self.error_message = None
        self.completed_at = datetime.now(UTC)

    def fail(self, error_message: str, file_count: int | None = None) -> None:
        """Mark job as failed.

        Args:
            error_message: Human-readable reason, stored on the job row
            file_count: Partial count if some files were already fetched
        """
        self._transition(JobStatus.FAILED)
        # An empty message would break the "failed => error_message set" rule
        self.error_message = error_message or "unknown error"
        if file_count is not None:
            self.file_count = file_count
        self.completed_at = datetime.now(UTC)


@dataclass
class User:
    """Library user."""

    id: str
    username: str
    password_hash: str
    is_admin: bool = False
    library_path: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass(frozen=True)
class AuthUser:
    """The caller of a request, as established by the credential service."""

    id: str
    username: str
    is_admin: bool = False


@dataclass
class AuthSession:
    """Opaque login session token."""

    token: str
    user_id: str
    expires_at: datetime
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def is_expired(self, now: datetime | None = None) -> bool:
        """Check if the session is past its expiry."""
        current = now or datetime.now(UTC)
        expires_at = self.expires_at
        # SQLite hands back naive datetimes, we always store UTC
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=UTC)
        return current >= expires_at


__all__ = [
    "AuthSession",
    "AuthUser",
    "Job",
    "JobKind",
    "JobStatus",
    "User",
]
