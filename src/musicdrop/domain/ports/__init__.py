"""Domain ports (interfaces) for dependency inversion."""

from abc import ABC, abstractmethod
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from datetime import datetime

from musicdrop.domain.entities import AuthSession, Job, JobKind, JobStatus, User


class IJobLogRepository(ABC):
    """Repository interface for acquisition jobs (the upload_logs table)."""

    @abstractmethod
    async def create(self, user_id: str, kind: JobKind, source: str) -> Job:
        """Insert a new pending job and return it with its assigned id."""
        pass

    @abstractmethod
    async def update_status(
        self,
        job_id: int,
        status: JobStatus,
        file_count: int | None = None,
        error_message: str | None = None,
    ) -> None:
        """Write a status change.

        Terminal statuses stamp completed_at in the same UPDATE.
        """
        pass

    @abstractmethod
    async def get_by_id(self, job_id: int) -> Job | None:
        """Get a job by id."""
        pass

    @abstractmethod
    async def list_recent(self, user_id: str | None = None, limit: int = 100) -> list[Job]:
        """List jobs newest first, optionally for one user only."""
        pass

    @abstractmethod
    async def count(self) -> int:
        """Count all jobs."""
        pass


class IUserRepository(ABC):
    """Repository interface for User entities."""

    @abstractmethod
    async def add(self, user: User) -> None:
        """Add a new user."""
        pass

    @abstractmethod
    async def get_by_id(self, user_id: str) -> User | None:
        """Get a user by id."""
        pass

    @abstractmethod
    async def get_by_username(self, username: str) -> User | None:
        """Get a user by username."""
        pass

    @abstractmethod
    async def list_all(self) -> list[User]:
        """List all users ordered by username."""
        pass

    @abstractmethod
    async def count(self) -> int:
        """Count users."""
        pass

    @abstractmethod
    async def update_password(self, user_id: str, password_hash: str) -> None:
        """Replace a user's password hash."""
        pass

    @abstractmethod
    async def update_username(self, user_id: str, username: str) -> None:
        """Rename a user."""
        pass

    @abstractmethod
    async def update_library_path(self, user_id: str, library_path: str | None) -> None:
        """Set or clear a user's library override."""
        pass

    @abstractmethod
    async def delete(self, user_id: str) -> None:
        """Delete a user."""
        pass


class IConfigRepository(ABC):
    """Repository interface for the runtime key/value config store."""

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Get the raw value for a key."""
        pass

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Insert or replace a value."""
        pass

    @abstractmethod
    async def list_all(self) -> dict[str, str]:
        """Return every stored key/value pair."""
        pass


class IAuthSessionRepository(ABC):
    """Repository interface for login sessions."""

    @abstractmethod
    async def add(self, auth_session: AuthSession) -> None:
        """Persist a new session."""
        pass

    @abstractmethod
    async def get(self, token: str) -> AuthSession | None:
        """Get a session by token."""
        pass

    @abstractmethod
    async def delete(self, token: str) -> None:
        """Delete a session (logout)."""
        pass

    @abstractmethod
    async def delete_for_user(self, user_id: str) -> int:
        """Delete every session of a user, returns the number removed."""
        pass

    @abstractmethod
    async def delete_expired(self, now: datetime) -> int:
        """Purge expired sessions, returns the number removed."""
        pass


# Hey future me - the pipeline runs external tools for minutes (or an hour). It must NOT
# keep a DB session open across that, so it never gets the request's session. Instead it
# gets a factory that opens a short transaction per write: "async with uow() as store:".
# Every block commits on exit, which is what makes status changes visible immediately.
class IUnitOfWork(ABC):
    """Bundle of repositories sharing one short transaction."""

    users: IUserRepository
    config: IConfigRepository
    job_logs: IJobLogRepository
    auth_sessions: IAuthSessionRepository


UnitOfWorkFactory = Callable[[], AbstractAsyncContextManager[IUnitOfWork]]


__all__ = [
    "IAuthSessionRepository",
    "IConfigRepository",
    "IJobLogRepository",
    "IUnitOfWork",
    "IUserRepository",
    "UnitOfWorkFactory",
]
