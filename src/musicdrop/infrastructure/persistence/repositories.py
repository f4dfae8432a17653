"""Repository implementations for domain entities."""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from musicdrop.domain.entities import AuthSession, Job, JobKind, JobStatus, User
from musicdrop.domain.exceptions import (
    DuplicateEntityException,
    EntityNotFoundException,
    ValidationException,
)
from musicdrop.domain.ports import (
    IAuthSessionRepository,
    IConfigRepository,
    IJobLogRepository,
    IUserRepository,
)

from .models import (
    AuthSessionModel,
    ConfigModel,
    UploadLogModel,
    UserModel,
    ensure_utc_aware,
)

logger = logging.getLogger(__name__)


class JobLogRepository(IJobLogRepository):
    """SQLAlchemy implementation of the job log (upload_logs)."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with session."""
        self.session = session

    def _model_to_entity(self, model: UploadLogModel) -> Job:
        try:
            kind = JobKind(model.upload_type)
            status = JobStatus(model.status)
        except ValueError as e:
            raise ValidationException(
                f"Invalid job row {model.id}: type={model.upload_type!r} status={model.status!r}"
            ) from e

        return Job(
            id=model.id,
            user_id=model.user_id,
            kind=kind,
            source=model.source,
            status=status,
            file_count=model.file_count,
            error_message=model.error_message,
            created_at=ensure_utc_aware(model.created_at),
            completed_at=ensure_utc_aware(model.completed_at)
            if model.completed_at
            else None,
        )

    async def create(self, user_id: str, kind: JobKind, source: str) -> Job:
        """Insert a pending job and flush to get its autoincrement id."""
        model = UploadLogModel(
            user_id=user_id,
            upload_type=kind.value,
            source=source,
            status=JobStatus.PENDING.value,
            created_at=datetime.now(UTC),
        )
        self.session.add(model)
        await self.session.flush()
        return self._model_to_entity(model)

    # Hey future me - status, file_count, error_message and completed_at go out in ONE
    # UPDATE statement. Never split this up, a crash between two writes would leave a
    # "completed" row without completed_at.
    async def update_status(
        self,
        job_id: int,
        status: JobStatus,
        file_count: int | None = None,
        error_message: str | None = None,
    ) -> None:
        """Write a status change, stamping completed_at for terminal statuses."""
        values: dict[str, object] = {"status": status.value}
        if file_count is not None:
            values["file_count"] = file_count
        if status is JobStatus.FAILED:
            values["error_message"] = error_message or "unknown error"
        if status.is_terminal:
            values["completed_at"] = datetime.now(UTC)

        stmt = update(UploadLogModel).where(UploadLogModel.id == job_id).values(**values)
        result = await self.session.execute(stmt)
        if result.rowcount == 0:  # type: ignore[attr-defined]
            raise EntityNotFoundException("Job", job_id)

    async def get_by_id(self, job_id: int) -> Job | None:
        """Get a job by id."""
        model = await self.session.get(UploadLogModel, job_id)
        return self._model_to_entity(model) if model else None

    async def list_recent(self, user_id: str | None = None, limit: int = 100) -> list[Job]:
        """List jobs newest first."""
        stmt = select(UploadLogModel).order_by(UploadLogModel.id.desc()).limit(limit)
        if user_id is not None:
            stmt = stmt.where(UploadLogModel.user_id == user_id)
        result = await self.session.execute(stmt)
        return [self._model_to_entity(m) for m in result.scalars().all()]

    async def count(self) -> int:
        """Count all jobs."""
        result = await self.session.execute(select(func.count(UploadLogModel.id)))
        return int(result.scalar_one())


class UserRepository(IUserRepository):
    """SQLAlchemy implementation of User repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with session."""
        self.session = session

    @staticmethod
    def _model_to_entity(model: UserModel) -> User:
        return User(
            id=model.id,
            username=model.username,
            password_hash=model.password_hash,
            is_admin=model.is_admin,
            library_path=model.library_path,
            created_at=ensure_utc_aware(model.created_at),
            updated_at=ensure_utc_aware(model.updated_at),
        )

    async def add(self, user: User) -> None:
        """Add a new user, raising DuplicateEntityException on a taken username."""
        if await self.get_by_username(user.username) is not None:
            raise DuplicateEntityException("User", user.username)

        self.session.add(
            UserModel(
                id=user.id,
                username=user.username,
                password_hash=user.password_hash,
                is_admin=user.is_admin,
                library_path=user.library_path,
                created_at=user.created_at,
                updated_at=user.updated_at,
            )
        )
        try:
            await self.session.flush()
        except IntegrityError as e:
            # Lost a race with a concurrent insert of the same username
            raise DuplicateEntityException("User", user.username) from e

    async def get_by_id(self, user_id: str) -> User | None:
        """Get a user by id."""
        model = await self.session.get(UserModel, user_id)
        return self._model_to_entity(model) if model else None

    async def get_by_username(self, username: str) -> User | None:
        """Get a user by username."""
        stmt = select(UserModel).where(UserModel.username == username)
        result = await self.session.execute(stmt)
        model = result.scalar_one_or_none()
        return self._model_to_entity(model) if model else None

    async def list_all(self) -> list[User]:
        """List all users ordered by username."""
        result = await self.session.execute(select(UserModel).order_by(UserModel.username))
        return [self._model_to_entity(m) for m in result.scalars().all()]

    async def count(self) -> int:
        """Count users."""
        result = await self.session.execute(select(func.count(UserModel.id)))
        return int(result.scalar_one())

    async def _update(self, user_id: str, **values: object) -> None:
        stmt = (
            update(UserModel)
            .where(UserModel.id == user_id)
            .values(updated_at=datetime.now(UTC), **values)
        )
        result = await self.session.execute(stmt)
        if result.rowcount == 0:  # type: ignore[attr-defined]
            raise EntityNotFoundException("User", user_id)

    async def update_password(self, user_id: str, password_hash: str) -> None:
        """Replace a user's password hash."""
        await self._update(user_id, password_hash=password_hash)

    async def update_library_path(self, user_id: str, library_path: str | None) -> None:
        """Set or clear a user's library override."""
        await self._update(user_id, library_path=library_path)

    async def update_username(self, user_id: str, username: str) -> None:
        """Rename a user."""
        try:
            await self._update(user_id, username=username)
        except IntegrityError as e:
            raise DuplicateEntityException("User", username) from e

    async def delete(self, user_id: str) -> None:
        """Delete a user."""
        result = await self.session.execute(delete(UserModel).where(UserModel.id == user_id))
        if result.rowcount == 0:  # type: ignore[attr-defined]
            raise EntityNotFoundException("User", user_id)


class ConfigRepository(IConfigRepository):
    """SQLAlchemy implementation of the key/value config store."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with session."""
        self.session = session

    async def get(self, key: str) -> str | None:
        """Get the raw value for a key."""
        model = await self.session.get(ConfigModel, key)
        return model.value if model else None

    async def set(self, key: str, value: str) -> None:
        """Insert or replace a value."""
        model = await self.session.get(ConfigModel, key)
        if model is None:
            self.session.add(ConfigModel(key=key, value=value))
        else:
            model.value = value
            model.updated_at = datetime.now(UTC)
        await self.session.flush()

    async def list_all(self) -> dict[str, str]:
        """Return every stored key/value pair."""
        result = await self.session.execute(select(ConfigModel).order_by(ConfigModel.key))
        return {m.key: m.value for m in result.scalars().all()}


class AuthSessionRepository(IAuthSessionRepository):
    """SQLAlchemy implementation of the login session store."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with session."""
        self.session = session

    async def add(self, auth_session: AuthSession) -> None:
        """Persist a new session."""
        self.session.add(
            AuthSessionModel(
                token=auth_session.token,
                user_id=auth_session.user_id,
                created_at=auth_session.created_at,
                expires_at=auth_session.expires_at,
            )
        )
        await self.session.flush()

    async def get(self, token: str) -> AuthSession | None:
        """Get a session by token."""
        model = await self.session.get(AuthSessionModel, token)
        if model is None:
            return None
        return AuthSession(
            token=model.token,
            user_id=model.user_id,
            created_at=ensure_utc_aware(model.created_at),
            expires_at=ensure_utc_aware(model.expires_at),
        )

    async def delete(self, token: str) -> None:
        """Delete a session. Missing tokens are ignored."""
        await self.session.execute(
            delete(AuthSessionModel).where(AuthSessionModel.token == token)
        )

    async def delete_for_user(self, user_id: str) -> int:
        """Delete every session of a user."""
        result = await self.session.execute(
            delete(AuthSessionModel).where(AuthSessionModel.user_id == user_id)
        )
        return int(result.rowcount or 0)  # type: ignore[attr-defined]

    async def delete_expired(self, now: datetime) -> int:
        """Purge sessions past their expiry."""
        result = await self.session.execute(
            delete(AuthSessionModel).where(AuthSessionModel.expires_at <= now)
        )
        removed = int(result.rowcount or 0)  # type: ignore[attr-defined]
        if removed:
            logger.debug("Purged %d expired login sessions", removed)
        return removed
