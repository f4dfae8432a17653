"""Tests for the SQLAlchemy repositories against a temp SQLite database."""

from datetime import UTC, datetime, timedelta

import pytest

from musicdrop.domain.entities import AuthSession, JobKind, JobStatus, User
from musicdrop.domain.exceptions import DuplicateEntityException, EntityNotFoundException
from musicdrop.domain.ports import UnitOfWorkFactory


class TestJobLogRepository:
    """upload_logs rows."""

    async def test_create_assigns_increasing_ids(
        self, uow_factory: UnitOfWorkFactory, stored_user: User
    ) -> None:
        async with uow_factory() as store:
            first = await store.job_logs.create(stored_user.id, JobKind.FILE, "upload")
            second = await store.job_logs.create(stored_user.id, JobKind.YOUTUBE, "u")
        assert first.status is JobStatus.PENDING
        assert second.id > first.id

    async def test_terminal_update_stamps_completed_at(
        self, uow_factory: UnitOfWorkFactory, stored_user: User
    ) -> None:
        async with uow_factory() as store:
            job = await store.job_logs.create(stored_user.id, JobKind.SPOTIFY, "u")
        async with uow_factory() as store:
            await store.job_logs.update_status(job.id, JobStatus.PROCESSING)
        async with uow_factory() as store:
            processing = await store.job_logs.get_by_id(job.id)
        assert processing is not None
        assert processing.completed_at is None

        async with uow_factory() as store:
            await store.job_logs.update_status(job.id, JobStatus.COMPLETED, file_count=4)
        async with uow_factory() as store:
            done = await store.job_logs.get_by_id(job.id)
        assert done is not None
        assert done.status is JobStatus.COMPLETED
        assert done.file_count == 4
        assert done.completed_at is not None
        assert done.completed_at.tzinfo is not None

    async def test_failed_update_always_has_message(
        self, uow_factory: UnitOfWorkFactory, stored_user: User
    ) -> None:
        async with uow_factory() as store:
            job = await store.job_logs.create(stored_user.id, JobKind.FILE, "upload")
        async with uow_factory() as store:
            await store.job_logs.update_status(job.id, JobStatus.FAILED)
        async with uow_factory() as store:
            failed = await store.job_logs.get_by_id(job.id)
        assert failed is not None
        assert failed.error_message == "unknown error"

    async def test_update_missing_job(self, uow_factory: UnitOfWorkFactory) -> None:
        with pytest.raises(EntityNotFoundException):
            async with uow_factory() as store:
                await store.job_logs.update_status(999, JobStatus.FAILED, error_message="x")

    async def test_list_recent_filters_and_orders(
        self, uow_factory: UnitOfWorkFactory, stored_user: User
    ) -> None:
        async with uow_factory() as store:
            await store.users.add(User(id="user-2", username="bob", password_hash="x"))
            a = await store.job_logs.create(stored_user.id, JobKind.FILE, "one")
            await store.job_logs.create("user-2", JobKind.FILE, "two")
            c = await store.job_logs.create(stored_user.id, JobKind.FILE, "three")

        async with uow_factory() as store:
            mine = await store.job_logs.list_recent(user_id=stored_user.id)
            everything = await store.job_logs.list_recent(limit=2)
            total = await store.job_logs.count()

        assert [j.id for j in mine] == [c.id, a.id]
        assert len(everything) == 2
        assert everything[0].id == c.id
        assert total == 3


class TestUserRepository:
    """users rows."""

    async def test_add_and_lookup(self, uow_factory: UnitOfWorkFactory, stored_user: User) -> None:
        async with uow_factory() as store:
            by_id = await store.users.get_by_id(stored_user.id)
            by_name = await store.users.get_by_username("alice")
        assert by_id is not None and by_id.username == "alice"
        assert by_name is not None and by_name.id == stored_user.id

    async def test_duplicate_username(
        self, uow_factory: UnitOfWorkFactory, stored_user: User
    ) -> None:
        with pytest.raises(DuplicateEntityException):
            async with uow_factory() as store:
                await store.users.add(User(id="other", username="alice", password_hash="x"))

    async def test_update_library_path_and_password(
        self, uow_factory: UnitOfWorkFactory, stored_user: User
    ) -> None:
        async with uow_factory() as store:
            await store.users.update_library_path(stored_user.id, "/data/alice")
            await store.users.update_password(stored_user.id, "new-hash")
        async with uow_factory() as store:
            user = await store.users.get_by_id(stored_user.id)
        assert user is not None
        assert user.library_path == "/data/alice"
        assert user.password_hash == "new-hash"

    async def test_update_username_conflict(
        self, uow_factory: UnitOfWorkFactory, stored_user: User
    ) -> None:
        async with uow_factory() as store:
            await store.users.add(User(id="user-2", username="bob", password_hash="x"))
        with pytest.raises(DuplicateEntityException):
            async with uow_factory() as store:
                await store.users.update_username("user-2", "alice")

    async def test_update_missing_user(self, uow_factory: UnitOfWorkFactory) -> None:
        with pytest.raises(EntityNotFoundException):
            async with uow_factory() as store:
                await store.users.update_password("ghost", "h")

    async def test_delete_cascades_jobs_and_sessions(
        self, uow_factory: UnitOfWorkFactory, stored_user: User
    ) -> None:
        async with uow_factory() as store:
            await store.job_logs.create(stored_user.id, JobKind.FILE, "upload")
            await store.auth_sessions.add(
                AuthSession(
                    token="tok",
                    user_id=stored_user.id,
                    expires_at=datetime.now(UTC) + timedelta(hours=1),
                )
            )
        async with uow_factory() as store:
            await store.users.delete(stored_user.id)
        async with uow_factory() as store:
            assert await store.users.count() == 0
            assert await store.job_logs.count() == 0
            assert await store.auth_sessions.get("tok") is None


class TestConfigRepository:
    """config key/value rows."""

    async def test_set_inserts_then_replaces(self, uow_factory: UnitOfWorkFactory) -> None:
        async with uow_factory() as store:
            await store.config.set("youtube_enabled", "true")
        async with uow_factory() as store:
            await store.config.set("youtube_enabled", "false")
        async with uow_factory() as store:
            assert await store.config.get("youtube_enabled") == "false"
            assert await store.config.get("missing") is None
            assert await store.config.list_all() == {"youtube_enabled": "false"}


class TestAuthSessionRepository:
    """auth_sessions rows."""

    async def test_delete_expired(self, uow_factory: UnitOfWorkFactory, stored_user: User) -> None:
        now = datetime.now(UTC)
        async with uow_factory() as store:
            await store.auth_sessions.add(
                AuthSession(token="old", user_id=stored_user.id, expires_at=now - timedelta(1))
            )
            await store.auth_sessions.add(
                AuthSession(token="new", user_id=stored_user.id, expires_at=now + timedelta(1))
            )
        async with uow_factory() as store:
            removed = await store.auth_sessions.delete_expired(now)
        async with uow_factory() as store:
            assert await store.auth_sessions.get("old") is None
            assert await store.auth_sessions.get("new") is not None
        assert removed == 1

    async def test_delete_for_user(self, uow_factory: UnitOfWorkFactory, stored_user: User) -> None:
        expires = datetime.now(UTC) + timedelta(hours=1)
        async with uow_factory() as store:
            for token in ("a", "b"):
                await store.auth_sessions.add(
                    AuthSession(token=token, user_id=stored_user.id, expires_at=expires)
                )
        async with uow_factory() as store:
            assert await store.auth_sessions.delete_for_user(stored_user.id) == 2
