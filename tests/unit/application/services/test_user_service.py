"""Tests for user management."""

import pytest

from musicdrop.application.services.auth_service import verify_password
from musicdrop.application.services.user_service import UserService
from musicdrop.domain.entities import AuthUser, User
from musicdrop.domain.exceptions import (
    DuplicateEntityException,
    EntityNotFoundException,
    InvalidStateException,
    ValidationException,
)
from musicdrop.domain.ports import UnitOfWorkFactory


class TestUserService:
    """CRUD rules over the real repositories."""

    async def test_create_and_list(self, uow_factory: UnitOfWorkFactory) -> None:
        async with uow_factory() as store:
            service = UserService(store.users, store.auth_sessions)
            created = await service.create_user(
                "  dave ", "password1", is_admin=True, library_path="/data/dave"
            )
            users = await service.list_users()

        assert created.username == "dave"
        assert created.is_admin
        assert created.library_path == "/data/dave"
        assert verify_password("password1", created.password_hash)
        assert [u.username for u in users] == ["dave"]

    @pytest.mark.parametrize(
        ("username", "password", "library_path"),
        [
            ("ab", "password1", None),
            ("erin", "short", None),
            ("erin", "password1", "/data/../etc"),
        ],
    )
    async def test_create_rejects_bad_input(
        self,
        uow_factory: UnitOfWorkFactory,
        username: str,
        password: str,
        library_path: str | None,
    ) -> None:
        async with uow_factory() as store:
            with pytest.raises(ValidationException):
                await UserService(store.users).create_user(
                    username, password, library_path=library_path
                )

    async def test_create_duplicate(
        self, uow_factory: UnitOfWorkFactory, stored_user: User
    ) -> None:
        async with uow_factory() as store:
            with pytest.raises(DuplicateEntityException):
                await UserService(store.users).create_user("alice", "password1")

    async def test_cannot_delete_self(
        self, uow_factory: UnitOfWorkFactory, auth_user: AuthUser
    ) -> None:
        async with uow_factory() as store:
            with pytest.raises(InvalidStateException):
                await UserService(store.users).delete_user(auth_user, auth_user.id)

    async def test_delete_missing(self, uow_factory: UnitOfWorkFactory) -> None:
        admin = AuthUser(id="admin", username="admin", is_admin=True)
        with pytest.raises(EntityNotFoundException):
            async with uow_factory() as store:
                await UserService(store.users).delete_user(admin, "ghost")

    async def test_set_library_path(
        self, uow_factory: UnitOfWorkFactory, stored_user: User
    ) -> None:
        async with uow_factory() as store:
            user = await UserService(store.users).set_library_path(stored_user.id, " /lib/a ")
        assert user.library_path == "/lib/a"

    async def test_change_username(
        self, uow_factory: UnitOfWorkFactory, auth_user: AuthUser
    ) -> None:
        async with uow_factory() as store:
            service = UserService(store.users)
            await store.users.add(User(id="user-2", username="bob", password_hash="x"))
            with pytest.raises(DuplicateEntityException):
                await service.change_username(auth_user, "bob")
            assert await service.change_username(auth_user, "alicia") == "alicia"

        async with uow_factory() as store:
            renamed = await store.users.get_by_id(auth_user.id)
        assert renamed is not None
        assert renamed.username == "alicia"
