"""User management (admin) and self-service account changes."""

import logging
import uuid

from musicdrop.application.services.auth_service import (
    hash_password,
    validate_new_password,
)
from musicdrop.domain.entities import AuthUser, User
from musicdrop.domain.exceptions import (
    DuplicateEntityException,
    EntityNotFoundException,
    InvalidStateException,
    ValidationException,
)
from musicdrop.domain.ports import IAuthSessionRepository, IUserRepository

logger = logging.getLogger(__name__)

MIN_USERNAME_LENGTH = 3


def validate_username(username: str) -> str:
    """Trim and check a username."""
    name = username.strip()
    if len(name) < MIN_USERNAME_LENGTH:
        raise ValidationException(
            f"Username must be at least {MIN_USERNAME_LENGTH} characters"
        )
    return name


def validate_library_path(library_path: str) -> str:
    """Reject empty paths and anything with a parent-directory component."""
    path = library_path.strip()
    if not path:
        raise ValidationException("Library path cannot be empty")
    if ".." in path:
        raise ValidationException("Library path contains invalid characters (..)")
    return path


class UserService:
    """CRUD on users. Callers are responsible for admin checks."""

    def __init__(
        self,
        users: IUserRepository,
        sessions: IAuthSessionRepository | None = None,
    ) -> None:
        self._users = users
        self._sessions = sessions

    async def list_users(self) -> list[User]:
        """All users ordered by username."""
        return await self._users.list_all()

    async def get_user(self, user_id: str) -> User:
        """Get a user or raise EntityNotFoundException."""
        user = await self._users.get_by_id(user_id)
        if user is None:
            raise EntityNotFoundException("User", user_id)
        return user

    async def create_user(
        self,
        username: str,
        password: str,
        is_admin: bool = False,
        library_path: str | None = None,
    ) -> User:
        """Create a user.

        Raises:
            ValidationException: Bad username, password or library path
            DuplicateEntityException: Username already taken
        """
        name = validate_username(username)
        validate_new_password(password)
        path = validate_library_path(library_path) if library_path else None

        user = User(
            id=str(uuid.uuid4()),
            username=name,
            password_hash=hash_password(password),
            is_admin=is_admin,
            library_path=path,
        )
        await self._users.add(user)
        logger.info("Created user %s (admin=%s)", name, is_admin)
        return user

    async def delete_user(self, actor: AuthUser, user_id: str) -> None:
        """Delete a user. Admins can't delete themselves."""
        if actor.id == user_id:
            raise InvalidStateException("Cannot delete your own account")
        await self._users.delete(user_id)
        logger.info("User %s deleted by %s", user_id, actor.username)

    async def set_password(self, user_id: str, new_password: str) -> None:
        """Admin password reset. Logs the user out everywhere."""
        validate_new_password(new_password)
        await self._users.update_password(user_id, hash_password(new_password))
        if self._sessions is not None:
            await self._sessions.delete_for_user(user_id)

    async def set_library_path(self, user_id: str, library_path: str) -> User:
        """Point a user at their own library directory."""
        path = validate_library_path(library_path)
        await self._users.update_library_path(user_id, path)
        logger.info("Library path of user %s set to %s", user_id, path)
        return await self.get_user(user_id)

    async def change_username(self, user: AuthUser, new_username: str) -> str:
        """Rename the caller."""
        name = validate_username(new_username)
        existing = await self._users.get_by_username(name)
        if existing is not None and existing.id != user.id:
            raise DuplicateEntityException("User", name)
        await self._users.update_username(user.id, name)
        return name
