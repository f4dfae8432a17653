"""Login sessions and password hashing.

Hey future me - the pipeline never looks at tokens, it only gets an AuthUser. This module
is the minimal credential service so the app is usable on its own:
- passwords: salted scrypt, stored as "scrypt$<salt hex>$<hash hex>"
- login: opaque random token in auth_sessions, expires after session_timeout_hours
- tokens arrive as "Authorization: Bearer <token>" or the session_id cookie
"""

import hashlib
import hmac
import logging
import secrets
import uuid
from datetime import UTC, datetime, timedelta

from musicdrop.domain.entities import AuthSession, AuthUser, User
from musicdrop.domain.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ValidationException,
)
from musicdrop.domain.ports import IAuthSessionRepository, IUserRepository

logger = logging.getLogger(__name__)

_SCRYPT_N = 2**14
_SCRYPT_R = 8
_SCRYPT_P = 1
_SCRYPT_DKLEN = 64
_SALT_BYTES = 16

MIN_PASSWORD_LENGTH = 8

DEFAULT_ADMIN_USERNAME = "admin"
DEFAULT_ADMIN_PASSWORD = "admin"


def hash_password(password: str) -> str:
    """Hash a password with a fresh random salt."""
    salt = secrets.token_bytes(_SALT_BYTES)
    digest = hashlib.scrypt(
        password.encode("utf-8"),
        salt=salt,
        n=_SCRYPT_N,
        r=_SCRYPT_R,
        p=_SCRYPT_P,
        dklen=_SCRYPT_DKLEN,
    )
    return f"scrypt${salt.hex()}${digest.hex()}"


def verify_password(password: str, stored: str) -> bool:
    """Check a password against a stored hash. Malformed hashes never match."""
    try:
        scheme, salt_hex, digest_hex = stored.split("$")
        salt = bytes.fromhex(salt_hex)
        expected = bytes.fromhex(digest_hex)
    except ValueError:
        return False
    if scheme != "scrypt":
        return False

    actual = hashlib.scrypt(
        password.encode("utf-8"),
        salt=salt,
        n=_SCRYPT_N,
        r=_SCRYPT_R,
        p=_SCRYPT_P,
        dklen=len(expected),
    )
    return hmac.compare_digest(actual, expected)


def validate_new_password(password: str) -> None:
    """Raise ValidationException for unusable passwords."""
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationException(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
        )


def parse_bearer_token(authorization: str) -> str:
    """Strip an optional (case-insensitive) "Bearer " prefix."""
    if authorization.lower().startswith("bearer "):
        return authorization[7:].strip()
    return authorization.strip()


class AuthService:
    """Login, logout, token verification and password changes."""

    def __init__(
        self,
        users: IUserRepository,
        sessions: IAuthSessionRepository,
        session_timeout_hours: int = 24,
    ) -> None:
        self._users = users
        self._sessions = sessions
        self._timeout = timedelta(hours=session_timeout_hours)

    async def login(self, username: str, password: str) -> tuple[AuthSession, User]:
        """Verify credentials and open a session.

        Raises:
            AuthenticationError: Unknown user or wrong password (same message for both)
        """
        user = await self._users.get_by_username(username)
        if user is None or not verify_password(password, user.password_hash):
            logger.info("Failed login for %r", username)
            raise AuthenticationError("Invalid username or password")

        now = datetime.now(UTC)
        auth_session = AuthSession(
            token=secrets.token_urlsafe(32),
            user_id=user.id,
            created_at=now,
            expires_at=now + self._timeout,
        )
        await self._sessions.add(auth_session)
        await self._sessions.delete_expired(now)
        logger.info("User %s logged in", user.username, extra={"user_id": user.id})
        return auth_session, user

    async def logout(self, token: str) -> None:
        """Forget a session token."""
        await self._sessions.delete(token)

    async def authenticate(self, token: str | None) -> AuthUser:
        """Turn a request token into the calling user.

        Raises:
            AuthenticationError: Missing, unknown or expired token, or deleted user
        """
        if not token:
            raise AuthenticationError("Not authenticated")

        auth_session = await self._sessions.get(token)
        if auth_session is None:
            raise AuthenticationError("Invalid or expired session")
        if auth_session.is_expired():
            await self._sessions.delete(token)
            raise AuthenticationError("Invalid or expired session")

        user = await self._users.get_by_id(auth_session.user_id)
        if user is None:
            await self._sessions.delete(token)
            raise AuthenticationError("Invalid or expired session")

        return AuthUser(id=user.id, username=user.username, is_admin=user.is_admin)

    async def change_password(
        self, user: AuthUser, current_password: str, new_password: str
    ) -> None:
        """Change the caller's own password (requires the current one)."""
        record = await self._users.get_by_id(user.id)
        if record is None or not verify_password(current_password, record.password_hash):
            raise AuthenticationError("Current password is incorrect")
        validate_new_password(new_password)
        await self._users.update_password(user.id, hash_password(new_password))
        logger.info("User %s changed their password", user.username)


def require_admin(user: AuthUser) -> AuthUser:
    """Raise AuthorizationError unless the user is an admin."""
    if not user.is_admin:
        raise AuthorizationError("Admin access required")
    return user


async def bootstrap_admin(users: IUserRepository) -> User | None:
    """Create admin/admin when the users table is empty.

    Returns:
        The created user, or None if users already exist
    """
    if await users.count() > 0:
        return None

    admin = User(
        id=str(uuid.uuid4()),
        username=DEFAULT_ADMIN_USERNAME,
        password_hash=hash_password(DEFAULT_ADMIN_PASSWORD),
        is_admin=True,
    )
    await users.add(admin)
    logger.warning(
        "No users found - created default administrator '%s' with password '%s'. "
        "CHANGE THIS PASSWORD NOW!",
        DEFAULT_ADMIN_USERNAME,
        DEFAULT_ADMIN_PASSWORD,
    )
    return admin
