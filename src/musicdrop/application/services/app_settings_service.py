"""Runtime settings stored in the `config` table.

Hey future me - two tiers, store wins:
1. `config` table row (editable at runtime via /api/admin/config)
2. static value from Settings (env / config.toml / defaults)

Values are stored as strings. Booleans accept the usual spellings ("true", "1", "yes",
"on" / "false", "0", "no", "off"); anything else is treated as "not set" and logged,
so a typo in the admin UI falls back to the static default instead of disabling things.
"""

import logging

from musicdrop.domain.exceptions import ValidationException
from musicdrop.domain.ports import IConfigRepository, UnitOfWorkFactory

logger = logging.getLogger(__name__)

# Keys the admin UI knows about. Other keys can be stored but nothing reads them.
FERRIC_ENABLED = "ferric_enabled"
YOUTUBE_ENABLED = "youtube_enabled"
SPOTIFY_ENABLED = "spotify_enabled"

RUNTIME_KEYS: tuple[str, ...] = (FERRIC_ENABLED, YOUTUBE_ENABLED, SPOTIFY_ENABLED)

_TRUE_VALUES = frozenset({"true", "1", "yes", "on"})
_FALSE_VALUES = frozenset({"false", "0", "no", "off"})


def parse_bool(raw: str | None) -> bool | None:
    """Parse a stored boolean, None for missing or unrecognised values."""
    if raw is None:
        return None
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    return None


class AppSettingsService:
    """Typed access to the runtime key/value store."""

    def __init__(self, config: IConfigRepository) -> None:
        self._config = config

    async def get_string(self, key: str, default: str | None = None) -> str | None:
        """Get a raw string value."""
        value = await self._config.get(key)
        return default if value is None else value

    async def get_bool(self, key: str, default: bool) -> bool:
        """Get a boolean, falling back to `default` when missing or malformed."""
        raw = await self._config.get(key)
        parsed = parse_bool(raw)
        if parsed is None:
            if raw is not None:
                logger.warning("Ignoring non-boolean config value %s=%r", key, raw)
            return default
        return parsed

    async def get_int(self, key: str, default: int) -> int:
        """Get an integer, falling back to `default` when missing or malformed."""
        raw = await self._config.get(key)
        if raw is None:
            return default
        try:
            return int(raw.strip())
        except ValueError:
            logger.warning("Ignoring non-integer config value %s=%r", key, raw)
            return default

    async def set(self, key: str, value: str) -> None:
        """Store a value. Known flag keys must hold a recognisable boolean.

        Raises:
            ValidationException: Flag key with a value parse_bool doesn't understand
        """
        if key in RUNTIME_KEYS and parse_bool(value) is None:
            raise ValidationException(f"'{key}' expects a boolean (true/false), got {value!r}")
        await self._config.set(key, value)
        logger.info("Runtime config %s set to %r", key, value)

    async def list_all(self) -> dict[str, str]:
        """Return every stored value."""
        return await self._config.list_all()


class EffectiveSettings:
    """Two-tier lookup for long-running services that don't own a DB session.

    Each lookup opens (and closes) its own short transaction.
    """

    def __init__(self, uow_factory: UnitOfWorkFactory) -> None:
        self._uow_factory = uow_factory

    async def get_bool(self, key: str, static_default: bool) -> bool:
        """Store value if set and valid, else `static_default`."""
        async with self._uow_factory() as store:
            return await AppSettingsService(store.config).get_bool(key, static_default)
