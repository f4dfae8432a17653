"""Creating the per-user music and temp directories on disk."""

import asyncio
import logging
from pathlib import Path

from musicdrop.config.settings import PathsSettings
from musicdrop.domain.exceptions import StorageError
from musicdrop.domain.value_objects.user_directories import UserDirectories, resolve

logger = logging.getLogger(__name__)


async def ensure_exists(path: Path) -> None:
    """Create `path` (and parents) if missing. Safe to call repeatedly.

    Raises:
        StorageError: If the directory cannot be created (permissions, disk full, a
            file in the way). Not retried.
    """
    if await asyncio.to_thread(path.is_dir):
        return
    try:
        await asyncio.to_thread(path.mkdir, parents=True, exist_ok=True)
    except OSError as e:
        raise StorageError(f"Failed to create directory {path}: {e}") from e
    logger.info("Created directory: %s", path)


async def get_user_directories(
    paths: PathsSettings, library_path: str | None
) -> UserDirectories:
    """Resolve a user's directories and make sure both exist."""
    dirs = resolve(paths, library_path)
    await ensure_exists(dirs.music_dir)
    await ensure_exists(dirs.temp_dir)
    return dirs
