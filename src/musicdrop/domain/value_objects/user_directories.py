"""Per-user music/temp directory resolution.

Hey future me - the collision rule is the whole point of this module. If an admin sets a
user's library_path to EXACTLY the global music root, we must not dump files into the
shared root and we must not create "<root>/tmp" (the organizer would sweep that up as
library content). So that case maps to (<root>/default, <global temp>).
"""

import os
from dataclasses import dataclass
from pathlib import Path

from musicdrop.config.settings import PathsSettings

DEFAULT_SUBDIR = "default"
USER_TEMP_SUBDIR = "tmp"


@dataclass(frozen=True)
class UserDirectories:
    """Effective library and scratch directories for one user."""

    music_dir: Path
    temp_dir: Path


def _normalize(path: Path | str) -> Path:
    # normpath folds "a/b/../b/" and trailing slashes without touching the filesystem
    return Path(os.path.normpath(str(path)))


def resolve(paths: PathsSettings, library_path: str | None) -> UserDirectories:
    """Compute the user's directories. Pure, touches nothing on disk.

    Args:
        paths: Global path settings
        library_path: The user's override, None (or blank) for the global defaults

    Returns:
        UserDirectories(music_dir, temp_dir)
    """
    if library_path is None or not library_path.strip():
        return UserDirectories(music_dir=paths.music_dir, temp_dir=paths.temp_dir)

    override = _normalize(library_path.strip())
    if override == _normalize(paths.music_dir):
        return UserDirectories(
            music_dir=paths.music_dir / DEFAULT_SUBDIR,
            temp_dir=paths.temp_dir,
        )

    return UserDirectories(music_dir=override, temp_dir=override / USER_TEMP_SUBDIR)
