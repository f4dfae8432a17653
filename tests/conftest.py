"""Shared fixtures: isolated settings, a temp SQLite database and fake tool executables."""

import stat
import sys
import textwrap
from collections.abc import AsyncGenerator, Callable
from pathlib import Path

import pytest

from musicdrop.config import Settings
from musicdrop.config.settings import (
    DatabaseSettings,
    PathsSettings,
    ProgressSettings,
    SecuritySettings,
    SpotifySettings,
    UploadSettings,
    YoutubeSettings,
)
from musicdrop.domain.entities import AuthUser, User
from musicdrop.domain.ports import UnitOfWorkFactory
from musicdrop.infrastructure.persistence import Database, unit_of_work_factory

FakeTool = Callable[[str, str], Path]


@pytest.fixture
def fake_tool(tmp_path: Path) -> FakeTool:
    """Write an executable Python script that stands in for yt-dlp/spotdl/ferric.

    Usage:
        path = fake_tool("yt-dlp", "print('hi')")

    The body sees `argv` (list of arguments) and `option(flag)` (value after a flag).
    """
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir(exist_ok=True)

    def _make(name: str, body: str) -> Path:
        script = bin_dir / name
        script.write_text(
            f"#!{sys.executable}\n"
            "import os, sys, time\n"
            "argv = sys.argv[1:]\n"
            "def option(flag):\n"
            "    return argv[argv.index(flag) + 1]\n"
            + textwrap.dedent(body)
        )
        script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return script

    return _make


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings pointing everything at tmp_path. Organizer off, tools not installed."""
    return Settings(
        database=DatabaseSettings(url=f"sqlite+aiosqlite:///{tmp_path / 'db' / 'test.db'}"),
        paths=PathsSettings(
            music_dir=tmp_path / "music",
            temp_dir=tmp_path / "upload",
            ferric_path=tmp_path / "bin" / "ferric",
            ferric_enabled=False,
        ),
        upload=UploadSettings(max_file_size_mb=1, allowed_extensions=["mp3", "flac"]),
        youtube=YoutubeSettings(ytdlp_path=str(tmp_path / "bin" / "yt-dlp")),
        spotify=SpotifySettings(spotdl_path=str(tmp_path / "bin" / "spotdl")),
        progress=ProgressSettings(teardown_delay_seconds=0.05, keepalive_seconds=1.0),
        security=SecuritySettings(bootstrap_admin=True),
    )


@pytest.fixture
async def db(settings: Settings) -> AsyncGenerator[Database, None]:
    """Fresh schema in a temp SQLite file."""
    db_path = settings._get_sqlite_db_path()
    assert db_path is not None
    db_path.parent.mkdir(parents=True, exist_ok=True)

    database = Database(settings)
    await database.create_tables()
    yield database
    await database.close()


@pytest.fixture
def uow_factory(db: Database) -> UnitOfWorkFactory:
    """Self-committing transaction factory over the temp database."""
    return unit_of_work_factory(db)


@pytest.fixture
async def stored_user(uow_factory: UnitOfWorkFactory) -> User:
    """A plain (non-admin) user without a library override."""
    user = User(id="user-1", username="alice", password_hash="x")
    async with uow_factory() as store:
        await store.users.add(user)
    return user


@pytest.fixture
def auth_user(stored_user: User) -> AuthUser:
    """The stored user as a request caller."""
    return AuthUser(id=stored_user.id, username=stored_user.username)
