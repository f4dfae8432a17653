"""Tests for the async SQLite engine wrapper."""

import pytest
from sqlalchemy import func, select, text

from musicdrop.infrastructure.persistence import Database
from musicdrop.infrastructure.persistence.models import ConfigModel


class TestDatabase:
    """Pragmas and transaction scope."""

    async def test_foreign_keys_are_enforced(self, db: Database) -> None:
        async with db.session_scope() as session:
            result = await session.execute(text("PRAGMA foreign_keys"))
            assert result.scalar_one() == 1

    async def test_session_scope_commits(self, db: Database) -> None:
        async with db.session_scope() as session:
            session.add(ConfigModel(key="youtube_enabled", value="false"))

        async with db.session_scope() as session:
            stored = await session.get(ConfigModel, "youtube_enabled")
            assert stored is not None
            assert stored.value == "false"

    async def test_session_scope_rolls_back_on_error(self, db: Database) -> None:
        with pytest.raises(RuntimeError):
            async with db.session_scope() as session:
                session.add(ConfigModel(key="youtube_enabled", value="false"))
                await session.flush()
                raise RuntimeError("boom")

        async with db.session_scope() as session:
            count = await session.scalar(select(func.count()).select_from(ConfigModel))
            assert count == 0
