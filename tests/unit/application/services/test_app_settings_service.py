"""Tests for runtime settings (config table over static settings)."""

from unittest.mock import AsyncMock

import pytest

from musicdrop.application.services.app_settings_service import (
    YOUTUBE_ENABLED,
    AppSettingsService,
    EffectiveSettings,
    parse_bool,
)
from musicdrop.domain.exceptions import ValidationException
from musicdrop.domain.ports import IConfigRepository, UnitOfWorkFactory


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("true", True),
        (" ON ", True),
        ("1", True),
        ("yes", True),
        ("false", False),
        ("0", False),
        ("Off", False),
        ("no", False),
        ("maybe", None),
        ("", None),
        (None, None),
    ],
)
def test_parse_bool(raw: str | None, expected: bool | None) -> None:
    assert parse_bool(raw) is expected


class TestAppSettingsService:
    """Typed reads and validated writes."""

    @pytest.fixture
    def config(self) -> AsyncMock:
        return AsyncMock(spec=IConfigRepository)

    async def test_bool_falls_back_when_missing(self, config: AsyncMock) -> None:
        config.get.return_value = None
        assert await AppSettingsService(config).get_bool(YOUTUBE_ENABLED, True) is True

    async def test_bool_falls_back_when_malformed(self, config: AsyncMock) -> None:
        config.get.return_value = "sometimes"
        assert await AppSettingsService(config).get_bool(YOUTUBE_ENABLED, True) is True

    async def test_bool_store_wins(self, config: AsyncMock) -> None:
        config.get.return_value = "false"
        assert await AppSettingsService(config).get_bool(YOUTUBE_ENABLED, True) is False

    async def test_int(self, config: AsyncMock) -> None:
        service = AppSettingsService(config)
        config.get.return_value = " 42 "
        assert await service.get_int("limit", 7) == 42
        config.get.return_value = "lots"
        assert await service.get_int("limit", 7) == 7

    async def test_string_default(self, config: AsyncMock) -> None:
        config.get.return_value = None
        assert await AppSettingsService(config).get_string("x", "d") == "d"

    async def test_set_rejects_non_boolean_flag(self, config: AsyncMock) -> None:
        with pytest.raises(ValidationException, match="expects a boolean"):
            await AppSettingsService(config).set(YOUTUBE_ENABLED, "nah")
        config.set.assert_not_awaited()

    async def test_set_accepts_free_form_for_other_keys(self, config: AsyncMock) -> None:
        await AppSettingsService(config).set("theme", "dark")
        config.set.assert_awaited_once_with("theme", "dark")


class TestEffectiveSettings:
    """Two-tier lookup through short transactions."""

    async def test_static_default_until_stored(self, uow_factory: UnitOfWorkFactory) -> None:
        effective = EffectiveSettings(uow_factory)
        assert await effective.get_bool(YOUTUBE_ENABLED, True) is True

        async with uow_factory() as store:
            await store.config.set(YOUTUBE_ENABLED, "off")

        assert await effective.get_bool(YOUTUBE_ENABLED, True) is False
