"""Application settings.

Hey future me - settings come from THREE places, highest priority first:
1. Environment variables (nested with "__", e.g. PATHS__MUSIC_DIR=/srv/music)
2. A TOML file (CONFIG_PATH env var, default ./config.toml), same section names
3. The defaults below

On top of that, a handful of flat env vars (MUSIC_DIR, TEMP_DIR, DATABASE_URL,
SERVER_HOST, SERVER_PORT) are honoured because the Docker/setup scripts export
those names. They win over everything else.

Runtime-editable flags (ferric_enabled, youtube_enabled, spotify_enabled) can
ALSO be overridden from the `config` DB table - see AppSettingsService. The
values here are only the static fallback for those.
"""

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    TomlConfigSettingsSource,
)

logger = logging.getLogger(__name__)

DEFAULT_ALLOWED_EXTENSIONS = ["mp3", "flac", "ogg", "opus", "m4a", "wav", "aac"]


class ApiSettings(BaseModel):
    """HTTP server settings."""

    host: str = "0.0.0.0"
    port: int = 8080
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])


class DatabaseSettings(BaseModel):
    """Database connection settings."""

    url: str = "sqlite+aiosqlite:///./data/musicdrop.db"
    echo: bool = False
    # Seconds a writer waits on a locked SQLite file before "database is locked"
    busy_timeout_seconds: float = 30.0


class PathsSettings(BaseModel):
    """Global library locations and the organizer executable."""

    music_dir: Path = Path("/tmp/music")
    temp_dir: Path = Path("/tmp/music_upload")
    ferric_path: Path = Path("/usr/local/bin/ferric")
    ferric_enabled: bool = True


class UploadSettings(BaseModel):
    """Direct upload limits."""

    max_file_size_mb: int = 500
    allowed_extensions: list[str] = Field(
        default_factory=lambda: list(DEFAULT_ALLOWED_EXTENSIONS)
    )

    @field_validator("allowed_extensions")
    @classmethod
    def _normalize_extensions(cls, value: list[str]) -> list[str]:
        # Accept ".MP3" as well as "mp3" in config files
        return [ext.strip().lstrip(".").lower() for ext in value if ext.strip()]

    @property
    def max_file_size_bytes(self) -> int:
        """Maximum upload size in bytes."""
        return self.max_file_size_mb * 1024 * 1024


class YoutubeSettings(BaseModel):
    """yt-dlp invocation settings."""

    enabled: bool = True
    ytdlp_path: str = "yt-dlp"
    audio_format: str = "best"
    format_selector: str = "bestaudio/best"
    # Hey future me - YouTube keeps breaking some player clients. "web" is the
    # current workaround; set to "" (or null in TOML) to drop the flag entirely.
    player_client: str | None = "web"
    extra_args: list[str] = Field(default_factory=list)


class SpotifySettings(BaseModel):
    """spotdl invocation settings."""

    enabled: bool = True
    spotdl_path: str = "spotdl"
    audio_format: str = "opus"


class ProcessSettings(BaseModel):
    """External process execution limits."""

    # None or 0 disables the timeout (a hung tool then blocks its job forever)
    timeout_seconds: float | None = 3600.0

    @property
    def effective_timeout(self) -> float | None:
        """Timeout to pass to the runner, None when disabled."""
        if not self.timeout_seconds or self.timeout_seconds <= 0:
            return None
        return self.timeout_seconds


class ProgressSettings(BaseModel):
    """Live progress channel settings."""

    channel_capacity: int = 100
    teardown_delay_seconds: float = 2.0
    keepalive_seconds: float = 15.0


class SecuritySettings(BaseModel):
    """Login session settings."""

    session_timeout_hours: int = 24
    cookie_secure: bool = False
    bootstrap_admin: bool = True


class ObservabilitySettings(BaseModel):
    """Logging settings."""

    log_json_format: bool = False


class Settings(BaseSettings):
    """Root settings object."""

    model_config = SettingsConfigDict(
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = "musicdrop"
    log_level: str = "INFO"

    api: ApiSettings = Field(default_factory=ApiSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    paths: PathsSettings = Field(default_factory=PathsSettings)
    upload: UploadSettings = Field(default_factory=UploadSettings)
    youtube: YoutubeSettings = Field(default_factory=YoutubeSettings)
    spotify: SpotifySettings = Field(default_factory=SpotifySettings)
    processes: ProcessSettings = Field(default_factory=ProcessSettings)
    progress: ProgressSettings = Field(default_factory=ProgressSettings)
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Insert the TOML config file between env vars and defaults."""
        config_path = Path(os.environ.get("CONFIG_PATH", "config.toml"))
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            TomlConfigSettingsSource(settings_cls, toml_file=config_path),
            file_secret_settings,
        )

    def apply_env_overrides(self, environ: dict[str, str] | None = None) -> None:
        """Apply the flat deployment env vars on top of the loaded settings."""
        env = os.environ if environ is None else environ

        if host := env.get("SERVER_HOST"):
            self.api.host = host
        if port := env.get("SERVER_PORT"):
            try:
                self.api.port = int(port)
            except ValueError:
                logger.warning("Ignoring non-numeric SERVER_PORT=%r", port)
        if db_url := env.get("DATABASE_URL"):
            self.database.url = db_url
        if music_dir := env.get("MUSIC_DIR"):
            self.paths.music_dir = Path(music_dir)
        if temp_dir := env.get("TEMP_DIR"):
            self.paths.temp_dir = Path(temp_dir)

    def ensure_directories(self) -> None:
        """Create the global music and temp directories if missing."""
        for path in (self.paths.temp_dir, self.paths.music_dir):
            if not path.exists():
                logger.info("Creating directory: %s", path)
            path.mkdir(parents=True, exist_ok=True)

    def _get_sqlite_db_path(self) -> Path | None:
        """Return the SQLite file path, or None for non-file databases."""
        url = self.database.url
        if not url.startswith("sqlite"):
            return None
        _, _, path = url.partition(":///")
        if not path or path.startswith(":memory:"):
            return None
        return Path(path)

    def summary(self) -> dict[str, Any]:
        """Non-sensitive view for startup logs."""
        return {
            "music_dir": str(self.paths.music_dir),
            "temp_dir": str(self.paths.temp_dir),
            "ferric_path": str(self.paths.ferric_path),
            "youtube_enabled": self.youtube.enabled,
            "spotify_enabled": self.spotify.enabled,
        }


@lru_cache
def get_settings() -> Settings:
    """Load settings once per process."""
    settings = Settings()
    settings.apply_env_overrides()
    return settings
