"""Configuration module for MusicDrop."""

from .settings import (
    PathsSettings,
    Settings,
    SpotifySettings,
    UploadSettings,
    YoutubeSettings,
    get_settings,
)

__all__ = [
    "PathsSettings",
    "Settings",
    "SpotifySettings",
    "UploadSettings",
    "YoutubeSettings",
    "get_settings",
]
