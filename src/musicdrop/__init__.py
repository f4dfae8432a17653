"""MusicDrop - self-hosted music acquisition service."""

__version__ = "0.3.0"
