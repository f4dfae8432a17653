"""Argument vectors for the external fetch and organizer tools.

The flag names here are part of the operator-facing contract (people wrap these tools
with scripts that expect exactly these calls), so change them only on purpose.
"""

from pathlib import Path

from musicdrop.config.settings import SpotifySettings, YoutubeSettings


def build_spotdl_args(settings: SpotifySettings, temp_dir: Path, url: str) -> list[str]:
    """spotdl download into temp_dir as "Artist - Title.ext"."""
    return [
        "download",
        url,
        "--output",
        f"{temp_dir}/{{artist}} - {{title}}.{{output-ext}}",
        "--format",
        settings.audio_format,
    ]


def build_ytdlp_args(settings: YoutubeSettings, temp_dir: Path, url: str) -> list[str]:
    """yt-dlp audio extraction into temp_dir as "Title.ext".

    Optional flags are appended in a fixed order and the URL is always last.
    """
    args = [
        "--extract-audio",
        "--audio-format",
        settings.audio_format,
        "--output",
        f"{temp_dir}/%(title)s.%(ext)s",
        "--no-playlist",
    ]

    selector = (settings.format_selector or "").strip()
    if selector:
        args.extend(["-f", selector])

    client = (settings.player_client or "").strip()
    if client:
        args.extend(["--extractor-args", f"youtube:player_client={client}"])

    args.extend(settings.extra_args)
    args.append(url)
    return args


def build_organizer_args(temp_dir: Path, music_dir: Path) -> list[str]:
    """ferric reads raw files from temp_dir and files them into music_dir."""
    return ["--input-dir", str(temp_dir), "--output-dir", str(music_dir)]
