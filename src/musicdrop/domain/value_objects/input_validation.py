"""Validation of untrusted user input (remote URLs, upload filenames, upload sizes).

Hey future me - this is the injection/traversal boundary! Everything that passes these
checks ends up either as a LITERAL argv element for yt-dlp/spotdl (never through a shell)
or as a filename inside the user's temp dir. Both checks run before any job row is
written or any file is touched, so a rejected request leaves zero traces.

Usage:
    from musicdrop.domain.value_objects.input_validation import (
        validate_remote_url,
        validate_upload_filename,
    )

    url = validate_remote_url(JobKind.YOUTUBE, "  https://youtu.be/abc  ")
    name = validate_upload_filename("C:\\evil\\song.MP3", ["mp3", "flac"])
"""

from musicdrop.domain.entities import JobKind
from musicdrop.domain.exceptions import (
    DisallowedExtensionError,
    FileTooLargeError,
    InvalidFilenameError,
    InvalidUrlError,
)

# =============================================================================
# URL ALLOW-LISTS
# =============================================================================

SPOTIFY_URL_PREFIXES: tuple[str, ...] = (
    "https://open.spotify.com/track/",
    "https://open.spotify.com/album/",
    "https://open.spotify.com/playlist/",
    "https://open.spotify.com/artist/",
)

YOUTUBE_URL_PREFIXES: tuple[str, ...] = (
    "https://www.youtube.com/watch?v=",
    "https://youtube.com/watch?v=",
    "https://m.youtube.com/watch?v=",
    "https://music.youtube.com/watch?v=",
    "https://youtu.be/",
    "https://www.youtube.com/shorts/",
)

MAX_URL_LENGTH: dict[JobKind, int] = {
    JobKind.SPOTIFY: 300,
    JobKind.YOUTUBE: 200,
}

_URL_PREFIXES: dict[JobKind, tuple[str, ...]] = {
    JobKind.SPOTIFY: SPOTIFY_URL_PREFIXES,
    JobKind.YOUTUBE: YOUTUBE_URL_PREFIXES,
}

# Shell metacharacters. We never use a shell, but a URL carrying these is never legit.
URL_BLACKLIST: tuple[str, ...] = (";", "|", "`", "$", "&&", "||")


def _has_whitespace_or_control(value: str) -> bool:
    return any(ch.isspace() or ord(ch) < 32 or ord(ch) == 127 for ch in value)


def validate_remote_url(kind: JobKind, raw: str) -> str:
    """Validate a remote source URL against the per-kind allow-list.

    Args:
        kind: Source kind (youtube or spotify)
        raw: URL as submitted by the client

    Returns:
        The trimmed URL, safe to pass as a literal process argument

    Raises:
        InvalidUrlError: If the kind is not remote or the URL fails any check
    """
    prefixes = _URL_PREFIXES.get(kind)
    if prefixes is None:
        raise InvalidUrlError(f"'{kind.value}' is not a remote source")

    url = (raw or "").strip()
    if not url:
        raise InvalidUrlError("URL is empty")

    max_length = MAX_URL_LENGTH[kind]
    if len(url) > max_length:
        raise InvalidUrlError(
            f"Invalid {kind.value} URL: longer than {max_length} characters"
        )

    if any(bad in url for bad in URL_BLACKLIST):
        raise InvalidUrlError(f"Invalid {kind.value} URL: contains forbidden characters")

    if _has_whitespace_or_control(url):
        raise InvalidUrlError(
            f"Invalid {kind.value} URL: contains whitespace or control characters"
        )

    if not url.startswith(prefixes):
        raise InvalidUrlError(f"Invalid {kind.value} URL: unsupported address")

    return url


# =============================================================================
# UPLOAD FILENAMES
# =============================================================================

# NAME_MAX on Linux and most filesystems, counted in UTF-8 bytes
MAX_FILENAME_BYTES = 255


def _last_path_component(raw: str) -> str:
    # Browsers on Windows happily send "C:\Users\me\song.mp3", so split on both separators
    return raw.replace("\\", "/").rsplit("/", 1)[-1]


def file_extension(filename: str) -> str:
    """Lowercased extension without the dot, "" when there is none."""
    _, dot, ext = filename.rpartition(".")
    return ext.lower() if dot else ""


def validate_upload_filename(raw: str | None, allowed_extensions: list[str]) -> str:
    """Sanitize a client-supplied filename.

    Args:
        raw: Filename from the multipart part (may contain directories)
        allowed_extensions: Lowercase extensions without dots

    Returns:
        The last path component, safe to join onto the temp directory

    Raises:
        InvalidFilenameError: If the name is empty, too long, has control characters
            or still looks like traversal
        DisallowedExtensionError: If the extension is not allowed
    """
    name = _last_path_component((raw or "").strip())

    if not name or name in (".", ".."):
        raise InvalidFilenameError(f"Invalid filename: {raw!r}")
    if ".." in name or "/" in name or "\\" in name:
        raise InvalidFilenameError(f"Invalid filename: {raw!r}")
    if any(ord(ch) < 32 or ord(ch) == 127 for ch in name):
        raise InvalidFilenameError(f"Invalid filename: {raw!r} contains control characters")
    if len(name.encode("utf-8", errors="surrogatepass")) > MAX_FILENAME_BYTES:
        raise InvalidFilenameError(
            f"Invalid filename: longer than {MAX_FILENAME_BYTES} bytes"
        )

    extension = file_extension(name)
    allowed = [ext.lower() for ext in allowed_extensions]
    if extension not in allowed:
        raise DisallowedExtensionError(name, extension, allowed)

    return name


def check_upload_size(size: int, max_bytes: int, filename: str = "upload") -> None:
    """Raise FileTooLargeError if `size` exceeds `max_bytes`."""
    if size > max_bytes:
        raise FileTooLargeError(filename, size, max_bytes)
