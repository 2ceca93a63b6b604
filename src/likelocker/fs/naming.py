"""
Media file naming conventions.

Filename format: <contentKey><ext>

- contentKey: SHA-256 hex of the source URL (see hashing.py)
- ext: extension with leading dot (e.g. .jpg, .png, .mp4)

The storage directory is flat; the filename alone identifies the media.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlparse

from ..feed.models import MediaKind
from .hashing import compute_content_key


IMAGE_DEFAULT_EXTENSION = ".png"
VIDEO_DEFAULT_EXTENSION = ".mp4"

# Videos pulled through ffmpeg are always remuxed into mp4
STREAM_VIDEO_EXTENSION = ".mp4"

PLAYLIST_MARKER = "m3u8"
PLAYLIST_EXTENSION = ".m3u8"

FILENAME_PATTERN = re.compile(r"^([a-f0-9]{64})(\.\w{1,10})?$")


@dataclass(frozen=True)
class ParsedFilename:
    """Parsed components of a media filename."""
    content_key: str
    extension: str     # With dot, may be empty


def is_playlist_url(url: str) -> bool:
    """Check if a URL points at an HLS playlist."""
    return PLAYLIST_MARKER in url


def get_extension_from_url(url: str) -> str:
    """
    Extract the file extension from a URL path.

    Args:
        url: The URL to parse.

    Returns:
        Extension with leading dot, case kept as in the URL, or "" if the
        last path segment carries none.
    """
    path = urlparse(url).path
    last_segment = path.rsplit("/", 1)[-1]

    if "." in last_segment:
        ext = last_segment.rsplit(".", 1)[-1]
        # Validate it looks like an extension
        if 1 <= len(ext) <= 10 and ext.isalnum():
            return f".{ext}"

    return ""


def resolve_extension(url: str, kind: MediaKind) -> str:
    """
    Resolve the extension for a directly fetched media file.

    Order: the URL's own extension, then the playlist extension if the URL
    looks like an HLS manifest, then the default for the media kind.
    """
    ext = get_extension_from_url(url)
    if ext:
        return ext
    if is_playlist_url(url):
        return PLAYLIST_EXTENSION
    if kind == MediaKind.IMAGE:
        return IMAGE_DEFAULT_EXTENSION
    return VIDEO_DEFAULT_EXTENSION


def generate_media_filename(content_key: str, extension: str) -> str:
    """
    Generate a media filename following the naming convention.

    Raises:
        ValueError: If content_key is not a 64-character hex digest.
    """
    key = content_key.lower()
    if not re.match(r"^[a-f0-9]{64}$", key):
        raise ValueError(f"content_key must be a 64-character hex digest, got {content_key!r}")

    if extension and not extension.startswith("."):
        extension = f".{extension}"

    return f"{key}{extension}"


def filename_for_reference(url: str, kind: MediaKind, *, streamed: bool = False) -> str:
    """Content-addressed filename for a media URL."""
    extension = STREAM_VIDEO_EXTENSION if streamed else resolve_extension(url, kind)
    return generate_media_filename(compute_content_key(url), extension)


def parse_media_filename(filename: str) -> Optional[ParsedFilename]:
    """
    Parse a media filename into its components.

    Returns:
        ParsedFilename if the name follows the convention, None otherwise
        (e.g. files placed in the directory by hand).
    """
    match = FILENAME_PATTERN.match(filename)
    if not match:
        return None
    return ParsedFilename(content_key=match.group(1), extension=match.group(2) or "")
