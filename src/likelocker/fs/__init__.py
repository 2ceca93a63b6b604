"""
File system conventions for media storage.

Provides:
- Content keys derived from source URLs (hashing.py)
- File naming and extension resolution (naming.py)
"""

from .hashing import compute_content_key
from .naming import (
    filename_for_reference,
    generate_media_filename,
    is_playlist_url,
    parse_media_filename,
    resolve_extension,
)

__all__ = [
    "compute_content_key",
    "filename_for_reference",
    "generate_media_filename",
    "is_playlist_url",
    "parse_media_filename",
    "resolve_extension",
]
