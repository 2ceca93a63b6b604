"""
Content-key hashing for media deduplication.

A content key is the SHA-256 of the raw source URL bytes, not of the
downloaded media. Byte-identical URLs always map to the same key; the same
media served from two different URLs gets two keys.
"""

from __future__ import annotations

import hashlib


# Hash algorithm to use
HASH_ALGORITHM = "sha256"

# Length of a hex content key
CONTENT_KEY_LENGTH = 64


def compute_content_key(source_url: str) -> str:
    """
    Compute the content key for a media source URL.

    Args:
        source_url: The URL exactly as received from the feed.

    Returns:
        Lowercase hexadecimal hash string (64 characters).
    """
    return hashlib.new(HASH_ALGORITHM, source_url.encode("utf-8")).hexdigest()