"""
likelocker: archive media from Bluesky likes.

Provides:
- Content cache and media retrieval (downloader/)
- Bluesky likes feed client and embed parsing (feed/)
- Backfill and watch loops (pipeline/)
"""

__version__ = "0.1.0"
