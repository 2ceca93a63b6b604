"""
Bluesky liked-posts feed.

Provides:
- XRPC client for sessions and getActorLikes (client.py)
- Closed-set embed parsing and media extraction (embeds.py)
- Feed data model (models.py)
"""

from .client import AuthenticationError, BlueskyClient, FeedRequestError, Session, XrpcError
from .embeds import extract_media_references, parse_embed, parse_likes_page
from .models import LikedItem, LikesPage, MediaKind, MediaReference

__all__ = [
    "AuthenticationError",
    "BlueskyClient",
    "FeedRequestError",
    "Session",
    "XrpcError",
    "extract_media_references",
    "parse_embed",
    "parse_likes_page",
    "LikedItem",
    "LikesPage",
    "MediaKind",
    "MediaReference",
]
