"""
Media retrieval with a persistent content cache.

Provides:
- Filename cache reconciled against the storage directory (cache.py)
- Direct and ffmpeg-backed retrieval (retriever.py, transcode.py)
"""

from .cache import CacheLoadError, ContentCache
from .retriever import MediaRetriever, RetrievalResult, RetrievalStats, RetrievalStatus
from .transcode import TranscodeError, stream_copy

__all__ = [
    "CacheLoadError",
    "ContentCache",
    "MediaRetriever",
    "RetrievalResult",
    "RetrievalStats",
    "RetrievalStatus",
    "TranscodeError",
    "stream_copy",
]
