"""
Media retrieval with content-addressed naming and cache short-circuit.

Two strategies, picked per reference:
- direct: HTTP GET streamed into <storage>/<key><ext>
- streamed video: ffmpeg stream copy of an HLS playlist into <storage>/<key>.mp4

Every call returns a RetrievalResult; nothing raises to the caller. A cache
hit is SKIPPED (cache_hit=True), an empty URL is SKIPPED (nothing to do), a
new file is RETRIEVED, and any fetch/write/ffmpeg problem is FAILED.
"""

from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Optional

from ..feed.models import MediaKind, MediaReference
from ..fs.naming import filename_for_reference, is_playlist_url
from ..net.http import open_media_stream
from .cache import ContentCache
from .transcode import stream_copy


# Buffer size for streaming response bodies to disk
BUFFER_SIZE = 65536  # 64 KB

# url -> response (context manager with .read(n))
FetchFunc = Callable[[str], Any]
# (playlist_url, output_path) -> None, raises on failure
TranscodeFunc = Callable[[str, Path], None]

logger = logging.getLogger(__name__)


class RetrievalStatus(str, Enum):
    """Outcome of a single retrieval."""
    RETRIEVED = "retrieved"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class RetrievalResult:
    """Result of retrieving one media reference."""
    status: RetrievalStatus
    reference: MediaReference

    # Set whenever a filename could be resolved
    filename: Optional[str] = None
    path: Optional[Path] = None

    # Set on skip: True for "already have it", False for "nothing to do"
    cache_hit: bool = False

    # Set on success
    bytes_written: int = 0

    # Set on failure
    error: Optional[str] = None

    @property
    def count(self) -> int:
        """New files produced by this call (0 or 1)."""
        return 1 if self.status == RetrievalStatus.RETRIEVED else 0

    @property
    def failed(self) -> bool:
        return self.status == RetrievalStatus.FAILED


@dataclass
class RetrievalStats:
    """Counters for one process run."""
    images_retrieved: int = 0
    videos_retrieved: int = 0
    cache_hits: int = 0
    skipped_empty: int = 0
    failed: int = 0
    total_bytes: int = 0

    def increment(self, result: RetrievalResult) -> None:
        """Update stats based on a retrieval result."""
        if result.status == RetrievalStatus.RETRIEVED:
            if result.reference.kind == MediaKind.IMAGE:
                self.images_retrieved += 1
            else:
                self.videos_retrieved += 1
            self.total_bytes += result.bytes_written
        elif result.status == RetrievalStatus.SKIPPED:
            if result.cache_hit:
                self.cache_hits += 1
            else:
                self.skipped_empty += 1
        elif result.status == RetrievalStatus.FAILED:
            self.failed += 1

    @property
    def total_retrieved(self) -> int:
        return self.images_retrieved + self.videos_retrieved

    def to_dict(self) -> dict:
        return {
            "images_retrieved": self.images_retrieved,
            "videos_retrieved": self.videos_retrieved,
            "cache_hits": self.cache_hits,
            "skipped_empty": self.skipped_empty,
            "failed": self.failed,
            "total_bytes": self.total_bytes,
        }


class MediaRetriever:
    """
    Retrieves media references into a flat storage directory.

    Usage:
        retriever = MediaRetriever(cache=cache, download_dir=Path("downloaded_files"))
        result = retriever.retrieve(MediaReference(MediaKind.IMAGE, url))
        if result.failed:
            print(result.error)
    """

    def __init__(
        self,
        *,
        cache: ContentCache,
        download_dir: Path,
        fetch_func: FetchFunc = open_media_stream,
        transcode_func: TranscodeFunc = stream_copy,
    ) -> None:
        self._cache = cache
        self._download_dir = Path(download_dir)
        self._fetch_func = fetch_func
        self._transcode_func = transcode_func
        self._stats = RetrievalStats()

    @property
    def stats(self) -> RetrievalStats:
        return self._stats

    @property
    def cache(self) -> ContentCache:
        return self._cache

    def retrieve(self, reference: MediaReference) -> RetrievalResult:
        """
        Retrieve one media reference unless it is already cached.

        Returns:
            RetrievalResult; failures are reported, never raised.
        """
        if not reference.source_url:
            result = RetrievalResult(status=RetrievalStatus.SKIPPED, reference=reference)
        elif reference.kind == MediaKind.VIDEO and is_playlist_url(reference.source_url):
            result = self._retrieve_stream(reference)
        else:
            result = self._retrieve_direct(reference)

        self._stats.increment(result)
        return result

    def _cache_hit(self, reference: MediaReference, filename: str) -> Optional[RetrievalResult]:
        if not self._cache.contains(filename):
            return None
        logger.info("Cache hit: %s", filename)
        return RetrievalResult(
            status=RetrievalStatus.SKIPPED,
            reference=reference,
            filename=filename,
            path=self._download_dir / filename,
            cache_hit=True,
        )

    def _retrieve_direct(self, reference: MediaReference) -> RetrievalResult:
        url = reference.source_url
        filename = filename_for_reference(url, reference.kind)
        hit = self._cache_hit(reference, filename)
        if hit is not None:
            return hit

        final_path = self._download_dir / filename
        logger.info("Downloading: %s", url)
        try:
            with self._fetch_func(url) as resp:
                written = self._stream_to_file(resp, final_path)
        except Exception as exc:
            return RetrievalResult(
                status=RetrievalStatus.FAILED,
                reference=reference,
                filename=filename,
                path=final_path,
                error=str(exc) or exc.__class__.__name__,
            )

        self._record(filename)
        logger.info("Saved: %s", filename)
        return RetrievalResult(
            status=RetrievalStatus.RETRIEVED,
            reference=reference,
            filename=filename,
            path=final_path,
            bytes_written=written,
        )

    def _retrieve_stream(self, reference: MediaReference) -> RetrievalResult:
        url = reference.source_url
        filename = filename_for_reference(url, reference.kind, streamed=True)
        hit = self._cache_hit(reference, filename)
        if hit is not None:
            return hit

        output_path = self._download_dir / filename
        logger.info("Downloading video via ffmpeg: %s", url)
        try:
            self._transcode_func(url, output_path)
        except Exception as exc:
            _remove_quietly(output_path)
            return RetrievalResult(
                status=RetrievalStatus.FAILED,
                reference=reference,
                filename=filename,
                path=output_path,
                error=str(exc) or exc.__class__.__name__,
            )

        self._record(filename)
        logger.info("Saved: %s", filename)
        try:
            size = output_path.stat().st_size
        except OSError:
            size = 0
        return RetrievalResult(
            status=RetrievalStatus.RETRIEVED,
            reference=reference,
            filename=filename,
            path=output_path,
            bytes_written=size,
        )

    def _record(self, filename: str) -> None:
        # Non-fatal: reconciliation re-absorbs the file on the next run.
        try:
            self._cache.record(filename)
        except OSError as exc:
            logger.warning("Failed to update cache for %s: %s", filename, exc)

    def _stream_to_file(self, resp: Any, final_path: Path) -> int:
        """Copy a response body to final_path via a hidden temp file."""
        final_path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path_str = tempfile.mkstemp(
            dir=str(final_path.parent),
            prefix=f".{final_path.name}.",
            suffix=".tmp",
        )
        tmp_path = Path(tmp_path_str)
        written = 0
        try:
            with os.fdopen(fd, "wb") as f:
                while True:
                    chunk = resp.read(BUFFER_SIZE)
                    if not chunk:
                        break
                    f.write(chunk)
                    written += len(chunk)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, final_path)
        finally:
            _remove_quietly(tmp_path)
        return written


def _remove_quietly(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError as exc:
        logger.warning("Could not remove partial file %s: %s", path, exc)
