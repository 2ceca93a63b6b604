"""
Persistent "already downloaded" cache.

The cache is a set of filenames (<contentKey><ext>) backed by a plain text
listing, one filename per line. It is the union of:

- the listing loaded at startup,
- the files found in the storage directory at startup (self-healing when the
  listing was lost or files were dropped in by hand),
- filenames recorded after each successful retrieval during the run.

The set only grows while the process runs. Every insertion rewrites the whole
listing (temp file + replace). If the listing and the directory disagree, the
directory wins at the next startup.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

from ..fs.naming import parse_media_filename


logger = logging.getLogger(__name__)


class CacheLoadError(Exception):
    """The persisted listing or the storage directory could not be read."""


class ContentCache:
    """
    Set of already-retrieved media filenames with a durable listing.

    Usage:
        cache = ContentCache(cache_file=Path("downloaded_cache.txt"),
                             storage_dir=Path("downloaded_files"))
        cache.load()
        cache.reconcile_with_storage()

        if not cache.contains(filename):
            ...download...
            cache.record(filename)
    """

    def __init__(self, *, cache_file: Path, storage_dir: Path) -> None:
        self._cache_file = Path(cache_file)
        self._storage_dir = Path(storage_dir)
        self._filenames: set[str] = set()

    @property
    def cache_file(self) -> Path:
        return self._cache_file

    @property
    def storage_dir(self) -> Path:
        return self._storage_dir

    def __len__(self) -> int:
        return len(self._filenames)

    def __contains__(self, filename: object) -> bool:
        return isinstance(filename, str) and filename in self._filenames

    def contains(self, filename: str) -> bool:
        """Exact membership test."""
        return filename in self._filenames

    def load(self) -> int:
        """
        Load the persisted listing into memory.

        A missing listing means a first run and is not an error.

        Returns:
            Number of entries read from the listing.

        Raises:
            CacheLoadError: If the listing exists but cannot be read/decoded.
        """
        try:
            text = self._cache_file.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.info("No cache file found at %s, starting fresh", self._cache_file)
            return 0
        except (OSError, UnicodeDecodeError) as exc:
            raise CacheLoadError(f"failed to load cache {self._cache_file}: {exc}") from exc

        count = 0
        for line in text.splitlines():
            filename = line.strip()
            if filename:
                self._filenames.add(filename)
                count += 1

        logger.info("Cached %d files already downloaded", count)
        return count

    def reconcile_with_storage(self) -> int:
        """
        Add every file already present in the storage directory to the cache.

        Only direct, regular files count; subdirectories and hidden files
        (in-flight partial downloads are hidden) are ignored. If anything was
        added, the listing is rewritten immediately.

        Returns:
            Number of filenames added.

        Raises:
            CacheLoadError: If the directory cannot be listed or the listing
                cannot be rewritten.
        """
        try:
            entries = list(self._storage_dir.iterdir())
        except OSError as exc:
            raise CacheLoadError(f"failed to read download directory {self._storage_dir}: {exc}") from exc

        added = 0
        foreign = 0
        for entry in entries:
            if not entry.is_file():
                continue
            if entry.name.startswith("."):
                continue
            if entry.name in self._filenames:
                continue
            self._filenames.add(entry.name)
            added += 1
            if parse_media_filename(entry.name) is None:
                foreign += 1

        if added:
            logger.info("Synced %d files from directory to cache", added)
            if foreign:
                logger.debug("%d synced files do not follow the <key><ext> naming", foreign)
            try:
                self.save()
            except OSError as exc:
                raise CacheLoadError(f"failed to save cache after sync: {exc}") from exc

        return added

    def record(self, filename: str) -> None:
        """
        Mark a filename as retrieved and persist the listing.

        The in-memory entry is kept even if persisting fails.

        Raises:
            OSError: If the listing could not be written.
        """
        self._filenames.add(filename)
        self.save()

    def save(self) -> None:
        """Rewrite the listing with the current set (temp file + replace)."""
        payload = "".join(f"{name}\n" for name in sorted(self._filenames))

        parent = self._cache_file.parent
        parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path_str = tempfile.mkstemp(
            dir=str(parent),
            prefix=f".{self._cache_file.name}.",
            suffix=".tmp",
        )
        tmp_path = Path(tmp_path_str)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self._cache_file)
        finally:
            try:
                tmp_path.unlink()
            except FileNotFoundError:
                pass

    def snapshot(self) -> frozenset[str]:
        """Immutable view of the current entries."""
        return frozenset(self._filenames)
