"""
Feed walker: turns the liked-posts feed into retrieval calls.

Two modes share the same embed extraction and retriever:

- backfill: page through the whole feed newest-first until the download
  budget is spent or the feed runs out. Only new files count against the
  budget; cache hits are free.
- watch: remember what the first page looked like, then poll that page on an
  interval and retrieve everything on posts not seen before. No budget.

Everything runs on the calling thread. Feed errors abort a backfill and are
survived by the watch loop; per-file failures never stop either mode.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Iterable, Optional

from ..downloader.retriever import MediaRetriever, RetrievalResult
from ..feed.client import BlueskyClient, FeedRequestError
from ..feed.embeds import extract_media_references
from ..feed.models import LikedItem, LikesPage, MediaReference
from ..stats.metrics import compute_avg_speed, compute_runtime_s, format_runtime


DEFAULT_PAGE_SIZE = 50

logger = logging.getLogger(__name__)


class StopReason(str, Enum):
    """Why a backfill pass ended."""
    BUDGET_EXHAUSTED = "budget_exhausted"
    FEED_EXHAUSTED = "feed_exhausted"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class BackfillReport:
    budget: int
    downloaded: int = 0
    pages: int = 0
    items_processed: int = 0
    cache_hits: int = 0
    failed: int = 0
    stop_reason: Optional[StopReason] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    @property
    def runtime_s(self) -> float:
        return compute_runtime_s(self.started_at, self.finished_at)

    @property
    def rate(self) -> float:
        """Files handled per second (new files plus cache hits)."""
        return compute_avg_speed(self.downloaded, self.cache_hits, self.runtime_s)


@dataclass
class PollReport:
    new_items: int = 0
    downloaded: int = 0
    failed: int = 0
    notifications: int = 0


@dataclass
class SeenItems:
    """Post URIs observed during this process lifetime. Only grows."""
    _uris: set[str] = field(default_factory=set)

    def __len__(self) -> int:
        return len(self._uris)

    def __contains__(self, uri: object) -> bool:
        return uri in self._uris

    def add(self, uri: str) -> bool:
        """Mark `uri` seen. Returns True if it was new."""
        if uri in self._uris:
            return False
        self._uris.add(uri)
        return True

    def update(self, uris: Iterable[str]) -> int:
        return sum(1 for uri in uris if self.add(uri))


class FeedWalker:
    """
    Drives a MediaRetriever from one actor's liked posts.

    Usage:
        walker = FeedWalker(client=client, retriever=retriever, actor="alice.bsky.social")
        report = walker.backfill(100)
        walker.watch(30 * 60)
    """

    def __init__(
        self,
        *,
        client: BlueskyClient,
        retriever: MediaRetriever,
        actor: str,
        page_size: int = DEFAULT_PAGE_SIZE,
        notifier: Optional[Any] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._client = client
        self._retriever = retriever
        self._actor = actor
        self._page_size = page_size
        self._notifier = notifier
        self._sleep = sleep
        self._seen = SeenItems()

    @property
    def seen(self) -> SeenItems:
        return self._seen

    def _fetch_page(self, cursor: Optional[str] = None) -> LikesPage:
        return self._client.get_actor_likes(self._actor, cursor=cursor, limit=self._page_size)

    def _retrieve(self, item: LikedItem, reference: MediaReference) -> RetrievalResult:
        result = self._retriever.retrieve(reference)
        if result.failed:
            logger.error(
                "Error downloading %s %s from %s: %s",
                reference.kind.value,
                reference.source_url,
                item.uri,
                result.error,
            )
        return result

    # ------------------------------------------------------------------
    # Backfill
    # ------------------------------------------------------------------

    def backfill(self, budget: int) -> BackfillReport:
        """
        Walk the feed until `budget` new files exist or the feed ends.

        Raises:
            FeedRequestError: A page could not be fetched; the pass is aborted.
        """
        report = BackfillReport(budget=budget, started_at=_utcnow())
        cursor: Optional[str] = None
        logger.info("Fetching likes and downloading media (limit: %d files)", budget)

        while report.downloaded < budget:
            page = self._fetch_page(cursor)
            report.pages += 1
            if page.is_empty:
                report.stop_reason = StopReason.FEED_EXHAUSTED
                break

            if not self._process_backfill_page(page, report):
                report.stop_reason = StopReason.BUDGET_EXHAUSTED
                break

            if not page.cursor:
                report.stop_reason = StopReason.FEED_EXHAUSTED
                break
            cursor = page.cursor
            logger.debug(
                "Processed page %d (downloaded: %d/%d)", report.pages, report.downloaded, budget
            )

        if report.stop_reason is None:
            report.stop_reason = StopReason.BUDGET_EXHAUSTED
        report.finished_at = _utcnow()

        if report.stop_reason == StopReason.BUDGET_EXHAUSTED:
            logger.info("Reached download limit of %d files", budget)
        logger.info(
            "Backfill finished: %d new files, %d cache hits, %d failed, %d pages in %s (%.2f files/s)",
            report.downloaded,
            report.cache_hits,
            report.failed,
            report.pages,
            format_runtime(report.runtime_s),
            report.rate,
        )
        return report

    def _process_backfill_page(self, page: LikesPage, report: BackfillReport) -> bool:
        """Returns False once the budget is spent."""
        for item in page.items:
            for reference in extract_media_references(item.embed):
                if report.downloaded >= report.budget:
                    return False
                result = self._retrieve(item, reference)
                report.downloaded += result.count
                if result.cache_hit:
                    report.cache_hits += 1
                elif result.failed:
                    report.failed += 1
            report.items_processed += 1
        return True

    # ------------------------------------------------------------------
    # Watch
    # ------------------------------------------------------------------

    def seed(self) -> int:
        """
        Mark every post on the first page as seen.

        Raises:
            FeedRequestError: Propagated; watching cannot start without a baseline.
        """
        logger.info("Loading existing likes")
        page = self._fetch_page()
        self._seen.update(item.uri for item in page.items)
        logger.info("Tracking %d existing likes. Watching for new ones", len(self._seen))
        return len(self._seen)

    def poll_once(self) -> PollReport:
        """
        Fetch the first page and retrieve media of every unseen post.

        Raises:
            FeedRequestError: The page could not be fetched.
        """
        report = PollReport()
        page = self._fetch_page()

        for item in page.items:
            if not self._seen.add(item.uri):
                continue
            report.new_items += 1
            logger.info("New like: %s", item.uri)

            downloaded = 0
            for reference in extract_media_references(item.embed):
                result = self._retrieve(item, reference)
                downloaded += result.count
                if result.failed:
                    report.failed += 1

            report.downloaded += downloaded
            if downloaded > 0:
                logger.info("Downloaded %d file(s)", downloaded)
                if self._notify(f"Downloaded {downloaded} file(s) from new like"):
                    report.notifications += 1

        return report

    def watch(self, interval_s: float, *, max_cycles: Optional[int] = None) -> int:
        """
        Seed, then poll every `interval_s` seconds.

        Runs forever unless `max_cycles` is given. Returns the number of
        completed cycles.

        Raises:
            FeedRequestError: Only from the initial seed.
        """
        self.seed()

        cycles = 0
        while max_cycles is None or cycles < max_cycles:
            self._sleep(interval_s)
            try:
                self.poll_once()
            except FeedRequestError as exc:
                logger.error("Error fetching likes: %s", exc)
            cycles += 1
        return cycles

    def _notify(self, message: str) -> bool:
        if self._notifier is None:
            return False
        return bool(self._notifier.send(message))
