"""
Process wiring: settings -> client, cache, retriever, notifier, walker.

`build_archiver` performs every startup step that can fail fatally (storage
directory, login, cache load and reconciliation) so the caller can report
one error and exit before any media is touched. `run` then executes the
backfill and watch phases in order on the calling thread.
"""

from __future__ import annotations

import functools
import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from .downloader.cache import ContentCache
from .downloader.retriever import FetchFunc, MediaRetriever, TranscodeFunc
from .downloader.transcode import stream_copy
from .feed.client import BlueskyClient
from .health.api import start_health_server
from .net.http import open_media_stream
from .net.throttle import Throttle
from .notify.ntfy import NtfyNotifier
from .pipeline.walker import BackfillReport, FeedWalker
from .settings.models import PAGE_SIZE, Settings


STARTUP_MESSAGE = "LikeLocker started"

logger = logging.getLogger(__name__)


class StartupError(Exception):
    """The archiver cannot start with the given settings."""


@dataclass
class Archiver:
    settings: Settings
    client: BlueskyClient
    cache: ContentCache
    retriever: MediaRetriever
    notifier: NtfyNotifier
    walker: FeedWalker


def build_archiver(
    settings: Settings,
    *,
    client: Optional[BlueskyClient] = None,
    fetch_func: Optional[FetchFunc] = None,
    transcode_func: Optional[TranscodeFunc] = None,
    notifier: Optional[NtfyNotifier] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> Archiver:
    """
    Create and initialize every component.

    Raises:
        StartupError: If the download directory cannot be created.
        AuthenticationError: If login is rejected.
        CacheLoadError: If the cache listing or the directory cannot be read.
    """
    try:
        settings.download_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise StartupError(f"failed to create download directory {settings.download_dir}: {exc}") from exc

    if client is None:
        client = BlueskyClient(
            service=settings.service,
            timeout_s=settings.http_timeout_s,
            retry=settings.retry,
            throttle=Throttle(settings.throttle),
        )
    logger.info("Authenticating bsky user %s", settings.credentials.handle)
    client.create_session(settings.credentials.handle, settings.credentials.app_password)

    cache = ContentCache(cache_file=settings.cache_file, storage_dir=settings.download_dir)
    cache.load()
    cache.reconcile_with_storage()

    if fetch_func is None:
        fetch_func = functools.partial(
            open_media_stream,
            timeout_s=settings.http_timeout_s,
            retry=settings.retry,
        )
    if transcode_func is None:
        transcode_func = functools.partial(
            stream_copy,
            binary=settings.ffmpeg_binary,
            timeout_s=settings.ffmpeg_timeout_s,
        )
    retriever = MediaRetriever(
        cache=cache,
        download_dir=settings.download_dir,
        fetch_func=fetch_func,
        transcode_func=transcode_func,
    )

    if notifier is None:
        notifier = NtfyNotifier(
            settings.ntfy_topic,
            server=settings.ntfy_server,
        )

    walker = FeedWalker(
        client=client,
        retriever=retriever,
        actor=settings.credentials.handle,
        page_size=PAGE_SIZE,
        notifier=notifier,
        sleep=sleep,
    )
    return Archiver(
        settings=settings,
        client=client,
        cache=cache,
        retriever=retriever,
        notifier=notifier,
        walker=walker,
    )


def run(
    archiver: Archiver,
    *,
    backfill_only: bool = False,
    max_cycles: Optional[int] = None,
) -> Optional[BackfillReport]:
    """
    Announce startup, then backfill (unless watch-only) and watch (unless
    backfill-only).

    Raises:
        StartupError: If backfill-only is combined with watch-only.
        FeedRequestError: From the backfill pass or the watch seed.
    """
    settings = archiver.settings
    if backfill_only and settings.watch_only:
        raise StartupError("--backfill-only cannot be combined with watch-only mode")

    if archiver.notifier.enabled:
        logger.info("Notifications enabled via %s", archiver.notifier.url)
        archiver.notifier.send(STARTUP_MESSAGE)

    if settings.health_port is not None:
        start_health_server(settings.health_port)

    report: Optional[BackfillReport] = None
    if not settings.watch_only:
        report = archiver.walker.backfill(settings.download_limit)

    if not backfill_only:
        archiver.walker.watch(settings.poll_interval_s, max_cycles=max_cycles)

    logger.info("Done! Retrieval stats: %s", archiver.retriever.stats.to_dict())
    return report
