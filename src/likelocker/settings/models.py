from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from ..feed.client import DEFAULT_SERVICE
from ..net.retry import RetryConfig
from ..net.throttle import ThrottleConfig


DEFAULT_DOWNLOAD_DIR = "./downloaded_files"
DEFAULT_CACHE_FILE = "./downloaded_cache.txt"
DEFAULT_DOWNLOAD_LIMIT = 100
DEFAULT_POLL_INTERVAL_MINUTES = 30
DEFAULT_NTFY_SERVER = "https://ntfy.sh"
DEFAULT_HTTP_TIMEOUT_S = 60.0
DEFAULT_FFMPEG_BINARY = "ffmpeg"
DEFAULT_LOG_LEVEL = "INFO"

# Likes fetched per feed request, in both backfill and watch mode
PAGE_SIZE = 50


@dataclass(frozen=True)
class Credentials:
    handle: str
    app_password: str

    def is_complete(self) -> bool:
        return bool(self.handle.strip()) and bool(self.app_password.strip())

    def __repr__(self) -> str:
        return f"Credentials(handle={self.handle!r}, app_password='***')"


@dataclass
class Settings:
    credentials: Credentials
    download_dir: Path = Path(DEFAULT_DOWNLOAD_DIR)
    cache_file: Path = Path(DEFAULT_CACHE_FILE)
    download_limit: int = DEFAULT_DOWNLOAD_LIMIT
    poll_interval_minutes: int = DEFAULT_POLL_INTERVAL_MINUTES
    watch_only: bool = False
    service: str = DEFAULT_SERVICE
    ntfy_topic: Optional[str] = None
    ntfy_server: str = DEFAULT_NTFY_SERVER
    health_port: Optional[int] = None
    http_timeout_s: float = DEFAULT_HTTP_TIMEOUT_S
    ffmpeg_binary: str = DEFAULT_FFMPEG_BINARY
    ffmpeg_timeout_s: Optional[float] = None
    log_level: str = DEFAULT_LOG_LEVEL
    retry: RetryConfig = field(default_factory=RetryConfig)
    throttle: ThrottleConfig = field(default_factory=ThrottleConfig)

    @property
    def poll_interval_s(self) -> float:
        return float(self.poll_interval_minutes) * 60.0

    @property
    def notifications_enabled(self) -> bool:
        return bool(self.ntfy_topic)

    def to_log_dict(self) -> dict[str, Any]:
        """Settings summary safe to log (no secrets)."""
        return {
            "handle": self.credentials.handle,
            "service": self.service,
            "download_dir": str(self.download_dir),
            "cache_file": str(self.cache_file),
            "download_limit": self.download_limit,
            "poll_interval_minutes": self.poll_interval_minutes,
            "watch_only": self.watch_only,
            "notifications": self.notifications_enabled,
            "health_port": self.health_port,
        }
