"""
Build Settings from environment variables.

Variables may also come from a `.env` file in the working directory; values
already present in the process environment take precedence over the file.

Every problem here is fatal at startup: the caller reports ConfigError and
exits non-zero before anything touches the network or the disk.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Mapping, Optional
from urllib.parse import urlparse

from dotenv import dotenv_values

from ..feed.client import DEFAULT_SERVICE
from ..net.retry import RetryConfig
from ..net.throttle import ThrottleConfig
from ..validators.handle import validate_handle
from .models import (
    DEFAULT_CACHE_FILE,
    DEFAULT_DOWNLOAD_DIR,
    DEFAULT_DOWNLOAD_LIMIT,
    DEFAULT_FFMPEG_BINARY,
    DEFAULT_HTTP_TIMEOUT_S,
    DEFAULT_LOG_LEVEL,
    DEFAULT_NTFY_SERVER,
    DEFAULT_POLL_INTERVAL_MINUTES,
    Credentials,
    Settings,
)


DEFAULT_ENV_FILE = ".env"

TRUE_VALUES = frozenset({"true", "1", "yes"})
LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


class ConfigError(Exception):
    """Configuration is missing or malformed."""


def read_environment(
    env_file: Optional[str] = DEFAULT_ENV_FILE,
    environ: Optional[Mapping[str, str]] = None,
) -> dict[str, str]:
    """
    Merge an optional dotenv file under the process environment.

    A missing file is not an error. Keys declared without a value are ignored.

    Raises:
        ConfigError: If the file exists but cannot be read.
    """
    merged: dict[str, str] = {}
    if env_file:
        try:
            file_values = dotenv_values(env_file)
        except (OSError, UnicodeDecodeError) as exc:
            raise ConfigError(f"Cannot read {env_file}: {exc}") from exc
        merged.update({key: value for key, value in file_values.items() if value is not None})
    merged.update(os.environ if environ is None else environ)
    return merged


def _get(environ: Mapping[str, str], name: str) -> Optional[str]:
    value = environ.get(name)
    if value is None:
        return None
    value = value.strip()
    return value or None


def _parse_int(
    environ: Mapping[str, str],
    name: str,
    default: Optional[int],
    *,
    minimum: Optional[int] = None,
    maximum: Optional[int] = None,
) -> Optional[int]:
    raw = _get(environ, name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f"Invalid {name} value: {raw!r} is not an integer") from None
    if minimum is not None and value < minimum:
        raise ConfigError(f"Invalid {name} value: must be >= {minimum}, got {value}")
    if maximum is not None and value > maximum:
        raise ConfigError(f"Invalid {name} value: must be <= {maximum}, got {value}")
    return value


def _parse_float(
    environ: Mapping[str, str],
    name: str,
    default: Optional[float],
    *,
    minimum: float = 0.0,
    allow_zero: bool = False,
) -> Optional[float]:
    raw = _get(environ, name)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ConfigError(f"Invalid {name} value: {raw!r} is not a number") from None
    if value < minimum or (value == minimum and not allow_zero):
        bound = ">=" if allow_zero else ">"
        raise ConfigError(f"Invalid {name} value: must be {bound} {minimum:g}, got {value:g}")
    return value


def _parse_url(environ: Mapping[str, str], name: str, default: str) -> str:
    raw = _get(environ, name)
    if raw is None:
        return default
    parsed = urlparse(raw)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ConfigError(f"Invalid {name} value: {raw!r} is not an http(s) URL")
    return raw


def load_settings(environ: Mapping[str, str], *, watch_flag: bool = False) -> Settings:
    """
    Read configuration from an environment mapping.

    Args:
        environ: Usually os.environ.
        watch_flag: True when --watch was passed; same effect as WATCH_ONLY=true.

    Raises:
        ConfigError: Missing credentials, invalid handle, malformed numbers.
    """
    handle = _get(environ, "BSKY_HANDLE")
    password = _get(environ, "BSKY_PASSWORD")
    if not handle or not password:
        raise ConfigError("BSKY_HANDLE and BSKY_PASSWORD must be set in the environment or .env file")

    checked = validate_handle(handle)
    if not checked:
        raise ConfigError(f"Invalid BSKY_HANDLE: {checked.error}")

    watch_env = (_get(environ, "WATCH_ONLY") or "").lower() in TRUE_VALUES

    log_level = (_get(environ, "LOG_LEVEL") or DEFAULT_LOG_LEVEL).upper()
    if log_level not in LOG_LEVELS:
        raise ConfigError(f"Invalid LOG_LEVEL value: {log_level!r}")

    retry = RetryConfig(
        max_retries=_parse_int(environ, "RETRY_MAX", RetryConfig().max_retries, minimum=0),
    )
    throttle = ThrottleConfig(
        min_interval_s=_parse_float(
            environ,
            "FEED_MIN_INTERVAL_S",
            ThrottleConfig().min_interval_s,
            allow_zero=True,
        ),
    )

    return Settings(
        credentials=Credentials(handle=checked.handle or handle, app_password=password),
        download_dir=Path(_get(environ, "DOWNLOAD_DIR") or DEFAULT_DOWNLOAD_DIR),
        cache_file=Path(_get(environ, "CACHE_FILE") or DEFAULT_CACHE_FILE),
        download_limit=_parse_int(environ, "DOWNLOAD_LIMIT", DEFAULT_DOWNLOAD_LIMIT, minimum=0),
        poll_interval_minutes=_parse_int(
            environ,
            "POLL_INTERVAL_MINUTES",
            DEFAULT_POLL_INTERVAL_MINUTES,
            minimum=1,
        ),
        watch_only=bool(watch_flag or watch_env),
        service=_parse_url(environ, "BSKY_SERVICE", DEFAULT_SERVICE),
        ntfy_topic=_get(environ, "NTFY_TOPIC"),
        ntfy_server=_parse_url(environ, "NTFY_SERVER", DEFAULT_NTFY_SERVER),
        health_port=_parse_int(environ, "HEALTH_PORT", None, minimum=1, maximum=65535),
        http_timeout_s=_parse_float(environ, "HTTP_TIMEOUT_S", DEFAULT_HTTP_TIMEOUT_S),
        ffmpeg_binary=_get(environ, "FFMPEG_BIN") or DEFAULT_FFMPEG_BINARY,
        ffmpeg_timeout_s=_parse_float(environ, "FFMPEG_TIMEOUT_S", None),
        log_level=log_level,
        retry=retry,
        throttle=throttle,
    )
