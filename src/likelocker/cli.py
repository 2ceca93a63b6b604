from __future__ import annotations

import argparse
import logging
import sys
from typing import Mapping, Optional, Sequence

from .app import StartupError, build_archiver, run
from .downloader.cache import CacheLoadError
from .feed.client import AuthenticationError, FeedRequestError
from .settings.env import DEFAULT_ENV_FILE, LOG_LEVELS, ConfigError, load_settings, read_environment


EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130

LOG_FORMAT = "%(asctime)s %(levelname)-7s [%(name)s] %(message)s"
LOG_DATEFMT = "%H:%M:%S"

logger = logging.getLogger("likelocker")


def configure_logging(level: str = "INFO") -> None:
    """One stream handler for the archiver and uvicorn."""
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT))

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers = [handler]

    for name in ("uvicorn", "uvicorn.access", "uvicorn.error"):
        server_logger = logging.getLogger(name)
        server_logger.handlers = [handler]
        server_logger.propagate = False


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="likelocker",
        description="Archive images and videos from your Bluesky likes.",
    )
    parser.add_argument(
        "--watch",
        action="store_true",
        help="Skip the backfill and only watch for new likes (same as WATCH_ONLY=true)",
    )
    parser.add_argument(
        "--backfill-only",
        action="store_true",
        help="Run the backfill and exit without watching",
    )
    parser.add_argument(
        "--log-level",
        choices=sorted(LOG_LEVELS),
        type=str.upper,
        default=None,
        help="Override LOG_LEVEL",
    )
    parser.add_argument(
        "--env-file",
        default=DEFAULT_ENV_FILE,
        help="Dotenv file read before the environment (default: .env; missing is fine)",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None, environ: Optional[Mapping[str, str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        if environ is None:
            environ = read_environment(args.env_file)
        settings = load_settings(environ, watch_flag=args.watch)
    except ConfigError as exc:
        configure_logging(args.log_level or "INFO")
        logger.error("Configuration error: %s", exc)
        return EXIT_FAILURE

    configure_logging(args.log_level or settings.log_level)
    logger.debug("Settings: %s", settings.to_log_dict())

    if args.backfill_only and settings.watch_only:
        logger.error("--backfill-only cannot be combined with --watch or WATCH_ONLY")
        return EXIT_FAILURE

    try:
        archiver = build_archiver(settings)
        run(archiver, backfill_only=args.backfill_only)
    except KeyboardInterrupt:
        logger.info("Interrupted, exiting")
        return EXIT_INTERRUPTED
    except (StartupError, AuthenticationError, CacheLoadError, FeedRequestError) as exc:
        logger.error("%s", exc)
        return EXIT_FAILURE

    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
