from __future__ import annotations

from typing import Any, Callable, Optional
from urllib.error import HTTPError
from urllib.request import Request, urlopen

from .. import __version__

from .retry import RetryConfig, with_retry


DEFAULT_USER_AGENT = f"likelocker/{__version__} (+https://bsky.app)"
DEFAULT_TIMEOUT_S = 60.0

# (request, timeout) -> response; swapped out in tests
Opener = Callable[..., Any]


class HttpStatusError(Exception):
    """Raised when a media GET answers with anything but 200."""

    def __init__(self, url: str, status_code: int, reason: str = "") -> None:
        super().__init__(f"bad status: {status_code} {reason}".rstrip())
        self.url = url
        self.status_code = status_code
        self.reason = reason


def open_media_stream(
    url: str,
    *,
    timeout_s: float = DEFAULT_TIMEOUT_S,
    retry: Optional[RetryConfig] = None,
    opener: Opener = urlopen,
) -> Any:
    """
    Open a streaming GET for a media URL.

    The caller owns the returned response and must close it (it is a
    context manager). 429/5xx and connection errors are retried according
    to `retry`; other error statuses raise immediately.

    Raises:
        HttpStatusError: If the final response status is not 200.
        URLError: On network failure after retries.
    """
    headers = {
        "User-Agent": DEFAULT_USER_AGENT,
        "Accept": "*/*",
    }

    def _open() -> Any:
        req = Request(url, headers=headers)
        try:
            resp = opener(req, timeout=timeout_s)
        except HTTPError as exc:
            exc.close()
            raise HttpStatusError(url, int(exc.code), str(exc.reason or "")) from exc

        status = int(getattr(resp, "status", 200) or 200)
        if status != 200:
            resp.close()
            raise HttpStatusError(url, status, str(getattr(resp, "reason", "") or ""))
        return resp

    return with_retry(_open, config=retry)
