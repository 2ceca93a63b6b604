"""
ntfy.sh push notifications.

Delivery is best effort: a failed POST is logged and dropped, never retried
and never raised. Without a topic the notifier does nothing.
"""

from __future__ import annotations

import logging
from http.client import HTTPException
from typing import Optional
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from ..net.http import DEFAULT_USER_AGENT, Opener


DEFAULT_SERVER = "https://ntfy.sh"
DEFAULT_TIMEOUT_S = 10.0

logger = logging.getLogger(__name__)


class NtfyNotifier:
    """
    Publishes plain-text messages to `<server>/<topic>`.

    Usage:
        notifier = NtfyNotifier("my-likes")
        notifier.send("LikeLocker started")
    """

    def __init__(
        self,
        topic: Optional[str],
        *,
        server: str = DEFAULT_SERVER,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        opener: Opener = urlopen,
    ) -> None:
        self._topic = (topic or "").strip() or None
        self._server = server.rstrip("/")
        self._timeout_s = timeout_s
        self._opener = opener

    @property
    def enabled(self) -> bool:
        return self._topic is not None

    @property
    def url(self) -> Optional[str]:
        if self._topic is None:
            return None
        return f"{self._server}/{self._topic}"

    def send(self, message: str) -> bool:
        """
        Publish `message`.

        Returns:
            True if the server accepted it, False when disabled or on failure.
        """
        url = self.url
        if url is None:
            return False

        try:
            req = Request(
                url,
                data=message.encode("utf-8"),
                headers={"Content-Type": "text/plain", "User-Agent": DEFAULT_USER_AGENT},
                method="POST",
            )
            with self._opener(req, timeout=self._timeout_s) as resp:
                status = int(getattr(resp, "status", 200) or 200)
        except HTTPError as exc:
            logger.warning("Notification rejected by %s: HTTP %s", url, exc.code)
            exc.close()
            return False
        except (URLError, HTTPException, OSError, ValueError) as exc:
            # ValueError: malformed server URL
            logger.warning("Failed to send notification: %s", exc)
            return False

        if status >= 300:
            logger.warning("Notification rejected by %s: HTTP %s", url, status)
            return False
        logger.debug("Notification sent: %s", message)
        return True
