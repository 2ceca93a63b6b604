"""
Exponential backoff retry for transient errors (429, 5xx, dropped connections).

Used around feed page requests and media GETs. Only the request itself is
retried; a failure while streaming a body to disk is not.
"""

from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass, field
from http.client import HTTPException
from typing import Callable, Optional, Set, TypeVar
from urllib.error import HTTPError, URLError

DEFAULT_MAX_RETRIES = 3
DEFAULT_BASE_DELAY_S = 2.0
DEFAULT_MAX_DELAY_S = 60.0
DEFAULT_JITTER_FACTOR = 0.25  # 25% jitter on top of computed delay

# HTTP status codes that trigger retry
DEFAULT_RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})

T = TypeVar("T")
logger = logging.getLogger(__name__)


class RetryableError(Exception):
    """
    Exception indicating a retryable error.

    Attributes:
        status_code: Optional HTTP status code.
        should_retry: Whether this error should trigger retry logic.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        should_retry: bool = True,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.should_retry = should_retry


@dataclass
class RetryConfig:
    """
    Configuration for retry with exponential backoff.

    Attributes:
        max_retries: Maximum number of retry attempts (0 = no retries).
        base_delay_s: Initial delay before first retry.
        max_delay_s: Maximum delay cap.
        jitter_factor: Random jitter as fraction of computed delay (0.0-1.0).
        retryable_status_codes: HTTP status codes that should trigger retry.
        retry_network_errors: Retry connection failures and timeouts too.
        enabled: If False, retry logic is disabled.
    """
    max_retries: int = DEFAULT_MAX_RETRIES
    base_delay_s: float = DEFAULT_BASE_DELAY_S
    max_delay_s: float = DEFAULT_MAX_DELAY_S
    jitter_factor: float = DEFAULT_JITTER_FACTOR
    retryable_status_codes: Set[int] = field(
        default_factory=lambda: set(DEFAULT_RETRYABLE_STATUS_CODES)
    )
    retry_network_errors: bool = True
    enabled: bool = True

    def compute_delay(self, attempt: int) -> float:
        """
        Compute delay for given attempt using exponential backoff with jitter.

        Args:
            attempt: Current attempt number (0-indexed).
        """
        delay = min(self.base_delay_s * (2 ** attempt), self.max_delay_s)
        jitter = delay * random.uniform(0, self.jitter_factor)
        return delay + jitter

    def is_retryable_status(self, status_code: int) -> bool:
        """Check if HTTP status code should trigger retry."""
        return status_code in self.retryable_status_codes

    def should_retry(self, exc: Exception) -> bool:
        """Decide whether an exception is worth another attempt."""
        if isinstance(exc, RetryableError):
            return exc.should_retry

        status = _extract_status_code(exc)
        if status is not None:
            return self.is_retryable_status(status)

        if self.retry_network_errors and _is_network_error(exc):
            return True
        return False


def with_retry(
    func: Callable[[], T],
    *,
    config: Optional[RetryConfig] = None,
    on_retry: Optional[Callable[[int, Exception, float], None]] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    Execute a function with retry and exponential backoff.

    Args:
        func: Function to execute.
        config: Retry configuration.
        on_retry: Optional callback called before each retry with
                  (attempt, exception, delay).
        sleep: Sleep function (injectable for tests).

    Returns:
        The result of func().

    Raises:
        The last exception if all retries are exhausted, or the first
        exception that is not retryable.
    """
    cfg = config or RetryConfig()

    if not cfg.enabled:
        return func()

    attempt = 0
    while True:
        try:
            return func()
        except Exception as exc:
            if attempt >= cfg.max_retries or not cfg.should_retry(exc):
                raise
            delay = cfg.compute_delay(attempt)
            if on_retry:
                on_retry(attempt, exc, delay)
            else:
                logger.warning(
                    "Retry %d/%d after %.2fs: %s",
                    attempt + 1,
                    cfg.max_retries,
                    delay,
                    exc,
                )
            sleep(delay)
            attempt += 1


def _is_network_error(exc: Exception) -> bool:
    # HTTPError subclasses URLError but carries a status; handled earlier.
    if isinstance(exc, HTTPError):
        return False
    # Truncated or malformed responses (IncompleteRead, RemoteDisconnected)
    return isinstance(exc, (URLError, HTTPException, ConnectionError, TimeoutError))


def _extract_status_code(exc: Exception) -> Optional[int]:
    """Try to extract an HTTP status code from the exception types we raise or see."""
    # urllib.error.HTTPError
    if isinstance(exc, HTTPError):
        return int(exc.code)

    # HttpStatusError / XrpcError
    status = getattr(exc, "status_code", None)
    if status is not None:
        try:
            return int(status)
        except (TypeError, ValueError):
            return None

    return None
