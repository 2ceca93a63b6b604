"""
Network utilities: media GETs, retry with exponential backoff, and throttle.
"""

from .http import HttpStatusError, open_media_stream
from .retry import RetryConfig, RetryableError, with_retry
from .throttle import Throttle, ThrottleConfig

__all__ = [
    "HttpStatusError",
    "open_media_stream",
    "RetryConfig",
    "RetryableError",
    "with_retry",
    "Throttle",
    "ThrottleConfig",
]
