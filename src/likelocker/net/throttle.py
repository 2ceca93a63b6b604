"""
Request throttling with a minimum interval and random jitter.

Spaces out feed page requests during backfill so a long catch-up does not
hammer the AppView.
"""

from __future__ import annotations

import random
import time
from dataclasses import dataclass
from typing import Callable, Optional


DEFAULT_MIN_INTERVAL_S = 0.5  # Minimum seconds between requests
DEFAULT_JITTER_MAX_S = 0.25   # Random jitter up to this value (added to min_interval)


@dataclass
class ThrottleConfig:
    """
    Configuration for request throttling.

    Attributes:
        min_interval_s: Minimum seconds between requests.
        jitter_max_s: Maximum random jitter added to min_interval.
        enabled: If False, throttling is disabled (for testing).
    """
    min_interval_s: float = DEFAULT_MIN_INTERVAL_S
    jitter_max_s: float = DEFAULT_JITTER_MAX_S
    enabled: bool = True


class Throttle:
    """
    Request throttler with minimum interval and random jitter.

    Usage:
        throttle = Throttle()
        throttle.wait()
        make_request()

    The first request only waits for jitter; later requests are spaced at
    least `min_interval_s` apart.
    """

    def __init__(
        self,
        config: Optional[ThrottleConfig] = None,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._config = config or ThrottleConfig()
        self._clock = clock
        self._sleep = sleep
        self._last_request_time: Optional[float] = None

    @property
    def config(self) -> ThrottleConfig:
        return self._config

    def _compute_delay(self) -> float:
        """Compute the delay needed before next request."""
        if not self._config.enabled:
            return 0.0

        jitter = random.uniform(0, self._config.jitter_max_s)
        if self._last_request_time is None:
            return jitter

        elapsed = self._clock() - self._last_request_time
        base_delay = self._config.min_interval_s - elapsed
        if base_delay <= 0:
            return jitter
        return base_delay + jitter

    def wait(self) -> float:
        """
        Block until it's safe to make the next request.

        Returns:
            The delay waited (in seconds).
        """
        delay = self._compute_delay()
        if delay > 0:
            self._sleep(delay)
        self._last_request_time = self._clock()
        return delay

    def reset(self) -> None:
        """Reset the throttler state."""
        self._last_request_time = None
