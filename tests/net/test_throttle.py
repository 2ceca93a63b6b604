"""
Tests for likelocker/net/throttle.py

Covers:
- Throttle with configurable min_interval and jitter
- Disabled throttle behavior
- Reset
"""

import unittest

from likelocker.net.throttle import Throttle, ThrottleConfig


class FakeClock:
    def __init__(self, start=100.0):
        self.now = start
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


class TestThrottleConfig(unittest.TestCase):
    """Tests for ThrottleConfig."""

    def test_default_values(self):
        config = ThrottleConfig()
        self.assertEqual(config.min_interval_s, 0.5)
        self.assertEqual(config.jitter_max_s, 0.25)
        self.assertTrue(config.enabled)


class TestThrottle(unittest.TestCase):
    """Tests for Throttle class."""

    def _throttle(self, **kwargs):
        clock = FakeClock()
        return Throttle(ThrottleConfig(**kwargs), clock=clock, sleep=clock.sleep), clock

    def test_first_request_only_jitter(self):
        """First request should only add jitter, not min_interval."""
        throttle, clock = self._throttle(min_interval_s=10.0, jitter_max_s=0.1)

        delay = throttle.wait()

        self.assertLessEqual(delay, 0.1)
        self.assertTrue(all(s <= 0.1 for s in clock.sleeps))

    def test_subsequent_request_respects_min_interval(self):
        throttle, clock = self._throttle(min_interval_s=2.0, jitter_max_s=0.0)

        throttle.wait()
        clock.now += 0.5
        delay = throttle.wait()

        self.assertAlmostEqual(delay, 1.5)
        self.assertAlmostEqual(clock.sleeps[-1], 1.5)

    def test_no_wait_when_interval_already_elapsed(self):
        throttle, clock = self._throttle(min_interval_s=2.0, jitter_max_s=0.0)

        throttle.wait()
        clock.now += 5.0
        self.assertEqual(throttle.wait(), 0.0)
        self.assertEqual(clock.sleeps, [])

    def test_disabled_throttle_no_wait(self):
        throttle, clock = self._throttle(min_interval_s=10.0, jitter_max_s=5.0, enabled=False)

        self.assertEqual(throttle.wait(), 0.0)
        self.assertEqual(throttle.wait(), 0.0)
        self.assertEqual(clock.sleeps, [])

    def test_reset(self):
        """Reset should clear last request time."""
        throttle, clock = self._throttle(min_interval_s=10.0, jitter_max_s=0.0)

        throttle.wait()
        throttle.reset()

        self.assertEqual(throttle.wait(), 0.0)
        self.assertEqual(clock.sleeps, [])


if __name__ == "__main__":
    unittest.main()
