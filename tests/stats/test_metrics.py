import unittest
from datetime import datetime, timedelta, timezone

from likelocker.stats.metrics import compute_avg_speed, compute_runtime_s, format_runtime


class TestStatsMetrics(unittest.TestCase):
    def test_compute_runtime_s_returns_zero_without_started_at(self) -> None:
        now = datetime(2026, 1, 13, 12, 0, 0, tzinfo=timezone.utc)
        self.assertEqual(compute_runtime_s(None, None, now=now), 0.0)

    def test_compute_runtime_s_uses_started_at_and_finished_at(self) -> None:
        start = datetime(2026, 1, 13, 12, 0, 0, tzinfo=timezone.utc)
        end = start + timedelta(seconds=2.5)
        self.assertAlmostEqual(compute_runtime_s(start, end), 2.5, places=6)

    def test_compute_runtime_s_unfinished_measures_to_now(self) -> None:
        start = datetime(2026, 1, 13, 12, 0, 0, tzinfo=timezone.utc)
        now = start + timedelta(seconds=90)
        self.assertEqual(compute_runtime_s(start, None, now=now), 90.0)

    def test_compute_runtime_s_never_negative(self) -> None:
        start = datetime(2026, 1, 13, 12, 0, 0, tzinfo=timezone.utc)
        self.assertEqual(compute_runtime_s(start, start - timedelta(seconds=5)), 0.0)

    def test_compute_runtime_s_treats_naive_as_utc(self) -> None:
        start = datetime(2026, 1, 13, 12, 0, 0)
        end = datetime(2026, 1, 13, 12, 0, 4, tzinfo=timezone.utc)
        self.assertEqual(compute_runtime_s(start, end), 4.0)

    def test_compute_avg_speed_formula(self) -> None:
        self.assertEqual(compute_avg_speed(4, 2, 2.0), 3.0)

    def test_compute_avg_speed_zero_runtime(self) -> None:
        self.assertEqual(compute_avg_speed(1, 1, 0.0), 0.0)

    def test_format_runtime(self) -> None:
        self.assertEqual(format_runtime(42.04), "42.0s")
        self.assertEqual(format_runtime(187), "3m07s")
        self.assertEqual(format_runtime(3723.9), "1h02m03s")


if __name__ == "__main__":
    unittest.main()
