"""
Run timing and throughput for backfill summaries.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional


def _as_utc(moment: datetime) -> datetime:
    # Naive timestamps are taken to be UTC already
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def compute_runtime_s(
    started_at: Optional[datetime],
    finished_at: Optional[datetime],
    *,
    now: Optional[datetime] = None,
) -> float:
    """
    Seconds between start and finish, or start and `now` while still running.

    A pass that never started has a runtime of 0. Never negative.
    """
    if started_at is None:
        return 0.0

    end = finished_at or now or datetime.now(timezone.utc)
    elapsed = (_as_utc(end) - _as_utc(started_at)).total_seconds()
    return elapsed if elapsed > 0 else 0.0


def compute_avg_speed(retrieved: int, cache_hits: int, runtime_s: float) -> float:
    """Files handled per second: (retrieved + cache_hits) / runtime, 0 if runtime <= 0."""
    if runtime_s <= 0:
        return 0.0
    return (int(retrieved) + int(cache_hits)) / float(runtime_s)


def format_runtime(runtime_s: float) -> str:
    """Render a duration as e.g. `42.0s`, `3m07s` or `1h02m03s`."""
    if runtime_s < 60:
        return f"{runtime_s:.1f}s"
    minutes, seconds = divmod(int(runtime_s), 60)
    hours, minutes = divmod(minutes, 60)
    if hours:
        return f"{hours}h{minutes:02d}m{seconds:02d}s"
    return f"{minutes}m{seconds:02d}s"
