from __future__ import annotations

from .metrics import compute_avg_speed, compute_runtime_s, format_runtime

__all__ = [
    "compute_avg_speed",
    "compute_runtime_s",
    "format_runtime",
]
