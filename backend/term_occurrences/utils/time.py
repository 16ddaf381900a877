"""Time helpers."""

from __future__ import annotations

import time


def now_ms() -> int:
    """Wall-clock timestamp in milliseconds, as stored in ``created_at``/``updated_at`` columns."""
    return int(time.time() * 1000)


class Stopwatch:
    """Monotonic elapsed-time measurement in seconds."""

    def __init__(self) -> None:
        self._started = time.perf_counter()

    def elapsed(self) -> float:
        return time.perf_counter() - self._started


__all__ = ["now_ms", "Stopwatch"]
