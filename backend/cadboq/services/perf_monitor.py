"""Performance monitoring for the CAD-to-BOQ conversion pipeline."""
import time
import logging
import threading
import functools
from typing import Any, Callable, Dict

logger = logging.getLogger("cadboq-api.perf")


def timed(func: Callable) -> Callable:
    """
    Decorator that measures and logs execution time for synchronous functions.

    Usage::

        @timed
        def my_function():
            ...
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        start = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            duration_ms = round((time.perf_counter() - start) * 1000, 2)
            logger.debug(
                f"{func.__qualname__} took {duration_ms} ms",
                extra={"duration_ms": duration_ms},
            )
    return wrapper


class PerformanceTracker:
    """
    Thread-safe in-memory tracker for conversion metrics.

    Tracks:
    - Conversions processed, and how many were degraded (by reason)
    - Per-stage durations (parse, generate) as a running total and count
    - Rejected uploads (unsupported format, too large)
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._conversions: int = 0
        self._degraded: Dict[str, int] = {}
        self._stage_totals_ms: Dict[str, float] = {}
        self._stage_counts: Dict[str, int] = {}
        self._rejections: Dict[str, int] = {}

    def record_conversion(self, degraded_reason: str | None = None) -> None:
        with self._lock:
            self._conversions += 1
            if degraded_reason:
                self._degraded[degraded_reason] = self._degraded.get(degraded_reason, 0) + 1

    def record_stage_duration(self, stage: str, duration_ms: float) -> None:
        with self._lock:
            self._stage_totals_ms[stage] = self._stage_totals_ms.get(stage, 0.0) + duration_ms
            self._stage_counts[stage] = self._stage_counts.get(stage, 0) + 1

    def record_rejection(self, reason: str) -> None:
        with self._lock:
            self._rejections[reason] = self._rejections.get(reason, 0) + 1

    def get_metrics(self) -> Dict[str, Any]:
        """
        Snapshot of all collected metrics.

        Returns
        -------
        dict with keys:
            conversions_processed   : int
            degraded_conversions    : int
            degraded_by_reason      : dict  {reason: count}
            stage_avg_durations_ms  : dict  {stage: avg_ms}
            stage_samples           : dict  {stage: count}
            rejections_by_reason    : dict  {reason: count}
        """
        with self._lock:
            stage_avgs = {
                stage: round(total / self._stage_counts[stage], 2)
                for stage, total in self._stage_totals_ms.items()
            }
            return {
                "conversions_processed": self._conversions,
                "degraded_conversions": sum(self._degraded.values()),
                "degraded_by_reason": dict(self._degraded),
                "stage_avg_durations_ms": stage_avgs,
                "stage_samples": dict(self._stage_counts),
                "rejections_by_reason": dict(self._rejections),
            }

    def reset(self) -> None:
        """Reset all counters (useful in tests)."""
        with self._lock:
            self._conversions = 0
            self._degraded.clear()
            self._stage_totals_ms.clear()
            self._stage_counts.clear()
            self._rejections.clear()


# Module-level singleton, import this instance everywhere else.
tracker = PerformanceTracker()
