"""Per-operation latency sampling."""

import logging
import threading
import time
from collections import deque
from dataclasses import dataclass

logger = logging.getLogger(__name__)

MAX_SAMPLES = 100


@dataclass(frozen=True)
class PerformanceStats:
    avg: float
    min: float
    max: float
    count: int


class PerformanceMonitor:
    """Rolling window of the most recent latencies for each operation.

    Safe for concurrent appends; the oldest sample is evicted once an
    operation holds ``max_samples`` entries.
    """

    def __init__(self, max_samples: int = MAX_SAMPLES, slow_ms: float = 5000.0) -> None:
        self._max_samples = max_samples
        self._slow_ms = slow_ms
        self._samples: dict[str, deque[float]] = {}
        self._lock = threading.Lock()

    def record(self, operation: str, start: float) -> float:
        """Record the time since ``start`` (a ``time.perf_counter()`` value).

        Returns:
            The recorded duration in milliseconds.
        """
        duration_ms = (time.perf_counter() - start) * 1000.0
        with self._lock:
            window = self._samples.get(operation)
            if window is None:
                window = self._samples[operation] = deque(maxlen=self._max_samples)
            window.append(duration_ms)

        if duration_ms > self._slow_ms:
            logger.warning("Slow operation: %s took %.0fms", operation, duration_ms)
        return duration_ms

    def stats(self, operation: str) -> PerformanceStats | None:
        """Aggregate of the current window, or None when nothing was recorded."""
        with self._lock:
            samples = list(self._samples.get(operation, ()))
        if not samples:
            return None
        return PerformanceStats(
            avg=sum(samples) / len(samples),
            min=min(samples),
            max=max(samples),
            count=len(samples),
        )

    def snapshot(self) -> dict[str, PerformanceStats]:
        """Stats for every operation recorded so far."""
        with self._lock:
            operations = list(self._samples)
        result = {}
        for operation in operations:
            stats = self.stats(operation)
            if stats is not None:
                result[operation] = stats
        return result
