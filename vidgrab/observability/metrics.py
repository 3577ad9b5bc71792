"""
In-process metrics: counters and latency histograms for download jobs,
retention sweeps and HTTP traffic, exposed in Prometheus text format.
"""

import threading
import time
from collections import defaultdict
from typing import Any, Dict, List, Optional, Tuple

# Job latency buckets in milliseconds; downloads run for seconds to minutes.
DURATION_BUCKETS_MS: Tuple[float, ...] = (
    1_000,
    5_000,
    15_000,
    30_000,
    60_000,
    120_000,
    300_000,
    600_000,
    float("inf"),
)


def _series_key(name: str, labels: Optional[Dict[str, str]]) -> str:
    if not labels:
        return name
    body = ",".join(f'{k}="{v}"' for k, v in sorted(labels.items()))
    return f"{name}{{{body}}}"


class _Histogram:
    def __init__(self, buckets: Tuple[float, ...]) -> None:
        self.count = 0
        self.total = 0.0
        self.buckets = {b: 0 for b in buckets}

    def observe(self, value: float) -> None:
        self.count += 1
        self.total += value
        for boundary in self.buckets:
            if value <= boundary:
                self.buckets[boundary] += 1


class MetricsCollector:
    """Thread-safe singleton metrics store.

    Usage::

        mc = MetricsCollector()
        mc.inc("jobs_failed_total", labels={"reason": "transform_failed"})
        mc.observe("job_duration_ms", 8423.0)
    """

    _instance: Optional["MetricsCollector"] = None
    _lock = threading.Lock()

    def __new__(cls) -> "MetricsCollector":
        with cls._lock:
            if cls._instance is None:
                cls._instance = super().__new__(cls)
                cls._instance._initialized = False
            return cls._instance

    def __init__(self) -> None:
        if self._initialized:
            return
        self._initialized = True
        self._data_lock = threading.Lock()
        self._counters: Dict[str, float] = defaultdict(float)
        self._gauges: Dict[str, float] = {}
        self._histograms: Dict[str, _Histogram] = {}
        self.start_time = time.time()

    def inc(
        self, name: str, amount: float = 1.0, *, labels: Optional[Dict[str, str]] = None
    ) -> None:
        """Increment a counter."""
        with self._data_lock:
            self._counters[_series_key(name, labels)] += amount

    def gauge_set(
        self, name: str, value: float, *, labels: Optional[Dict[str, str]] = None
    ) -> None:
        """Set a gauge to an absolute value."""
        with self._data_lock:
            self._gauges[_series_key(name, labels)] = value

    def observe(
        self, name: str, value: float, *, labels: Optional[Dict[str, str]] = None
    ) -> None:
        """Record one observation in a duration histogram."""
        key = _series_key(name, labels)
        with self._data_lock:
            hist = self._histograms.get(key)
            if hist is None:
                hist = self._histograms[key] = _Histogram(DURATION_BUCKETS_MS)
            hist.observe(value)

    def counter_value(self, name: str, *, labels: Optional[Dict[str, str]] = None) -> float:
        with self._data_lock:
            return self._counters.get(_series_key(name, labels), 0.0)

    def uptime_seconds(self) -> float:
        return time.time() - self.start_time

    def snapshot(self) -> Dict[str, Any]:
        """Return a JSON-friendly view of all series."""
        with self._data_lock:
            return {
                "uptime_seconds": round(self.uptime_seconds(), 1),
                "counters": dict(self._counters),
                "gauges": dict(self._gauges),
                "histograms": {
                    k: {"count": h.count, "sum": round(h.total, 2)}
                    for k, h in self._histograms.items()
                },
            }

    def prometheus_exposition(self) -> str:
        """Render every series in Prometheus text exposition format."""
        lines: List[str] = [
            "# TYPE uptime_seconds gauge",
            f"uptime_seconds {self.uptime_seconds():.1f}",
        ]
        with self._data_lock:
            for key, value in sorted(self._counters.items()):
                lines.append(f"{key} {value}")
            for key, value in sorted(self._gauges.items()):
                lines.append(f"{key} {value}")
            for key, hist in sorted(self._histograms.items()):
                base, _, rest = key.partition("{")
                extra = rest.rstrip("}")
                for boundary, count in hist.buckets.items():
                    le = "+Inf" if boundary == float("inf") else f"{boundary:g}"
                    label_body = f'{extra},le="{le}"' if extra else f'le="{le}"'
                    lines.append(f"{base}_bucket{{{label_body}}} {count}")
                suffix = f"{{{extra}}}" if extra else ""
                lines.append(f"{base}_sum{suffix} {hist.total:.2f}")
                lines.append(f"{base}_count{suffix} {hist.count}")
        return "\n".join(lines) + "\n"

    @classmethod
    def reset(cls) -> None:
        """Drop the singleton (for tests)."""
        with cls._lock:
            cls._instance = None
