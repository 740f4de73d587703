"""Thread-safe instrument storage shared by the recorder and the exporter."""
import threading
from typing import Dict, List, Optional, Tuple

from datadog_exporter.series import MetricKey


class Counter:
    """Monotonic integer accumulated between flushes."""

    def __init__(self):
        self._lock = threading.Lock()
        self._value = 0
        self._last_absolute = 0
        self._touched = False

    def increment(self, value: int = 1):
        with self._lock:
            self._value += int(value)
            self._touched = True

    def absolute(self, value: int):
        """Report a cumulative total; only the growth since the last total counts."""
        with self._lock:
            value = int(value)
            self._value += max(0, value - self._last_absolute)
            self._last_absolute = max(self._last_absolute, value)
            self._touched = True

    def take(self) -> Optional[int]:
        """Return the accumulated value and reset, or None if untouched."""
        with self._lock:
            if not self._touched:
                return None
            value, self._value, self._touched = self._value, 0, False
            return value


class Gauge:
    """Last written floating point value."""

    def __init__(self):
        self._lock = threading.Lock()
        self._value = 0.0
        self._touched = False

    def set(self, value: float):
        with self._lock:
            self._value = float(value)
            self._touched = True

    def increment(self, value: float = 1.0):
        with self._lock:
            self._value += float(value)
            self._touched = True

    def decrement(self, value: float = 1.0):
        self.increment(-value)

    def take(self) -> Optional[float]:
        # The value is kept so later increments continue from it
        with self._lock:
            if not self._touched:
                return None
            self._touched = False
            return self._value


class Histogram:
    """Buffer of observations since the previous flush."""

    def __init__(self):
        self._lock = threading.Lock()
        self._values: List[float] = []

    def record(self, value: float):
        with self._lock:
            self._values.append(float(value))

    def take(self) -> List[float]:
        with self._lock:
            values, self._values = self._values, []
            return values


class _HandleTable:
    """Insertion-ordered key -> handle map."""

    def __init__(self, factory):
        self._factory = factory
        self._handles: Dict[MetricKey, object] = {}

    def get_or_create(self, key: MetricKey):
        handle = self._handles.get(key)
        if handle is None:
            handle = self._factory()
            self._handles[key] = handle
        return handle

    def items(self) -> List[Tuple[MetricKey, object]]:
        return list(self._handles.items())

    def clear(self):
        self._handles.clear()

    def __len__(self):
        return len(self._handles)


class Registry:
    """Owned store of every counter, gauge and histogram.

    Handles live for the life of the registry. ``snapshot_and_clear`` drains
    each handle atomically, so a write that races a flush is reported in the
    next window instead of being lost or counted twice.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._counters = _HandleTable(Counter)
        self._gauges = _HandleTable(Gauge)
        self._histograms = _HandleTable(Histogram)

    def get_or_create_counter(self, key: MetricKey) -> Counter:
        with self._lock:
            return self._counters.get_or_create(key)

    def get_or_create_gauge(self, key: MetricKey) -> Gauge:
        with self._lock:
            return self._gauges.get_or_create(key)

    def get_or_create_histogram(self, key: MetricKey) -> Histogram:
        with self._lock:
            return self._histograms.get_or_create(key)

    def get_counter_handles(self) -> List[Tuple[MetricKey, Counter]]:
        with self._lock:
            return self._counters.items()

    def get_gauge_handles(self) -> List[Tuple[MetricKey, Gauge]]:
        with self._lock:
            return self._gauges.items()

    def get_histogram_handles(self) -> List[Tuple[MetricKey, Histogram]]:
        with self._lock:
            return self._histograms.items()

    def snapshot_and_clear(self) -> Dict[str, list]:
        """Drain every handle, returning ``(key, value)`` pairs per kind.

        Untouched counters and gauges and empty histograms are left out.
        """
        with self._lock:
            counters = [(k, h.take()) for k, h in self._counters.items()]
            gauges = [(k, h.take()) for k, h in self._gauges.items()]
            histograms = [(k, h.take()) for k, h in self._histograms.items()]

        return {
            "counters": [(k, v) for k, v in counters if v is not None],
            "gauges": [(k, v) for k, v in gauges if v is not None],
            "histograms": [(k, v) for k, v in histograms if v],
        }

    def clear(self):
        """Forget every handle. Handles held by callers stop being exported."""
        with self._lock:
            self._counters.clear()
            self._gauges.clear()
            self._histograms.clear()

    def __len__(self):
        with self._lock:
            return len(self._counters) + len(self._gauges) + len(self._histograms)
