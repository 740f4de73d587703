"""Registration-facing adapter over a shared registry."""
from datadog_exporter.registry import Counter, Gauge, Histogram, Registry
from datadog_exporter.series import MetricKey


class Recorder:
    """Hands out instrument handles backed by the exporter's registry."""

    def __init__(self, registry: Registry):
        self.registry = registry

    def counter(self, name: str, **labels) -> Counter:
        return self.registry.get_or_create_counter(MetricKey.of(name, **labels))

    def gauge(self, name: str, **labels) -> Gauge:
        return self.registry.get_or_create_gauge(MetricKey.of(name, **labels))

    def histogram(self, name: str, **labels) -> Histogram:
        return self.registry.get_or_create_histogram(MetricKey.of(name, **labels))

    def increment_counter(self, name: str, value: int = 1, **labels):
        self.counter(name, **labels).increment(value)

    def set_gauge(self, name: str, value: float, **labels):
        self.gauge(name, **labels).set(value)

    def record_histogram(self, name: str, value: float, **labels):
        self.histogram(name, **labels).record(value)
