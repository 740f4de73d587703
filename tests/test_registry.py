"""Tests for instrument handles and the registry."""
from datadog_exporter.recorder import Recorder
from datadog_exporter.registry import Counter, Histogram, Registry
from datadog_exporter.series import MetricKey


def test_same_key_returns_same_handle():
    recorder = Recorder(Registry())

    assert recorder.counter("hits", route="/") is recorder.counter("hits", route="/")
    assert recorder.counter("hits", route="/") is not recorder.counter("hits", route="/x")


def test_label_order_is_part_of_identity():
    assert MetricKey.of("m", a=1, b=2).labels == (("a", "1"), ("b", "2"))
    assert MetricKey.of("m", a=1, b=2) != MetricKey.of("m", b=2, a=1)


def test_counter_take_resets():
    counter = Counter()
    assert counter.take() is None

    counter.increment(2)
    assert counter.take() == 2
    assert counter.take() is None


def test_counter_absolute_raises_value():
    counter = Counter()
    counter.absolute(10)

    assert counter.take() == 10


def test_counter_absolute_reports_growth_across_windows():
    """A cumulative total is only counted once across flushes."""
    registry = Registry()
    recorder = Recorder(registry)
    counter = recorder.counter("bytes_sent")

    counter.absolute(100)
    first = registry.snapshot_and_clear()["counters"]
    counter.absolute(105)
    second = registry.snapshot_and_clear()["counters"]

    assert first == [(MetricKey("bytes_sent"), 100)]
    assert second == [(MetricKey("bytes_sent"), 5)]


def test_counter_absolute_ignores_lower_totals():
    counter = Counter()
    counter.absolute(50)
    counter.take()

    counter.absolute(40)

    assert counter.take() == 0


def test_histogram_take_drains_buffer():
    histogram = Histogram()
    histogram.record(1)
    histogram.record(2.5)

    assert histogram.take() == [1.0, 2.5]
    assert histogram.take() == []


def test_snapshot_skips_idle_handles():
    registry = Registry()
    recorder = Recorder(registry)
    recorder.counter("idle")
    recorder.gauge("idle")
    recorder.histogram("idle")
    recorder.increment_counter("busy")

    snapshot = registry.snapshot_and_clear()

    assert snapshot["counters"] == [(MetricKey("busy"), 1)]
    assert snapshot["gauges"] == []
    assert snapshot["histograms"] == []
    assert len(registry) == 4


def test_handle_listings_keep_registration_order():
    registry = Registry()
    recorder = Recorder(registry)
    recorder.counter("b")
    recorder.counter("a")

    assert [key.name for key, _ in registry.get_counter_handles()] == ["b", "a"]


def test_clear_forgets_handles():
    registry = Registry()
    Recorder(registry).increment_counter("hits")

    registry.clear()

    assert len(registry) == 0
    assert registry.snapshot_and_clear()["counters"] == []
