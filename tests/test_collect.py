"""Tests for snapshot, grouping and clearing of registry contents."""
import threading

from datadog_exporter.config import DataDogConfig
from datadog_exporter.exporter import DataDogExporter, group_by_key
from datadog_exporter.recorder import Recorder
from datadog_exporter.registry import Registry
from datadog_exporter.series import HistogramStats, MetricKey, MetricKind


def make_exporter(tags=None):
    registry = Registry()
    config = DataDogConfig(
        write_to_api=False,
        write_to_stdout=False,
        tags=tags or {},
        self_metrics=False,
    )
    return Recorder(registry), DataDogExporter(registry, config)


def test_counter_increments_sum_into_one_point():
    """Two increments of the same key produce a single point."""
    recorder, exporter = make_exporter()
    recorder.increment_counter("requests", 3, endpoint="/")
    recorder.increment_counter("requests", 4, endpoint="/")

    series = exporter.collect()

    assert len(series) == 1
    assert series[0].kind == MetricKind.COUNTER
    assert len(series[0].points) == 1
    assert series[0].points[0][1] == 7


def test_histogram_observations_become_summary_stats():
    """Observations 1..5 summarise to count, sum, min and max."""
    recorder, exporter = make_exporter()
    for value in [1, 2, 3, 4, 5]:
        recorder.record_histogram("latency", value)

    series = exporter.collect()

    assert len(series) == 1
    _, stats = series[0].points[0]
    assert stats == HistogramStats(count=5, sum=15.0, min=1.0, max=5.0)


def test_gauge_reports_last_value():
    recorder, exporter = make_exporter()
    recorder.set_gauge("queue_depth", 10)
    recorder.set_gauge("queue_depth", 4)

    series = exporter.collect()

    assert [s.points[0][1] for s in series] == [4.0]


def test_second_collect_is_empty():
    """Nothing observed since the last collect means nothing to report."""
    recorder, exporter = make_exporter()
    recorder.increment_counter("requests")
    recorder.set_gauge("temperature", 21.5)
    recorder.record_histogram("latency", 0.2)

    assert len(exporter.collect()) == 3
    assert exporter.collect() == []


def test_handles_keep_working_after_collect():
    """Handles survive a clear and start a fresh window."""
    recorder, exporter = make_exporter()
    counter = recorder.counter("jobs", queue="default")
    counter.increment(2)
    exporter.collect()

    counter.increment(5)
    series = exporter.collect()

    assert series[0].points[0][1] == 5


def test_gauge_increment_continues_from_last_value():
    recorder, exporter = make_exporter()
    gauge = recorder.gauge("connections")
    gauge.increment(3)
    exporter.collect()

    gauge.decrement(1)
    series = exporter.collect()

    assert series[0].points[0][1] == 2.0


def test_distinct_labels_are_distinct_series():
    recorder, exporter = make_exporter()
    recorder.increment_counter("requests", endpoint="/a")
    recorder.increment_counter("requests", endpoint="/b")

    series = exporter.collect()

    assert [s.tags for s in series] == [("endpoint:/a",), ("endpoint:/b",)]


def test_static_tags_precede_labels():
    recorder, exporter = make_exporter(tags={"env": "prod", "service": "api"})
    recorder.increment_counter("requests", region="eu")

    series = exporter.collect()

    assert series[0].tags == ("env:prod", "service:api", "region:eu")


def test_series_order_is_counters_gauges_histograms():
    recorder, exporter = make_exporter()
    recorder.record_histogram("h", 1.0)
    recorder.set_gauge("g", 1.0)
    recorder.increment_counter("c")

    kinds = [s.kind for s in exporter.collect()]

    assert kinds == [MetricKind.COUNTER, MetricKind.GAUGE, MetricKind.HISTOGRAM]


def test_group_by_key_merges_duplicate_handles():
    """Values from several handles with one key are grouped together."""
    key = MetricKey.of("requests", endpoint="/")
    other = MetricKey.of("requests", endpoint="/other")

    groups = group_by_key([(key, 1), (other, 2), (key, 3)])

    assert list(groups) == [key, other]
    assert groups[key] == [1, 3]


def test_concurrent_increments_are_not_lost():
    """Writes racing collect end up in exactly one window."""
    recorder, exporter = make_exporter()
    counter = recorder.counter("hits")
    threads_count = 4
    per_thread = 5000
    collected = []

    def produce():
        for _ in range(per_thread):
            counter.increment()

    threads = [threading.Thread(target=produce) for _ in range(threads_count)]
    for t in threads:
        t.start()
    while any(t.is_alive() for t in threads):
        collected.extend(s.points[0][1] for s in exporter.collect())
    for t in threads:
        t.join()
    collected.extend(s.points[0][1] for s in exporter.collect())

    assert sum(collected) == threads_count * per_thread
