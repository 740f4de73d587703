"""Collects registry contents and ships them to the metrics API."""
import json
import logging
import sys
import threading
import time
from typing import Callable, Dict, List, Optional, Sequence

import requests

from datadog_exporter.config import DataDogConfig
from datadog_exporter.errors import EncodeError, ExporterError
from datadog_exporter.packer import pack
from datadog_exporter.recorder import Recorder
from datadog_exporter.registry import Registry
from datadog_exporter.series import (
    HistogramStats, MetricKey, MetricKind, MetricSeries, merge_tags,
)
from datadog_exporter.transport import Transport

logger = logging.getLogger(__name__)


def group_by_key(pairs: Sequence[tuple]) -> Dict[MetricKey, list]:
    """Group ``(key, value)`` pairs by key, keeping first-seen order."""
    groups: Dict[MetricKey, list] = {}
    for key, value in pairs:
        groups.setdefault(key, []).append(value)
    return groups


class SelfMetrics:
    """Self-monitoring metrics, shipped alongside application metrics."""

    def __init__(self, recorder: Recorder, prefix: str = "datadog_exporter."):
        self.recorder = recorder
        self.prefix = prefix

    def record_flush(self, series_count: int):
        """Record a completed collection."""
        self.recorder.increment_counter(f"{self.prefix}flushes")
        self.recorder.set_gauge(f"{self.prefix}series", series_count)

    def record_payloads(self, payloads: Sequence[bytes]):
        """Record the payloads built for one flush."""
        self.recorder.increment_counter(f"{self.prefix}payloads", len(payloads))
        for payload in payloads:
            self.recorder.record_histogram(f"{self.prefix}payload_bytes", len(payload))

    def record_error(self, stage: str):
        """Record a failed flush stage."""
        self.recorder.increment_counter(f"{self.prefix}flush_errors", stage=stage)


class DataDogExporter:
    """Snapshot, pack and submit the metrics held in a registry."""

    def __init__(
        self,
        registry: Registry,
        config: DataDogConfig,
        session: Optional[requests.Session] = None,
        stdout=None,
    ):
        self.registry = registry
        self.config = config
        self.stdout = stdout
        self.transport = None
        if config.write_to_api:
            if session is None:
                raise ValueError("A requests session is required when write_to_api is enabled")
            self.transport = Transport(
                session,
                config.api_host,
                config.api_key,
                timeout_s=config.request_timeout_s,
                max_workers=config.max_workers,
            )

        self.self_metrics = SelfMetrics(Recorder(registry)) if config.self_metrics else None

        # Serializes flushes against this registry
        self._flush_lock = threading.Lock()

        self.flush_count = 0
        self.error_count = 0
        self.last_flush_at: Optional[float] = None
        self.last_metric_count = 0
        self.last_error: Optional[str] = None

    def collect(self) -> List[MetricSeries]:
        """
        Read and clear every instrument in the registry.

        Counters sharing a key are summed, gauges keep the last value and
        histogram observations are merged into one ``HistogramStats`` point.
        Note: This is destructive. Values returned here are never returned
        again.
        """
        snapshot = self.registry.snapshot_and_clear()
        now = int(time.time())
        tags = self.config.tags

        def convert(kind: MetricKind, pairs, reduce: Callable) -> List[MetricSeries]:
            return [
                MetricSeries(
                    name=key.name,
                    tags=merge_tags(tags, key),
                    kind=kind,
                    points=[(now, reduce(values))],
                )
                for key, values in group_by_key(pairs).items()
            ]

        counters = convert(MetricKind.COUNTER, snapshot["counters"], sum)
        gauges = convert(MetricKind.GAUGE, snapshot["gauges"], lambda values: values[-1])
        histograms = convert(
            MetricKind.HISTOGRAM,
            snapshot["histograms"],
            lambda buffers: HistogramStats.from_values([v for buf in buffers for v in buf]),
        )

        return counters + gauges + histograms

    def flush(self):
        """
        Run one complete flush pass.

        Raises:
            EncodeError: Series could not be packed
            TransportError: A payload submission failed
        """
        with self._flush_lock:
            series = self.collect()
            self.last_metric_count = len(series)
            self.last_flush_at = time.time()
            logger.debug(f"Flushing {len(series)} metrics")

            try:
                if self.config.write_to_stdout:
                    self.write_to_stdout(series)

                if self.config.write_to_api:
                    self.write_to_api(series)
            except ExporterError as e:
                self.error_count += 1
                self.last_error = str(e)
                if self.self_metrics:
                    stage = "encode" if isinstance(e, EncodeError) else "transport"
                    self.self_metrics.record_error(stage)
                raise
            finally:
                self.flush_count += 1
                if self.self_metrics:
                    self.self_metrics.record_flush(len(series))

    def write_to_stdout(self, series: Sequence[MetricSeries]):
        """Write one JSON line per exported point."""
        out = self.stdout or sys.stdout
        for s in series:
            for line in s.to_metric_lines():
                out.write(json.dumps(line) + "\n")
        out.flush()

    def write_to_api(self, series: Sequence[MetricSeries]):
        """Pack series and submit every payload."""
        if not series:
            return

        payloads = pack(series, self.config.gzip)
        if self.self_metrics:
            self.self_metrics.record_payloads(payloads)

        self.transport.send(payloads, self.config.gzip)
        logger.debug(f"Sent {len(series)} metrics in {len(payloads)} payloads")
