"""Periodic flush scheduling."""
import logging
import threading
import time
from typing import Optional

from datadog_exporter.errors import SchedulerError
from datadog_exporter.exporter import DataDogExporter

logger = logging.getLogger(__name__)


class FlushScheduler:
    """Runs ``exporter.flush()`` every ``interval_s`` on a background thread."""

    def __init__(self, exporter: DataDogExporter, interval_s: float):
        self.exporter = exporter
        self.interval_s = interval_s
        self.tick_count = 0
        self.failed_ticks = 0
        self._tick_started: Optional[float] = None
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self):
        """Start the flush thread."""
        if self.interval_s is None or self.interval_s <= 0:
            raise SchedulerError(f"Flush interval must be positive, got {self.interval_s}")
        if self.is_running:
            raise SchedulerError("Scheduler is already running")

        self._stop_event.clear()
        self._tick_started = None
        self._thread = threading.Thread(
            target=self._run,
            name="dd-flush",
            daemon=True,
        )
        try:
            self._thread.start()
        except RuntimeError as e:
            self._thread = None
            raise SchedulerError(f"Failed to start flush thread: {e}") from e

        logger.info(f"Flushing metrics every {self.interval_s}s")

    def stop(self, timeout: Optional[float] = None):
        """Stop scheduling. A flush already in progress is not interrupted."""
        logger.info("Stopping flush scheduler")
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            if self._thread.is_alive():
                logger.warning("Flush thread did not stop within timeout")
            else:
                self._thread = None

    def run_once(self) -> bool:
        """Execute one scheduled tick. Errors are logged, never raised."""
        self.tick_count += 1
        try:
            self.exporter.flush()
            return True
        except Exception as e:
            self.failed_ticks += 1
            logger.error(
                f"Failed to flush metrics: {e} "
                f"(metrics={self.exporter.last_metric_count})",
                exc_info=logger.isEnabledFor(logging.DEBUG),
            )
            return False

    def _run(self):
        # First flush happens one interval after start
        while not self._stop_event.wait(self._next_delay()):
            self._tick_started = time.monotonic()
            self.run_once()

            tick_duration = time.monotonic() - self._tick_started
            if tick_duration > self.interval_s:
                logger.warning(
                    f"Flush took {tick_duration:.3f}s, longer than interval {self.interval_s}s"
                )

    def _next_delay(self) -> float:
        """Sleep for the remaining time in the interval."""
        started = self._tick_started
        if started is None:
            return self.interval_s
        return max(0.0, self.interval_s - (time.monotonic() - started))
