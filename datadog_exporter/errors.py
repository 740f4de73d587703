"""Exception types raised by the exporter."""
from typing import Optional


class ExporterError(Exception):
    """Base class for exporter failures."""


class EncodeError(ExporterError):
    """Series could not be serialized into a payload."""


class UnsplittableSeriesError(EncodeError):
    """A single series exceeds the payload ceiling on its own."""

    def __init__(self, metric: str, size: int, limit: int):
        self.metric = metric
        self.size = size
        self.limit = limit
        super().__init__(
            f"Series '{metric}' encodes to {size} bytes, "
            f"which cannot fit under the {limit} byte limit"
        )


class TransportError(ExporterError):
    """A payload submission failed at the network layer or was rejected."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class SchedulerError(ExporterError):
    """The periodic flush could not be started."""
