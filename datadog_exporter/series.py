"""Data structures for collected metric series."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Sequence, Tuple, Union


class MetricKind(str, Enum):
    """Instrument kinds the exporter understands."""
    COUNTER = "counter"
    GAUGE = "gauge"
    HISTOGRAM = "histogram"


@dataclass(frozen=True)
class MetricKey:
    """Identity of one instrument: name plus ordered labels."""
    name: str
    labels: Tuple[Tuple[str, str], ...] = ()

    @classmethod
    def of(cls, name: str, **labels: Any) -> "MetricKey":
        return cls(name, tuple((k, str(v)) for k, v in labels.items()))

    def label_key(self) -> str:
        """Generate a readable key from the labels."""
        return ",".join(f"{k}={v}" for k, v in self.labels)


@dataclass(frozen=True)
class HistogramStats:
    """Summary of the observations recorded during one flush window."""
    count: int
    sum: float
    min: float
    max: float

    @classmethod
    def from_values(cls, values: Sequence[float]) -> "HistogramStats":
        if not values:
            raise ValueError("Cannot summarise an empty histogram")
        return cls(
            count=len(values),
            sum=float(sum(values)),
            min=float(min(values)),
            max=float(max(values)),
        )


PointValue = Union[int, float, HistogramStats]

# Histogram statistics fan out into one API series each: (suffix, API type)
HISTOGRAM_FIELDS = (
    ("count", "count"),
    ("sum", "count"),
    ("min", "gauge"),
    ("max", "gauge"),
)


@dataclass
class MetricSeries:
    """A named, tagged series with its points for one flush."""
    name: str
    tags: Tuple[str, ...]
    kind: MetricKind
    points: List[Tuple[int, PointValue]] = field(default_factory=list)

    def to_wire(self) -> List[Dict[str, Any]]:
        """Render this series as the API's series objects.

        Counters become ``count`` series and gauges ``gauge`` series. A
        histogram becomes four series (``<name>.count``, ``.sum``, ``.min``
        and ``.max``) sharing the same timestamps.
        """
        tags = list(self.tags)

        if self.kind == MetricKind.HISTOGRAM:
            return [
                {
                    "metric": f"{self.name}.{suffix}",
                    "type": api_type,
                    "points": [[ts, getattr(stats, suffix)] for ts, stats in self.points],
                    "tags": tags,
                }
                for suffix, api_type in HISTOGRAM_FIELDS
            ]

        api_type = "count" if self.kind == MetricKind.COUNTER else "gauge"
        return [{
            "metric": self.name,
            "type": api_type,
            "points": [[ts, value] for ts, value in self.points],
            "tags": tags,
        }]

    def to_metric_lines(self) -> List[Dict[str, Any]]:
        """One console record per point."""
        lines = []
        for ts, value in self.points:
            if isinstance(value, HistogramStats):
                value = {
                    "count": value.count,
                    "sum": value.sum,
                    "min": value.min,
                    "max": value.max,
                }
            lines.append({
                "metric": self.name,
                "type": self.kind.value,
                "timestamp": ts,
                "value": value,
                "tags": list(self.tags),
            })
        return lines


def merge_tags(static_tags: Dict[str, str], key: MetricKey) -> Tuple[str, ...]:
    """Static process tags first, then the key's own labels."""
    tags = [f"{k}:{v}" for k, v in static_tags.items()]
    tags.extend(f"{k}:{v}" for k, v in key.labels)
    return tuple(tags)
