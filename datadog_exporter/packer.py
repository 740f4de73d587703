"""Size-bounded payload building for the series endpoint."""
import gzip
import json
import logging
from typing import Any, Dict, List, Sequence

from datadog_exporter.errors import EncodeError, UnsplittableSeriesError
from datadog_exporter.series import MetricSeries

logger = logging.getLogger(__name__)

# Limits published for the metrics submission API
MAX_PAYLOAD_BYTES = 3_200_000
MAX_DECOMPRESSED_PAYLOAD = 62_914_560


def encode_body(series: Sequence[Dict[str, Any]]) -> bytes:
    """Serialize wire series into a ``{"series": [...]}`` request body."""
    try:
        return json.dumps(
            {"series": list(series)},
            separators=(",", ":"),
            allow_nan=False,
        ).encode("utf-8")
    except (TypeError, ValueError) as e:
        raise EncodeError(f"Failed to serialize series: {e}") from e


def compress_body(body: bytes) -> bytes:
    return gzip.compress(body)


def pack(
    series: Sequence[MetricSeries],
    compress: bool,
    max_payload_bytes: int = MAX_PAYLOAD_BYTES,
    max_decompressed_bytes: int = MAX_DECOMPRESSED_PAYLOAD,
) -> List[bytes]:
    """Split series into request bodies that each fit the size limits.

    A batch that is too large is cut at its midpoint and both halves are
    retried, left half first, so payloads come out in series order. With
    compression the raw body is checked against the decompressed limit
    before gzip is attempted, and the compressed body must fit under
    ``max_payload_bytes``.

    Args:
        series: Collected series, in export order
        compress: Gzip each payload
        max_payload_bytes: Limit on the bytes actually sent
        max_decompressed_bytes: Limit on the raw body when compressing

    Returns:
        Request bodies, empty when there is nothing to send

    Raises:
        UnsplittableSeriesError: A single wire series is over the limit
        EncodeError: A series could not be serialized
    """
    wire = [entry for s in series for entry in s.to_wire()]
    if not wire:
        return []

    payloads: List[bytes] = []
    # Stack of (start, end) slices; the right half is pushed first
    pending = [(0, len(wire))]

    while pending:
        start, end = pending.pop()
        batch = wire[start:end]
        body = encode_body(batch)

        if compress:
            if len(body) < max_decompressed_bytes:
                compressed = compress_body(body)
                if len(compressed) < max_payload_bytes:
                    payloads.append(compressed)
                    continue
                size, limit = len(compressed), max_payload_bytes
            else:
                size, limit = len(body), max_decompressed_bytes
        else:
            if len(body) < max_payload_bytes:
                payloads.append(body)
                continue
            size, limit = len(body), max_payload_bytes

        if len(batch) == 1:
            raise UnsplittableSeriesError(batch[0]["metric"], size, limit)

        mid = start + len(batch) // 2
        pending.append((mid, end))
        pending.append((start, mid))

    logger.debug(f"Packed {len(wire)} series into {len(payloads)} payloads")
    return payloads
