"""
Time-interval aggregation for sensor readings.

Groups readings into fixed time buckets (e.g., 5-minute or 1-hour) per
device and summarizes each tracked metric. Produces Bucket objects suitable
for historical charts.

Design:
- Fixed interval from a small supported set (5m, 15m, 1h, 6h, 1d)
- Buckets aligned to epoch boundaries (floor(ts / interval) * interval)
- Each device gets its own bucket
- A metric with no samples in a bucket aggregates to None, not zeros
- Output newest first; ties broken by device_id so the order is stable
"""

import logging
import math
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Tuple, Union

from src.core.config import AggregationConfig
from src.core.exceptions import AggregationError
from src.data.schema import AGGREGATED_METRICS, Bucket, MetricAggregate, Reading

logger = logging.getLogger(__name__)

INTERVALS: Dict[str, int] = AggregationConfig().intervals

BucketKey = Tuple[str, int]

# Freshness window for the latest-reading view
REALTIME_WINDOW_MS = 5 * 60 * 1000


def resolve_interval(
    interval: Union[str, int],
    settings: Optional[AggregationConfig] = None,
) -> int:
    """
    Translate an interval label (or millisecond value) to milliseconds.

    Args:
        interval: One of the supported labels, or one of their ms values
        settings: Aggregation settings holding the supported intervals

    Returns:
        Interval duration in milliseconds

    Raises:
        AggregationError: If the interval is not supported
    """
    intervals = (settings or AggregationConfig()).intervals

    if isinstance(interval, str) and interval in intervals:
        return intervals[interval]
    if isinstance(interval, int) and not isinstance(interval, bool):
        if interval in intervals.values():
            return interval

    raise AggregationError(
        f"Invalid interval {interval!r}. Valid values: {', '.join(intervals)}"
    )


def align_timestamp_to_interval(timestamp_ms: int, interval_ms: int) -> int:
    """
    Align an epoch-ms timestamp down to its interval boundary.

    Example with a 5-minute interval (300000 ms):
    - 10:32:00 -> 10:30:00 (aligned down)
    - 10:30:00 -> 10:30:00 (already aligned)
    """
    if interval_ms <= 0:
        raise AggregationError("Interval must be positive")
    return (timestamp_ms // interval_ms) * interval_ms


def format_bucket_time(timestamp_ms: int) -> str:
    """
    Render an epoch-ms timestamp as ISO-8601 UTC with millisecond precision.

    Example: 0 -> "1970-01-01T00:00:00.000Z"
    """
    dt = datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_iso_timestamp(value: str) -> int:
    """
    Parse an ISO-8601 string into epoch milliseconds.

    Naive values are taken as UTC.

    Raises:
        AggregationError: If the value is not a valid ISO-8601 timestamp
    """
    if not value:
        raise AggregationError("Missing ISO 8601 timestamp")
    try:
        dt = datetime.fromisoformat(str(value).strip().replace("Z", "+00:00"))
    except ValueError as exc:
        raise AggregationError(f"Invalid ISO 8601 timestamp format: {value}") from exc
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp() * 1000)


def summarize_values(values: List[float]) -> Optional[MetricAggregate]:
    """
    Summarize a bucket's values for one metric.

    Returns:
        MetricAggregate with avg, max and min rounded to 2 decimals, or None
        if empty
    """
    if not values:
        return None

    return MetricAggregate(
        avg=round(math.fsum(values) / len(values), 2),
        max=round(max(values), 2),
        min=round(min(values), 2),
        count=len(values),
    )


def aggregate_readings(
    readings: Iterable[Reading],
    interval: Union[str, int] = "1h",
    settings: Optional[AggregationConfig] = None,
) -> List[Bucket]:
    """
    Aggregate readings into time buckets, grouped by device.

    Args:
        readings: Readings for any number of devices
        interval: Supported interval label or its millisecond value
        settings: Aggregation settings holding the supported intervals

    Returns:
        Buckets ordered by bucket start descending, then device_id

    Notes:
        - Empty buckets are not created
        - Result does not depend on input order

    Raises:
        AggregationError: If the interval is not supported
    """
    interval_ms = resolve_interval(interval, settings)

    grouped: Dict[BucketKey, List[Reading]] = {}
    for reading in readings:
        key = (reading.device_id, align_timestamp_to_interval(reading.timestamp, interval_ms))
        grouped.setdefault(key, []).append(reading)

    buckets: List[Bucket] = []
    for (device_id, bucket_start), members in grouped.items():
        metrics: Dict[str, Optional[MetricAggregate]] = {}
        for metric in AGGREGATED_METRICS:
            values = [
                value for value in (r.value_of(metric) for r in members)
                if value is not None and math.isfinite(value)
            ]
            metrics[metric.value] = summarize_values(values)

        buckets.append(
            Bucket(
                device_id=device_id,
                time=format_bucket_time(bucket_start),
                timestamp=bucket_start,
                metrics=metrics,
                sample_count=len(members),
            )
        )

    buckets.sort(key=lambda b: b.device_id)
    buckets.sort(key=lambda b: b.timestamp, reverse=True)

    logger.debug(
        "Aggregated readings into %d buckets at %d ms interval", len(buckets), interval_ms
    )
    return buckets


def filter_readings_by_range(
    readings: Iterable[Reading],
    start_ms: int,
    end_ms: int,
    device_id: Optional[str] = None,
) -> List[Reading]:
    """
    Select readings within [start_ms, end_ms], optionally for one device.

    Both bounds are inclusive.

    Raises:
        AggregationError: If start_ms is after end_ms
    """
    if start_ms > end_ms:
        raise AggregationError("Range start must not be after range end")

    return [
        r for r in readings
        if start_ms <= r.timestamp <= end_ms
        and (device_id is None or r.device_id == device_id)
    ]


def latest_per_device(
    readings: Iterable[Reading],
    since_ms: int,
    device_id: Optional[str] = None,
) -> List[Reading]:
    """
    Latest reading of each device at or after since_ms.

    When two readings of a device share a timestamp the first one seen is
    kept. Result is ordered by device_id.
    """
    latest: Dict[str, Reading] = {}
    for reading in readings:
        if reading.timestamp < since_ms:
            continue
        if device_id is not None and reading.device_id != device_id:
            continue
        current = latest.get(reading.device_id)
        if current is None or reading.timestamp > current.timestamp:
            latest[reading.device_id] = reading

    return [latest[d] for d in sorted(latest)]


def get_devices_in_buckets(buckets: Iterable[Bucket]) -> set:
    """Get all unique device ids across buckets."""
    return {bucket.device_id for bucket in buckets}


def summarize_buckets(buckets: List[Bucket]) -> str:
    """
    Create a human-readable summary of aggregated buckets.

    Example output:
        Aggregated 150 readings into 4 buckets
          - sensor_1: 3 bucket(s) (50 readings)
          - sensor_2: 1 bucket(s) (100 readings)
        Time range: 2025-02-07T10:00:00.000Z to 2025-02-07T13:00:00.000Z
    """
    if not buckets:
        return "No buckets"

    total = sum(b.sample_count for b in buckets)
    per_device: Dict[str, Tuple[int, int]] = {}
    for bucket in buckets:
        count, samples = per_device.get(bucket.device_id, (0, 0))
        per_device[bucket.device_id] = (count + 1, samples + bucket.sample_count)

    lines = [f"Aggregated {total} readings into {len(buckets)} buckets"]
    for device_id in sorted(per_device):
        count, samples = per_device[device_id]
        lines.append(f"  - {device_id}: {count} bucket(s) ({samples} readings)")

    earliest = min(b.timestamp for b in buckets)
    latest = max(b.timestamp for b in buckets)
    lines.append(
        f"Time range: {format_bucket_time(earliest)} to {format_bucket_time(latest)}"
    )
    return "\n".join(lines)
