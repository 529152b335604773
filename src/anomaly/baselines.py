"""
Window statistics for anomaly baselines.

Computes population mean/stddev/min/max per metric over a window of one
device's readings. Recomputed fresh on every call; nothing is carried
between invocations.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, Sequence

from src.data.schema import Metric, Reading

from .schema import MetricStatistics

DETECTION_METRICS: FrozenSet[Metric] = frozenset(
    {
        Metric.TEMPERATURE,
        Metric.HUMIDITY,
        Metric.GAS_CONCENTRATION,
        Metric.RISK_SCORE,
    }
)


def _valid_values(readings: Iterable[Reading], metric: Metric) -> List[float]:
    values = []
    for reading in readings:
        value = reading.value_of(metric)
        if value is None or isinstance(value, bool):
            continue
        if not isinstance(value, (int, float)) or not math.isfinite(value):
            continue
        values.append(float(value))
    return values


def summarize(values: Sequence[float]) -> MetricStatistics:
    """
    Population statistics for a list of values.

    Summation is exactly rounded, so the result does not depend on order.
    """
    if not values:
        return MetricStatistics.empty()

    count = len(values)
    mean = math.fsum(values) / count
    variance = math.fsum((v - mean) ** 2 for v in values) / count
    stddev = math.sqrt(variance)

    # identical values can leave rounding noise in the mean
    lowest, highest = min(values), max(values)
    if lowest == highest:
        mean, stddev = lowest, 0.0

    return MetricStatistics(mean=mean, stddev=stddev, count=count, min=lowest, max=highest)


def compute_statistics(
    readings: Sequence[Reading],
    metrics: Iterable[str],
) -> Dict[Metric, MetricStatistics]:
    """
    Compute per-metric statistics over a single device's readings.

    Args:
        readings: Readings of one device (caller partitions by device_id)
        metrics: Metric names to summarize

    Returns:
        Mapping metric -> MetricStatistics; every requested metric is
        present, with a zeroed record when it has no valid values
    """
    return {
        Metric(metric): summarize(_valid_values(readings, Metric(metric)))
        for metric in metrics
    }


@dataclass
class WindowStatisticsEngine:
    """
    Computes baselines for a fixed set of metrics.
    """

    metrics: FrozenSet[Metric] = field(default_factory=lambda: DETECTION_METRICS)

    def compute(self, readings: Sequence[Reading]) -> Dict[Metric, MetricStatistics]:
        return compute_statistics(readings, self.metrics)
