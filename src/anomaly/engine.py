"""
Anomaly detection engine.

Consumes one batch of readings, computes per-device baselines over the
lookback window, and tests the readings of the detection window against
them with a z-score. Every invocation is stateless: no window state or
incremental statistics survive between calls, so devices can be processed
independently and in any order.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from src.core.config import DetectionConfig, RetentionConfig
from src.core.exceptions import AnomalyDetectionError
from src.data.schema import Metric, Reading

from .baselines import compute_statistics
from .detectors import ZScoreDetector
from .schema import Anomaly, AnomalyMetrics, MetricStatistics
from .scoring import SeverityMapper, anomaly_type

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _to_ms(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


def group_by_device(readings: Iterable[Reading]) -> Dict[str, List[Reading]]:
    """Partition readings by device_id, preserving input order per device."""
    grouped: Dict[str, List[Reading]] = {}
    for reading in readings:
        grouped.setdefault(reading.device_id, []).append(reading)
    return grouped


@dataclass
class AnomalyDetector:
    """
    Deterministic z-score anomaly detector.

    Notes:
    - Baseline and detection windows both end at "now".
    - By default the baseline includes the readings under test, so a
      sustained deviation gradually dilutes its own baseline. Set
      DetectionConfig.exclude_detection_from_baseline to keep them disjoint.
    - Each (reading, metric) pair is judged on its own; one reading can
      raise several anomalies.
    """

    settings: DetectionConfig = field(default_factory=DetectionConfig)
    retention: RetentionConfig = field(default_factory=RetentionConfig)
    clock: Callable[[], datetime] = _utcnow

    def __post_init__(self) -> None:
        self._severity_mapper = SeverityMapper(self.settings.severity)
        self._tracked: List[Tuple[Metric, str]] = [
            (Metric(name), prefix) for name, prefix in self.settings.tracked_metrics
        ]

    def detect(
        self,
        device_readings: Sequence[Reading],
        now_ms: Optional[int] = None,
        lookback_window_ms: Optional[int] = None,
        detection_window_ms: Optional[int] = None,
        min_samples: Optional[int] = None,
        z_threshold: Optional[float] = None,
    ) -> List[Anomaly]:
        """
        Detect anomalies in one device's readings.

        Args:
            device_readings: Readings of a single device
            now_ms: Reference time in epoch ms (defaults to the clock)
            lookback_window_ms: Baseline range ending at now
            detection_window_ms: Tested range ending at now
            min_samples: Baseline values required per metric
            z_threshold: |z| must be strictly greater than this

        Returns:
            Anomalies ordered by reading timestamp, then tracked metric order.
            Empty when nothing crosses the threshold.

        Raises:
            AnomalyDetectionError: If readings span several devices or the
                window parameters are invalid
        """
        lookback = lookback_window_ms if lookback_window_ms is not None else self.settings.lookback_window_ms
        detection = detection_window_ms if detection_window_ms is not None else self.settings.detection_window_ms
        min_samples = min_samples if min_samples is not None else self.settings.min_samples
        threshold = z_threshold if z_threshold is not None else self.settings.z_score_threshold

        if lookback <= 0 or detection <= 0:
            raise AnomalyDetectionError("Window sizes must be positive")
        if threshold <= 0:
            raise AnomalyDetectionError("z threshold must be positive")

        device_ids = {r.device_id for r in device_readings}
        if len(device_ids) > 1:
            raise AnomalyDetectionError(
                f"detect() expects a single device, got {sorted(device_ids)}"
            )
        if not device_ids:
            return []
        device_id = next(iter(device_ids))

        detected_at = self.clock()
        if now_ms is None:
            now_ms = _to_ms(detected_at)

        detection_start = now_ms - detection
        baseline_start = now_ms - lookback

        recent = sorted(
            (r for r in device_readings if r.timestamp >= detection_start),
            key=lambda r: r.timestamp,
        )
        if not recent:
            logger.debug("No recent data for device %s", device_id)
            return []

        baseline = [r for r in device_readings if r.timestamp >= baseline_start]
        if self.settings.exclude_detection_from_baseline:
            baseline = [r for r in baseline if r.timestamp < detection_start]

        stats = compute_statistics(baseline, (metric for metric, _ in self._tracked))
        detector = ZScoreDetector(min_samples=min_samples)

        anomalies: List[Anomaly] = []
        for reading in recent:
            for metric, prefix in self._tracked:
                anomaly = self._check(
                    reading, metric, prefix, stats[metric], detector, threshold, detected_at
                )
                if anomaly is not None:
                    anomalies.append(anomaly)

        logger.debug(
            "Device %s: %d baseline, %d recent readings, %d anomalies",
            device_id,
            len(baseline),
            len(recent),
            len(anomalies),
        )
        return anomalies

    def detect_all(
        self,
        readings: Iterable[Reading],
        now_ms: Optional[int] = None,
    ) -> List[Anomaly]:
        """
        Detect anomalies for a batch spanning any number of devices.

        All anomalies are returned up front so that persisting them can
        fail and retry per record without affecting detection.
        """
        if now_ms is None:
            now_ms = _to_ms(self.clock())

        anomalies: List[Anomaly] = []
        for device_readings in group_by_device(readings).values():
            anomalies.extend(self.detect(device_readings, now_ms=now_ms))

        logger.info("Anomaly detection complete: %d anomalies detected", len(anomalies))
        return anomalies

    def _check(
        self,
        reading: Reading,
        metric: Metric,
        prefix: str,
        stats: MetricStatistics,
        detector: ZScoreDetector,
        threshold: float,
        detected_at: datetime,
    ) -> Optional[Anomaly]:
        value = reading.value_of(metric)
        if value is None or not math.isfinite(value):
            return None

        zscore = detector.compute(value, stats)
        if not detector.exceeds(zscore, threshold):
            return None

        severity = self._severity_mapper.zscore_severity(zscore)
        horizon = detected_at + timedelta(days=self.retention.anomaly_days)

        anomaly = Anomaly(
            timestamp=reading.timestamp,
            device_id=reading.device_id,
            anomaly_type=anomaly_type(prefix, zscore),
            severity=severity,
            metrics=AnomalyMetrics(
                metric_name=metric.value,
                current_value=round(value, 2),
                mean=round(stats.mean, 2),
                stddev=round(stats.stddev, 2),
                z_score=round(zscore, 2),
            ),
            retention_horizon=int(horizon.timestamp()),
            detected_at=detected_at,
        )

        logger.warning(
            "Anomaly detected: %s for %s (metric=%s, severity=%s, z=%.2f)",
            anomaly.anomaly_type,
            anomaly.device_id,
            anomaly.metric_name,
            severity.value,
            anomaly.z_score,
        )
        return anomaly
