"""
Schema definitions for anomaly detection.

All anomaly outputs are deterministic and explainable. Each anomaly references
its observed value, the baseline statistics it was compared against, and the
resulting z-score.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict
from uuid import uuid4

from pydantic import BaseModel, Field


class AnomalySeverity(str, Enum):
    """Severity bands, ordered from least to most severe."""

    LOW = "LOW"
    MODERATE = "MODERATE"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class MetricStatistics(BaseModel):
    """
    Baseline statistics for a single device and metric.

    Fields:
    - mean: population mean
    - stddev: population standard deviation (divide by N)
    - count: number of valid values used
    - min/max: value range

    count == 0 yields an all-zero record.
    """

    mean: float = 0.0
    stddev: float = Field(0.0, ge=0.0)
    count: int = Field(0, ge=0)
    min: float = 0.0
    max: float = 0.0

    @classmethod
    def empty(cls) -> "MetricStatistics":
        return cls()


class AnomalyMetrics(BaseModel):
    """
    Numeric evidence for an anomaly, rounded to 2 decimals.
    """

    metric_name: str
    current_value: float
    mean: float
    stddev: float
    z_score: float


class Anomaly(BaseModel):
    """
    A single (reading, metric) pair whose z-score crossed the threshold.

    Fields:
    - alert_id: fresh unique identifier
    - timestamp: triggering reading's timestamp (epoch ms)
    - device_id: reporting sensor
    - anomaly_type: metric prefix plus direction, e.g. TEMP_SPIKE
    - severity: band of |z|
    - metrics: observed value, baseline and z-score
    - retention_horizon: epoch seconds after which the alert may be dropped
    - detected_at: detection wall-clock time (UTC)
    """

    alert_id: str = Field(default_factory=lambda: str(uuid4()))
    timestamp: int
    device_id: str
    anomaly_type: str
    severity: AnomalySeverity
    metrics: AnomalyMetrics
    retention_horizon: int
    detected_at: datetime

    @property
    def metric_name(self) -> str:
        return self.metrics.metric_name

    @property
    def z_score(self) -> float:
        return self.metrics.z_score

    def to_alert_record(self) -> Dict[str, Any]:
        """Render the record handed to alert sinks."""
        record = self.model_dump(mode="json")
        record["severity"] = self.severity.value
        return record
