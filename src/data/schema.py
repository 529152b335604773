"""
Canonical internal reading schema for the sensor analytics pipeline.

This module defines the standardized representation of a single sensor
reading after normalization, and the bucketed summaries produced by
interval aggregation. All sources are converted to these models before
statistics, detection, or aggregation.

Design rationale:
- Minimal fields (only what's needed for detection and history views)
- Timestamps are integer epoch milliseconds, UTC
- Metric values are optional: a missing value is distinct from a zero reading
- Readings are immutable once created
"""

from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class Metric(str, Enum):
    """
    Metrics carried by a reading that statistics and aggregation understand.
    """
    TEMPERATURE = "temperature"
    HUMIDITY = "humidity"
    PRESSURE = "pressure"
    GAS_CONCENTRATION = "gas_concentration"
    RISK_SCORE = "risk_score"


AGGREGATED_METRICS = (
    Metric.TEMPERATURE,
    Metric.HUMIDITY,
    Metric.PRESSURE,
    Metric.GAS_CONCENTRATION,
    Metric.RISK_SCORE,
)


class Reading(BaseModel):
    """
    Canonical representation of a single sensor reading.

    Attributes:
        device_id: Identifier of the reporting sensor
        timestamp: Epoch milliseconds (UTC) when the reading was taken
        temperature: Degrees Celsius
        humidity: Relative humidity, percent (0-100)
        pressure: Hectopascals
        gas_concentration: Parts per million
        risk_score: Composite wildfire risk (0-100), present once enriched
        heat_index: Feels-like temperature in Celsius (enriched)
        dew_point: Condensation temperature in Celsius (enriched)
        ttl: Retention horizon in epoch seconds (enriched)
        enriched_at: ISO-8601 time of enrichment (enriched)

    Notes:
        - Frozen: readings are never mutated after creation
        - Metric fields are None when the sensor did not report them
    """

    model_config = ConfigDict(frozen=True)

    device_id: str = Field(
        ...,
        min_length=1,
        max_length=128,
        description="Sensor identifier"
    )

    timestamp: int = Field(
        ...,
        ge=0,
        description="Epoch milliseconds (UTC)"
    )

    temperature: Optional[float] = Field(default=None, description="Celsius")
    humidity: Optional[float] = Field(default=None, description="Relative humidity %")
    pressure: Optional[float] = Field(default=None, description="hPa")
    gas_concentration: Optional[float] = Field(default=None, description="ppm")
    risk_score: Optional[float] = Field(default=None, description="0-100")

    heat_index: Optional[float] = Field(default=None, description="Celsius")
    dew_point: Optional[float] = Field(default=None, description="Celsius")
    ttl: Optional[int] = Field(default=None, description="Retention horizon, epoch seconds")
    enriched_at: Optional[str] = Field(default=None, description="ISO-8601 enrichment time")

    def value_of(self, metric: str) -> Optional[float]:
        """Return the value recorded for a metric name, or None."""
        return getattr(self, Metric(metric).value)


class MetricAggregate(BaseModel):
    """
    Summary of one metric inside a bucket.

    Attributes:
        avg: Mean of the bucket's values, rounded to 2 decimals
        max: Largest value, rounded to 2 decimals
        min: Smallest value, rounded to 2 decimals
        count: Number of readings that reported the metric
    """

    avg: float
    max: float
    min: float
    count: int = Field(..., ge=1)


class Bucket(BaseModel):
    """
    Aggregated readings of one device within a fixed time interval.

    Produced by interval aggregation and handed to presentation.

    Attributes:
        device_id: Sensor identifier
        time: Bucket start as ISO-8601 string (UTC, millisecond precision)
        timestamp: Bucket start as epoch milliseconds
        metrics: Per-metric aggregate, or None if no reading reported it
        sample_count: Number of readings that fell into the bucket

    Notes:
        - A None aggregate means "no data", never a zero reading
        - Empty buckets are not created
    """

    device_id: str
    time: str
    timestamp: int
    metrics: Dict[str, Optional[MetricAggregate]]
    sample_count: int = Field(..., ge=1)
