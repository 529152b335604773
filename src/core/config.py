"""
Application configuration for the wildfire sensor analytics core.

Provides environment-aware settings with conservative defaults. Detection
thresholds and window sizes are configurable to avoid hard-coded "magic numbers".
Each component receives its section explicitly, so tests and batch jobs can
run several configurations side by side.
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional, Tuple

from pydantic import AliasChoices, BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError

MINUTE_MS = 60 * 1000
HOUR_MS = 60 * MINUTE_MS
DAY_MS = 24 * HOUR_MS


class SeverityThresholds(BaseModel):
	"""
	Lower edges of the |z| severity bands.

	Anything above the detection threshold but below `moderate` is LOW.
	"""

	moderate: float = Field(3.0, gt=0.0, description="MODERATE from this |z| upward")
	high: float = Field(3.5, gt=0.0, description="HIGH from this |z| upward")
	critical: float = Field(4.0, gt=0.0, description="CRITICAL from this |z| upward")

	@model_validator(mode="after")
	def _check_order(self) -> "SeverityThresholds":
		if not (self.moderate <= self.high <= self.critical):
			raise ConfigurationError(
				f"Severity bands must be non-decreasing: "
				f"moderate={self.moderate}, high={self.high}, critical={self.critical}"
			)
		return self


class DetectionConfig(BaseModel):
	"""
	Configuration for z-score anomaly detection.

	Notes:
	- lookback_window_ms: baseline range ending at "now".
	- detection_window_ms: most recent range whose readings are tested.
	- min_samples: baseline readings required before a metric is judged.
	- exclude_detection_from_baseline: when False (default) the baseline also
	  contains the readings under test, which damps sustained deviations.
	"""

	z_score_threshold: float = Field(2.5, gt=0.0)
	lookback_window_ms: int = Field(HOUR_MS, gt=0)
	detection_window_ms: int = Field(5 * MINUTE_MS, gt=0)
	min_samples: int = Field(5, ge=1)
	exclude_detection_from_baseline: bool = False
	severity: SeverityThresholds = SeverityThresholds()

	tracked_metrics: List[Tuple[str, str]] = Field(
		default_factory=lambda: [
			("temperature", "TEMP"),
			("humidity", "HUMIDITY"),
			("gas_concentration", "GAS"),
			("risk_score", "RISK"),
		],
		description="(metric name, anomaly type prefix) pairs checked per reading",
	)

	@model_validator(mode="after")
	def _check_windows(self) -> "DetectionConfig":
		if self.detection_window_ms > self.lookback_window_ms:
			raise ConfigurationError(
				"detection_window_ms cannot exceed lookback_window_ms"
			)
		return self


class AggregationConfig(BaseModel):
	"""
	Configuration for historical interval aggregation.
	"""

	default_interval: str = Field("1h", description="One of 5m, 15m, 1h, 6h, 1d")
	intervals: Dict[str, int] = Field(
		default_factory=lambda: {
			"5m": 5 * MINUTE_MS,
			"15m": 15 * MINUTE_MS,
			"1h": HOUR_MS,
			"6h": 6 * HOUR_MS,
			"1d": DAY_MS,
		}
	)

	@model_validator(mode="after")
	def _check_default(self) -> "AggregationConfig":
		if self.default_interval not in self.intervals:
			raise ConfigurationError(
				f"Unsupported default interval: {self.default_interval}"
			)
		return self


class RetentionConfig(BaseModel):
	"""
	Retention horizons, in days, stamped onto produced records.
	"""

	anomaly_days: int = Field(30, ge=1)
	reading_days: int = Field(90, ge=1)


class Config(BaseSettings):
	"""
	Global configuration with environment overrides.

	Nested values use a double underscore, e.g.
	WILDFIRE_DETECTION__MIN_SAMPLES=10. The bare Z_SCORE_THRESHOLD variable
	is honored for compatibility with existing deployments.
	"""

	model_config = SettingsConfigDict(
		env_prefix="WILDFIRE_",
		env_nested_delimiter="__",
		env_file=".env",
		extra="ignore",
		populate_by_name=True,
	)

	log_level: str = Field("INFO", description="Default logging level")
	logs_dir: Path = Field(Path("logs"), description="Directory for log files")

	z_score_threshold: Optional[float] = Field(
		None,
		gt=0.0,
		validation_alias=AliasChoices("z_score_threshold", "Z_SCORE_THRESHOLD"),
		description="Shortcut override for detection.z_score_threshold",
	)

	detection: DetectionConfig = DetectionConfig()
	aggregation: AggregationConfig = AggregationConfig()
	retention: RetentionConfig = RetentionConfig()

	def model_post_init(self, __context: object) -> None:
		if self.z_score_threshold is not None:
			self.detection = self.detection.model_copy(
				update={"z_score_threshold": self.z_score_threshold}
			)


config = Config()
