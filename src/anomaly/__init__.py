"""
Anomaly module: Statistical anomaly detection for sensor readings.

Implements window statistics, the z-score detector, severity scoring, and
anomaly records.
"""

from .baselines import DETECTION_METRICS, WindowStatisticsEngine, compute_statistics
from .detectors import ZScoreDetector
from .engine import AnomalyDetector, group_by_device
from .schema import Anomaly, AnomalyMetrics, AnomalySeverity, MetricStatistics
from .scoring import SeverityMapper, anomaly_type, overall_severity

__all__ = [
	"AnomalyDetector",
	"Anomaly",
	"AnomalyMetrics",
	"AnomalySeverity",
	"MetricStatistics",
	"DETECTION_METRICS",
	"WindowStatisticsEngine",
	"compute_statistics",
	"group_by_device",
	"ZScoreDetector",
	"SeverityMapper",
	"anomaly_type",
	"overall_severity",
]
