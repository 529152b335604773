"""
Alert sink and alert query exports.
"""

from .query import (
    AlertStats,
    AlertSummary,
    parse_severity,
    summarize_alerts,
)
from .sink import (
    AlertSink,
    InMemoryAlertSink,
    JsonLinesAlertSink,
    PublishReport,
    publish_anomalies,
)

__all__ = [
    "AlertSink",
    "InMemoryAlertSink",
    "JsonLinesAlertSink",
    "PublishReport",
    "publish_anomalies",
    "AlertStats",
    "AlertSummary",
    "parse_severity",
    "summarize_alerts",
]
