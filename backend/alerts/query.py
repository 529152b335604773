"""
Alert queries over published anomalies.

Filters a set of alerts by device and severity, orders them newest first,
caps the result size, and counts what was returned by severity and by
anomaly type.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Union

from pydantic import BaseModel, Field

from src.anomaly.schema import Anomaly, AnomalySeverity
from src.core.exceptions import AlertQueryError

logger = logging.getLogger(__name__)

DEFAULT_ALERT_LIMIT = 50
MAX_ALERT_LIMIT = 100


class AlertStats(BaseModel):
    """Counts over the returned alerts."""

    total: int = 0
    by_severity: Dict[str, int] = Field(
        default_factory=lambda: {s.value: 0 for s in AnomalySeverity}
    )
    by_type: Dict[str, int] = Field(default_factory=dict)


class AlertSummary(BaseModel):
    """Result of an alert query."""

    data: List[Anomaly]
    count: int
    stats: AlertStats
    query: Dict[str, Union[str, int]]


def parse_severity(value: Optional[str]) -> Optional[AnomalySeverity]:
    """
    Resolve a case-insensitive severity name.

    Raises:
        AlertQueryError: If the name is not a known severity
    """
    if value is None:
        return None
    try:
        return AnomalySeverity(value.strip().upper())
    except ValueError as exc:
        valid = ", ".join(s.value for s in AnomalySeverity)
        raise AlertQueryError(f"Invalid severity. Valid values: {valid}") from exc


def summarize_alerts(
    anomalies: Iterable[Anomaly],
    device_id: Optional[str] = None,
    severity: Optional[Union[str, AnomalySeverity]] = None,
    limit: int = DEFAULT_ALERT_LIMIT,
) -> AlertSummary:
    """
    Select alerts and summarize them.

    Args:
        anomalies: Alerts to query
        device_id: Keep only this device's alerts
        severity: Keep only this severity (name is case-insensitive)
        limit: Maximum number of alerts returned, capped at 100

    Returns:
        AlertSummary with alerts newest first and counts over them

    Raises:
        AlertQueryError: On an unknown severity or a non-positive limit
    """
    if limit < 1:
        raise AlertQueryError(f"Limit must be positive, got {limit}")
    limit = min(limit, MAX_ALERT_LIMIT)

    if isinstance(severity, AnomalySeverity):
        wanted = severity
    else:
        wanted = parse_severity(severity)

    selected = [
        a for a in anomalies
        if (device_id is None or a.device_id == device_id)
        and (wanted is None or a.severity == wanted)
    ]
    selected.sort(key=lambda a: a.timestamp, reverse=True)
    selected = selected[:limit]

    stats = AlertStats(total=len(selected))
    for alert in selected:
        stats.by_severity[alert.severity.value] += 1
        stats.by_type[alert.anomaly_type] = stats.by_type.get(alert.anomaly_type, 0) + 1

    if selected:
        strongest = max(selected, key=lambda a: abs(a.z_score))
        logger.info(
            "Strongest alert in query: %s %s (z=%.2f)",
            strongest.device_id,
            strongest.metric_name,
            strongest.z_score,
        )

    return AlertSummary(
        data=selected,
        count=len(selected),
        stats=stats,
        query={
            "deviceId": device_id or "all",
            "severity": wanted.value if wanted else "all",
            "limit": limit,
        },
    )
