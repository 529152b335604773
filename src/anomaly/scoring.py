"""
Severity mapping and anomaly naming.

Maps |z| to severity bands with configurable lower edges and names the
anomaly from the metric prefix and the sign of z.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from src.core.config import SeverityThresholds

from .schema import AnomalySeverity

SEVERITY_ORDER = [
    AnomalySeverity.LOW,
    AnomalySeverity.MODERATE,
    AnomalySeverity.HIGH,
    AnomalySeverity.CRITICAL,
]


@dataclass
class SeverityMapper:
    """
    Maps z-scores to severity levels.

    Band edges are inclusive on the lower end:
    - |z| >= critical -> CRITICAL
    - |z| >= high     -> HIGH
    - |z| >= moderate -> MODERATE
    - otherwise       -> LOW (the caller has already applied the threshold)
    """

    thresholds: SeverityThresholds = field(default_factory=SeverityThresholds)

    def zscore_severity(self, zscore: float) -> AnomalySeverity:
        z = abs(zscore)
        if z >= self.thresholds.critical:
            return AnomalySeverity.CRITICAL
        if z >= self.thresholds.high:
            return AnomalySeverity.HIGH
        if z >= self.thresholds.moderate:
            return AnomalySeverity.MODERATE
        return AnomalySeverity.LOW


def anomaly_type(prefix: str, zscore: float) -> str:
    """
    Name an anomaly by metric prefix and direction, e.g. TEMP_SPIKE / TEMP_DROP.
    """
    return f"{prefix}_SPIKE" if zscore > 0 else f"{prefix}_DROP"


def overall_severity(*severities: AnomalySeverity) -> AnomalySeverity:
    """
    Return the highest severity among inputs.
    """
    highest_index = max(SEVERITY_ORDER.index(s) for s in severities)
    return SEVERITY_ORDER[highest_index]
