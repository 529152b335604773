"""
Z-score detector for statistical deviations.

z = (value - mean) / stddev, using population statistics of the baseline.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .schema import MetricStatistics


@dataclass
class ZScoreDetector:
    """
    Z-score detector with a warm-up requirement.

    Returns None when the baseline has fewer than min_samples values or no
    variation at all; such signals are never judged anomalous.
    """

    min_samples: int = 5

    def compute(self, observed: float, baseline: MetricStatistics) -> Optional[float]:
        if baseline.count < self.min_samples or baseline.stddev == 0:
            return None
        return (observed - baseline.mean) / baseline.stddev

    @staticmethod
    def exceeds(zscore: Optional[float], threshold: float) -> bool:
        """Strict comparison: |z| equal to the threshold is not anomalous."""
        return zscore is not None and abs(zscore) > threshold
