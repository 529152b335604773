"""
Alert sinks for detected anomalies.

A sink persists one alert record at a time. Publishing walks the full list
of anomalies and attempts every record, so one failed write never prevents
the others from being written.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Union

from src.anomaly.schema import Anomaly
from src.core.exceptions import AlertSinkError

logger = logging.getLogger(__name__)


class AlertSink(ABC):
    """Destination for alert records."""

    @abstractmethod
    def publish(self, record: Dict[str, Any]) -> None:
        """
        Persist a single alert record.

        Raises:
            AlertSinkError: If the record could not be persisted
        """


class InMemoryAlertSink(AlertSink):
    """Keeps records in a list. Useful for tests and dry runs."""

    def __init__(self) -> None:
        self.records: List[Dict[str, Any]] = []

    def publish(self, record: Dict[str, Any]) -> None:
        self.records.append(record)


class JsonLinesAlertSink(AlertSink):
    """Appends one JSON object per alert to a file."""

    def __init__(self, path: Union[str, Path], encoding: str = "utf-8") -> None:
        self.path = Path(path)
        self.encoding = encoding

    def publish(self, record: Dict[str, Any]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding=self.encoding) as f:
                f.write(json.dumps(record) + "\n")
        except OSError as exc:
            raise AlertSinkError(f"Failed to write alert to {self.path}: {exc}") from exc


@dataclass
class PublishReport:
    """Outcome of publishing a batch of anomalies."""

    published: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)

    @property
    def published_count(self) -> int:
        return len(self.published)

    @property
    def failed_count(self) -> int:
        return len(self.failed)


def publish_anomalies(anomalies: Iterable[Anomaly], sink: AlertSink) -> PublishReport:
    """
    Publish every anomaly to the sink, isolating per-record failures.

    Args:
        anomalies: Anomalies produced by detection
        sink: Destination for alert records

    Returns:
        PublishReport listing published alert ids and failures by alert id
    """
    report = PublishReport()

    for anomaly in anomalies:
        try:
            sink.publish(anomaly.to_alert_record())
        except AlertSinkError as exc:
            logger.error("Failed to publish alert %s: %s", anomaly.alert_id, exc)
            report.failed[anomaly.alert_id] = str(exc)
            continue
        report.published.append(anomaly.alert_id)

    if report.failed:
        logger.warning(
            "Published %d alerts, %d failed", report.published_count, report.failed_count
        )
    return report
