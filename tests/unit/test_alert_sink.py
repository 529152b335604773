"""
Unit tests for alert sinks and batch publishing.
"""

import json
from datetime import datetime, timezone

from backend.alerts import (
    AlertSink,
    InMemoryAlertSink,
    JsonLinesAlertSink,
    publish_anomalies,
)
from src.anomaly.schema import Anomaly, AnomalyMetrics, AnomalySeverity
from src.core.exceptions import AlertSinkError


def _anomaly(value: float = 31.0) -> Anomaly:
    return Anomaly(
        timestamp=1000,
        device_id="sensor_1",
        anomaly_type="TEMP_SPIKE",
        severity=AnomalySeverity.MODERATE,
        metrics=AnomalyMetrics(
            metric_name="temperature",
            current_value=value,
            mean=25.0,
            stddev=2.0,
            z_score=3.0,
        ),
        retention_horizon=2592000,
        detected_at=datetime(1970, 1, 1, tzinfo=timezone.utc),
    )


class FlakySink(AlertSink):
    """Fails on the first record, accepts the rest."""

    def __init__(self) -> None:
        self.calls = 0
        self.records = []

    def publish(self, record):
        self.calls += 1
        if self.calls == 1:
            raise AlertSinkError("throttled")
        self.records.append(record)


def test_alert_record_shape():
    record = _anomaly().to_alert_record()

    assert set(record) == {
        "alert_id",
        "timestamp",
        "device_id",
        "anomaly_type",
        "severity",
        "metrics",
        "retention_horizon",
        "detected_at",
    }
    assert record["severity"] == "MODERATE"
    assert record["metrics"] == {
        "metric_name": "temperature",
        "current_value": 31.0,
        "mean": 25.0,
        "stddev": 2.0,
        "z_score": 3.0,
    }
    assert record["detected_at"].startswith("1970-01-01T00:00:00")


def test_in_memory_sink_collects_records():
    sink = InMemoryAlertSink()
    anomalies = [_anomaly(), _anomaly(32.0)]

    report = publish_anomalies(anomalies, sink)

    assert report.published_count == 2
    assert report.failed_count == 0
    assert [r["alert_id"] for r in sink.records] == [a.alert_id for a in anomalies]


def test_failure_does_not_stop_remaining_records():
    sink = FlakySink()
    anomalies = [_anomaly(), _anomaly(32.0), _anomaly(33.0)]

    report = publish_anomalies(anomalies, sink)

    assert sink.calls == 3
    assert report.published == [anomalies[1].alert_id, anomalies[2].alert_id]
    assert report.failed == {anomalies[0].alert_id: "throttled"}


def test_json_lines_sink_appends(tmp_path):
    path = tmp_path / "alerts" / "alerts.jsonl"
    sink = JsonLinesAlertSink(path)

    publish_anomalies([_anomaly()], sink)
    publish_anomalies([_anomaly(40.0)], sink)

    lines = path.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 2
    assert json.loads(lines[1])["metrics"]["current_value"] == 40.0


def test_json_lines_sink_reports_unwritable_path(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("x", encoding="utf-8")
    sink = JsonLinesAlertSink(blocker / "alerts.jsonl")

    report = publish_anomalies([_anomaly()], sink)

    assert report.failed_count == 1
