"""
Integration tests for the full batch pipeline.

Tests end-to-end flow from raw device payloads through enrichment,
anomaly detection and interval aggregation, via the batch job runner.
"""

import json

import pytest

from backend.main import main
from src.anomaly import AnomalyDetector
from src.core.config import DetectionConfig
from src.data import aggregate_readings, enrich_reading, normalize_readings

MINUTE_MS = 60 * 1000
NOW_ISO = "2025-02-07T10:00:00Z"
NOW_MS = 1738922400000


def _payloads():
    """Twenty calm payloads for two sensors, then a hot, smoky one for sensor_1."""
    payloads = []
    for i in range(20):
        for device in ("sensor_1", "sensor_2"):
            payloads.append(
                {
                    "id": device,
                    "timestamp": NOW_MS - (50 - 2 * i) * MINUTE_MS,
                    "temp": 23.0 if i % 2 == 0 else 27.0,
                    "hum": 49.0 if i % 2 == 0 else 51.0,
                    "press": 1010.0,
                    "gas": 380.0 if i % 2 == 0 else 420.0,
                }
            )
    payloads.append(
        {
            "id": "sensor_1",
            "timestamp": NOW_MS - MINUTE_MS,
            "temp": 45.0,
            "hum": 50.0,
            "press": 1010.0,
            "gas": 400.0,
        }
    )
    return payloads


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("WILDFIRE_LOG_LEVEL", "WARNING")
    return tmp_path


@pytest.mark.integration
class TestPipeline:
    """In-process pipeline without the CLI."""

    def test_enrich_detect_aggregate(self):
        readings = [
            enrich_reading(p, now_ms=p["timestamp"]) for p in _payloads()
        ]

        detector = AnomalyDetector(settings=DetectionConfig())
        anomalies = detector.detect_all(readings, now_ms=NOW_MS)

        types = {(a.device_id, a.anomaly_type) for a in anomalies}
        assert ("sensor_1", "TEMP_SPIKE") in types
        assert all(a.device_id == "sensor_1" for a in anomalies)

        buckets = aggregate_readings(readings, "1h")
        assert {b.device_id for b in buckets} == {"sensor_1", "sensor_2"}
        assert sum(b.sample_count for b in buckets) == len(readings)
        for bucket in buckets:
            assert bucket.metrics["risk_score"] is not None

    def test_normalized_store_rows(self):
        rows = [
            {"device_id": "d1", "timestamp": 0, "temperature": 20},
            {"device_id": "d1", "timestamp": 120000, "temperature": 22},
            {"timestamp": 5},
        ]

        readings, skipped = normalize_readings(rows)
        buckets = aggregate_readings(readings, "5m")

        assert skipped == 1
        assert buckets[0].metrics["temperature"].avg == 21.0


@pytest.mark.integration
class TestBatchJobs:
    """Batch job runner entry points."""

    def test_enrich_job(self, workdir):
        source = workdir / "raw.json"
        source.write_text(json.dumps(_payloads()[:2] + [{"id": "broken"}]), encoding="utf-8")
        output = workdir / "enriched.json"

        code = main(["--output", str(output), "enrich", str(source)])

        assert code == 0
        enriched = json.loads(output.read_text(encoding="utf-8"))
        assert len(enriched) == 2
        assert all("risk_score" in r and "ttl" in r for r in enriched)

    def test_detect_job_writes_alerts(self, workdir):
        readings = [enrich_reading(p, now_ms=p["timestamp"]) for p in _payloads()]
        source = workdir / "readings.jsonl"
        source.write_text(
            "\n".join(r.model_dump_json() for r in readings) + "\n", encoding="utf-8"
        )
        output = workdir / "result.json"
        alerts = workdir / "alerts.jsonl"

        code = main(
            ["--output", str(output), "detect", str(source), "--now", NOW_ISO, "--alerts", str(alerts)]
        )

        assert code == 0
        result = json.loads(output.read_text(encoding="utf-8"))
        assert result["anomaliesDetected"] >= 1
        assert result["published"] == result["anomaliesDetected"]
        alert_lines = alerts.read_text(encoding="utf-8").splitlines()
        assert len(alert_lines) == result["anomaliesDetected"]
        assert json.loads(alert_lines[0])["device_id"] == "sensor_1"

    def test_detect_job_empty_input(self, workdir):
        source = workdir / "empty.json"
        source.write_text("[]", encoding="utf-8")
        output = workdir / "result.json"

        assert main(["--output", str(output), "detect", str(source)]) == 0
        assert json.loads(output.read_text(encoding="utf-8"))["anomaliesDetected"] == 0

    def test_aggregate_job(self, workdir):
        source = workdir / "readings.json"
        source.write_text(
            json.dumps(
                {
                    "Items": [
                        {"device_id": "d1", "timestamp": 0, "temperature": 20.0},
                        {"device_id": "d1", "timestamp": 120000, "temperature": 22.0},
                        {"device_id": "d2", "timestamp": 86400000 * 3, "temperature": 9.0},
                    ]
                }
            ),
            encoding="utf-8",
        )
        output = workdir / "buckets.json"

        code = main(
            [
                "--output", str(output),
                "aggregate", str(source),
                "--from", "1970-01-01T00:00:00Z",
                "--to", "1970-01-02T00:00:00Z",
                "--interval", "5m",
            ]
        )

        assert code == 0
        result = json.loads(output.read_text(encoding="utf-8"))
        assert result["count"] == 1
        bucket = result["data"][0]
        assert bucket["time"] == "1970-01-01T00:00:00.000Z"
        assert bucket["metrics"]["temperature"] == {"avg": 21.0, "max": 22.0, "min": 20.0, "count": 2}
        assert bucket["metrics"]["humidity"] is None
        assert result["query"]["deviceId"] == "all"

    def test_aggregate_job_rejects_bad_interval(self, workdir):
        source = workdir / "readings.json"
        source.write_text("[]", encoding="utf-8")

        code = main(
            ["aggregate", str(source), "--from", "1970-01-01T00:00:00Z", "--to", "1970-01-02T00:00:00Z", "--interval", "2h"]
        )

        assert code == 2

    def test_missing_input_file(self, workdir):
        assert main(["detect", str(workdir / "nope.json")]) == 2

    def test_detect_job_empty_input_reports_all_counts(self, workdir):
        source = workdir / "empty.json"
        source.write_text("[]", encoding="utf-8")
        output = workdir / "result.json"

        main(["--output", str(output), "detect", str(source)])

        result = json.loads(output.read_text(encoding="utf-8"))
        assert result == {
            "anomaliesDetected": 0,
            "published": 0,
            "failed": 0,
            "skippedReadings": 0,
            "anomalies": [],
        }

    @pytest.mark.parametrize("threshold", ["0", "-1.5"])
    def test_detect_job_rejects_non_positive_threshold(self, workdir, threshold):
        source = workdir / "readings.json"
        source.write_text(json.dumps(_payloads()), encoding="utf-8")

        assert main(["detect", str(source), "--threshold", threshold]) == 2

    def test_alerts_job_queries_published_alerts(self, workdir):
        readings = [enrich_reading(p, now_ms=p["timestamp"]) for p in _payloads()]
        source = workdir / "readings.jsonl"
        source.write_text(
            "\n".join(r.model_dump_json() for r in readings) + "\n", encoding="utf-8"
        )
        alerts = workdir / "alerts.jsonl"
        main(["--output", str(workdir / "detect.json"), "detect", str(source), "--now", NOW_ISO, "--alerts", str(alerts)])
        output = workdir / "query.json"

        code = main(["--output", str(output), "alerts", str(alerts), "--device", "sensor_1", "--limit", "1"])

        assert code == 0
        result = json.loads(output.read_text(encoding="utf-8"))
        assert result["count"] == 1
        assert result["stats"]["total"] == 1
        assert sum(result["stats"]["by_severity"].values()) == 1
        assert result["query"] == {"deviceId": "sensor_1", "severity": "all", "limit": 1}

    def test_alerts_job_rejects_unknown_severity(self, workdir):
        alerts = workdir / "alerts.jsonl"
        alerts.write_text("", encoding="utf-8")

        assert main(["alerts", str(alerts), "--severity", "extreme"]) == 2

    def test_realtime_job(self, workdir):
        source = workdir / "readings.json"
        source.write_text(
            json.dumps(
                [
                    {"device_id": "d1", "timestamp": NOW_MS - 4 * MINUTE_MS, "temperature": 20.0},
                    {"device_id": "d1", "timestamp": NOW_MS - MINUTE_MS, "temperature": 21.0},
                    {"device_id": "d2", "timestamp": NOW_MS - 30 * MINUTE_MS, "temperature": 9.0},
                ]
            ),
            encoding="utf-8",
        )
        output = workdir / "latest.json"

        code = main(["--output", str(output), "realtime", str(source), "--now", NOW_ISO])

        assert code == 0
        result = json.loads(output.read_text(encoding="utf-8"))
        assert result["count"] == 1
        assert result["readings"][0]["temperature"] == 21.0
