"""
Unit tests for reading normalization.

Tests conversion of raw records into canonical Reading objects.
"""

from datetime import datetime, timezone

import pytest

from src.core.exceptions import DataValidationError
from src.data.normalizers import (
    canonicalize_fields,
    normalize_metric_value,
    normalize_reading,
    normalize_readings,
    normalize_timestamp,
)


class TestNormalizeTimestamp:
    """Timestamps become epoch milliseconds."""

    def test_epoch_millis(self):
        assert normalize_timestamp(1738922400000) == 1738922400000

    def test_numeric_string(self):
        assert normalize_timestamp("1738922400000") == 1738922400000

    def test_iso_with_z(self):
        assert normalize_timestamp("2025-02-07T10:00:00Z") == 1738922400000

    def test_datetime(self):
        dt = datetime(2025, 2, 7, 10, 0, tzinfo=timezone.utc)

        assert normalize_timestamp(dt) == 1738922400000

    @pytest.mark.parametrize("bad", [None, "", "not a time", -1, True])
    def test_invalid(self, bad):
        with pytest.raises(DataValidationError):
            normalize_timestamp(bad)


class TestNormalizeMetricValue:
    """Missing or non-numeric values become None."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            (21.5, 21.5),
            (0, 0.0),
            ("42.1", 42.1),
            (None, None),
            ("n/a", None),
            (float("nan"), None),
            (True, None),
            ([1], None),
        ],
    )
    def test_values(self, raw, expected):
        assert normalize_metric_value(raw) == expected


class TestNormalizeReading:
    """Full record normalization."""

    def test_canonical_record(self):
        reading = normalize_reading(
            {
                "device_id": "sensor_1",
                "timestamp": 1000,
                "temperature": 22.45,
                "humidity": 55.6,
                "pressure": 1010.33,
                "gas_concentration": 400.5,
                "risk_score": 12,
            }
        )

        assert reading.device_id == "sensor_1"
        assert reading.timestamp == 1000
        assert reading.temperature == 22.45
        assert reading.risk_score == 12.0

    def test_device_payload_names(self):
        reading = normalize_reading(
            {"id": "sensor_2", "timestamp": 5, "temp": 22.45, "hum": 55.6, "press": 1010.33, "gas": 400.5}
        )

        assert reading.device_id == "sensor_2"
        assert reading.temperature == 22.45
        assert reading.humidity == 55.6
        assert reading.pressure == 1010.33
        assert reading.gas_concentration == 400.5

    def test_canonical_name_wins(self):
        fields = canonicalize_fields({"temp": 1.0, "temperature": 2.0})

        assert fields["temperature"] == 2.0

    def test_missing_metrics_are_none(self):
        reading = normalize_reading({"device_id": "sensor_1", "timestamp": 1})

        assert reading.temperature is None
        assert reading.risk_score is None

    @pytest.mark.parametrize(
        "raw",
        [
            {"timestamp": 1, "temperature": 20.0},
            {"device_id": "", "timestamp": 1},
            {"device_id": "sensor_1", "temperature": 20.0},
        ],
    )
    def test_missing_identity_rejected(self, raw):
        with pytest.raises(DataValidationError):
            normalize_reading(raw)

    def test_non_mapping_rejected(self):
        with pytest.raises(DataValidationError):
            normalize_reading(["sensor_1", 1])

    def test_reading_is_immutable(self):
        reading = normalize_reading({"device_id": "sensor_1", "timestamp": 1})

        with pytest.raises(Exception):
            reading.temperature = 5.0

    def test_batch_skips_invalid(self):
        readings, skipped = normalize_readings(
            [
                {"device_id": "a", "timestamp": 1},
                {"timestamp": 2},
                {"device_id": "b", "timestamp": "garbage"},
                {"device_id": "c", "timestamp": 3},
            ]
        )

        assert [r.device_id for r in readings] == ["a", "c"]
        assert skipped == 2
