"""
Pytest configuration and shared fixtures.

Provides test configuration instances and sample readings for unit and
integration tests.
"""

from datetime import datetime, timezone
from typing import Callable, List

import pytest

from src.core.config import Config, DetectionConfig
from src.data.schema import Reading

MINUTE_MS = 60 * 1000

# 2025-02-07T10:00:00Z
NOW_MS = 1738922400000


@pytest.fixture
def mock_config(tmp_path) -> Config:
    """
    Fixture providing test configuration with explicit values.

    Ensures tests run consistently regardless of .env settings.
    """
    return Config(
        log_level="WARNING",
        logs_dir=tmp_path / "logs",
        detection=DetectionConfig(),
    )


@pytest.fixture
def now_ms() -> int:
    return NOW_MS


@pytest.fixture
def fixed_clock() -> Callable[[], datetime]:
    """Clock pinned to NOW_MS."""
    moment = datetime.fromtimestamp(NOW_MS / 1000, tz=timezone.utc)
    return lambda: moment


@pytest.fixture
def make_reading() -> Callable[..., Reading]:
    """Factory for readings with sensible defaults."""

    def _make(
        device_id: str = "sensor_1",
        timestamp: int = NOW_MS,
        **metrics,
    ) -> Reading:
        return Reading(device_id=device_id, timestamp=timestamp, **metrics)

    return _make


@pytest.fixture
def baseline_readings(make_reading) -> List[Reading]:
    """
    Twenty readings for sensor_1 between 50 and 10 minutes ago.

    Temperature alternates 23/27 (mean 25.0, population stddev 2.0), gas
    alternates 380/420 (mean 400, stddev 20); humidity and risk are steady
    around 50 and 30 with small variation.
    """
    readings = []
    for i in range(20):
        even = i % 2 == 0
        readings.append(
            make_reading(
                timestamp=NOW_MS - (50 - 2 * i) * MINUTE_MS,
                temperature=23.0 if even else 27.0,
                humidity=49.0 if even else 51.0,
                pressure=1010.0,
                gas_concentration=380.0 if even else 420.0,
                risk_score=29.0 if even else 31.0,
            )
        )
    return readings


def pytest_configure(config):
    """
    Pytest hook for custom configuration.

    Registers custom markers used throughout tests.
    """
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running (deferred CI)"
    )
