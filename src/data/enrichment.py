"""
Reading enrichment: derive heat index, dew point and risk score.

Takes a raw device payload (id, temp, hum, press, gas), validates that every
field the derived-metric formulas need is present, and returns an enriched
Reading stamped with its ingestion time and retention horizon. The
enrichment stamp and the ttl both derive from the ingestion time, so a
replayed payload enriches identically.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from src.core.config import RetentionConfig
from src.core.exceptions import DataValidationError, DomainError
from src.data.derived import dew_point, heat_index, wildfire_risk
from src.data.normalizers import canonicalize_fields, normalize_metric_value
from src.data.schema import Reading

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("temperature", "humidity", "pressure", "gas_concentration")

SECONDS_PER_DAY = 24 * 60 * 60


def _now_ms() -> int:
    return int(time.time() * 1000)


def enrich_reading(
    raw: Mapping[str, Any],
    now_ms: Optional[int] = None,
    retention: Optional[RetentionConfig] = None,
) -> Reading:
    """
    Enrich a raw sensor payload with derived metrics.

    Args:
        raw: Device payload, canonical or short field names
        now_ms: Ingestion time in epoch ms (defaults to wall clock)
        retention: Retention settings for the ttl stamp

    Returns:
        Reading with heat_index, dew_point, risk_score, ttl and enriched_at

    Raises:
        DataValidationError: If device id or any formula input is missing
    """
    retention = retention or RetentionConfig()
    data = canonicalize_fields(raw)

    device_id = data.get("device_id")
    if device_id is None or str(device_id).strip() == "":
        raise DataValidationError("Missing required sensor field: device_id")

    values = {name: normalize_metric_value(data.get(name)) for name in REQUIRED_FIELDS}
    missing = [name for name, value in values.items() if value is None]
    if missing:
        raise DataValidationError(
            f"Missing required sensor fields for {device_id}: {', '.join(missing)}"
        )

    temp = values["temperature"]
    hum = values["humidity"]
    gas = values["gas_concentration"]

    try:
        dew = dew_point(temp, hum)
    except DomainError as exc:
        logger.warning("Dew point skipped for %s: %s", device_id, exc)
        dew = None

    timestamp = now_ms if now_ms is not None else _now_ms()

    return Reading(
        device_id=str(device_id).strip(),
        timestamp=timestamp,
        temperature=temp,
        humidity=hum,
        pressure=values["pressure"],
        gas_concentration=gas,
        heat_index=heat_index(temp, hum),
        dew_point=dew,
        risk_score=float(wildfire_risk(temp, hum, gas)),
        ttl=timestamp // 1000 + retention.reading_days * SECONDS_PER_DAY,
        enriched_at=datetime.fromtimestamp(timestamp / 1000, tz=timezone.utc).isoformat(),
    )
