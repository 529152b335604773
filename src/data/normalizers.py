"""
Reading normalization: standardize field names, timestamps and metric values.

Converts raw records (store query rows or device payloads with short field
names) into canonical Reading objects that are consistent across the
entire pipeline.

Design:
- Device payload names (id, temp, hum, press, gas) map to canonical names
- Timestamps normalize to integer epoch milliseconds
- Non-numeric metric values become None (missing), never zero
- Records without device_id or timestamp are rejected, not coerced
"""

import logging
import math
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from pydantic import ValidationError

from src.core.exceptions import DataValidationError
from src.data.schema import Reading

logger = logging.getLogger(__name__)

# Device payload field -> canonical field
FIELD_ALIASES: Dict[str, str] = {
    "id": "device_id",
    "temp": "temperature",
    "hum": "humidity",
    "press": "pressure",
    "gas": "gas_concentration",
}

METRIC_FIELDS = (
    "temperature",
    "humidity",
    "pressure",
    "gas_concentration",
    "risk_score",
    "heat_index",
    "dew_point",
)


def canonicalize_fields(raw: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Rename device payload fields to canonical names.

    Canonical names win when both spellings are present.
    """
    result: Dict[str, Any] = {}
    for key, value in raw.items():
        result.setdefault(FIELD_ALIASES.get(key, key), value)
    for key, value in raw.items():
        if key in FIELD_ALIASES.values():
            result[key] = value
    return result


def normalize_metric_value(value: Any) -> Optional[float]:
    """
    Coerce a metric value to float, or None when missing or non-numeric.

    Booleans, NaN and infinities are treated as missing.

    Args:
        value: Raw value from a record

    Returns:
        Finite float or None
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def normalize_timestamp(value: Any) -> int:
    """
    Normalize a timestamp to integer epoch milliseconds.

    Supports:
    - Epoch milliseconds (int, float or numeric string)
    - datetime objects (naive values are taken as UTC)
    - ISO 8601 strings, with or without trailing Z

    Raises:
        DataValidationError: If the timestamp is missing or unparseable
    """
    if value is None or value == "" or isinstance(value, bool):
        raise DataValidationError("Missing timestamp")

    if isinstance(value, datetime):
        dt = value if value.tzinfo else value.replace(tzinfo=timezone.utc)
        return int(dt.timestamp() * 1000)

    if isinstance(value, (int, float)):
        if not math.isfinite(value) or value < 0:
            raise DataValidationError(f"Invalid timestamp: {value}")
        return int(value)

    text = str(value).strip()
    try:
        return normalize_timestamp(float(text))
    except ValueError:
        pass

    try:
        dt = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError as exc:
        raise DataValidationError(f"Could not parse timestamp: {text}") from exc
    return normalize_timestamp(dt)


def normalize_reading(raw: Mapping[str, Any]) -> Reading:
    """
    Normalize a raw record into a Reading.

    Args:
        raw: Dict from a store query or device payload

    Returns:
        Validated, immutable Reading

    Raises:
        DataValidationError: If device_id or timestamp is missing or invalid
    """
    if not isinstance(raw, Mapping):
        raise DataValidationError(f"Reading must be a mapping, got {type(raw).__name__}")

    data = canonicalize_fields(raw)

    device_id = data.get("device_id")
    if device_id is None or str(device_id).strip() == "":
        raise DataValidationError("Missing device_id")

    fields: Dict[str, Any] = {
        "device_id": str(device_id).strip(),
        "timestamp": normalize_timestamp(data.get("timestamp")),
    }
    for name in METRIC_FIELDS:
        fields[name] = normalize_metric_value(data.get(name))

    ttl = data.get("ttl")
    if ttl is not None:
        fields["ttl"] = ttl
    if data.get("enriched_at") is not None:
        fields["enriched_at"] = str(data["enriched_at"])

    try:
        return Reading(**fields)
    except ValidationError as exc:
        raise DataValidationError(f"Invalid reading for {fields['device_id']}: {exc}") from exc


def normalize_readings(
    raws: Iterable[Mapping[str, Any]],
) -> Tuple[List[Reading], int]:
    """
    Normalize a batch of raw records, skipping invalid ones.

    Args:
        raws: Iterable of raw records

    Returns:
        Tuple of (valid readings, number of skipped records)
    """
    readings: List[Reading] = []
    skipped = 0

    for index, raw in enumerate(raws):
        try:
            readings.append(normalize_reading(raw))
        except DataValidationError as exc:
            skipped += 1
            logger.warning("Skipping record %d: %s", index, exc)

    if skipped:
        logger.info("Normalized %d readings, skipped %d", len(readings), skipped)

    return readings, skipped
