"""
Data module: Reading ingestion, normalization, enrichment, and aggregation.

Responsible for converting raw sensor records into clean readings and
historical summaries. Pipeline:

    Raw records (device payloads / store exports)
        ↓
    Ingestion (src/data/ingestion.py)
        ↓
    Normalization (src/data/normalizers.py) → Reading
        ↓
    Enrichment (src/data/enrichment.py, src/data/derived.py) → Reading + risk_score
        ↓
    Aggregation (src/data/aggregation.py) → Bucket
        or
    Anomaly detection (src/anomaly)
"""

from src.data.aggregation import (
    INTERVALS,
    REALTIME_WINDOW_MS,
    aggregate_readings,
    align_timestamp_to_interval,
    filter_readings_by_range,
    latest_per_device,
    parse_iso_timestamp,
    resolve_interval,
    summarize_buckets,
)
from src.data.derived import (
    dew_point,
    heat_index,
    wildfire_risk,
)
from src.data.enrichment import enrich_reading
from src.data.ingestion import (
    JSONLinesReadingSource,
    JSONReadingSource,
    ReadingIngestionError,
    ingest_readings,
)
from src.data.normalizers import (
    normalize_reading,
    normalize_readings,
)
from src.data.schema import (
    Bucket,
    Metric,
    MetricAggregate,
    Reading,
)

__all__ = [
    # Schema
    "Reading",
    "Metric",
    "Bucket",
    "MetricAggregate",

    # Ingestion
    "ingest_readings",
    "JSONReadingSource",
    "JSONLinesReadingSource",
    "ReadingIngestionError",

    # Normalization
    "normalize_reading",
    "normalize_readings",

    # Derived metrics
    "heat_index",
    "dew_point",
    "wildfire_risk",
    "enrich_reading",

    # Aggregation
    "INTERVALS",
    "aggregate_readings",
    "align_timestamp_to_interval",
    "filter_readings_by_range",
    "latest_per_device",
    "REALTIME_WINDOW_MS",
    "parse_iso_timestamp",
    "resolve_interval",
    "summarize_buckets",
]
