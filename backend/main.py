"""
Batch job runner for the wildfire sensor analytics core.

Reads exported readings or alerts from disk, runs one processing pass, and
writes the result as JSON. Five jobs mirror the deployed pipeline and its
query endpoints:

    enrich     raw device payloads -> enriched readings
    detect     enriched readings   -> anomaly alerts
    aggregate  enriched readings   -> interval buckets
    alerts     alert records       -> filtered, counted alerts
    realtime   enriched readings   -> latest reading per device

Usage:
    python -m backend.main detect readings.jsonl --alerts alerts.jsonl
    python -m backend.main aggregate readings.json --from 2025-02-07T00:00:00Z \
        --to 2025-02-08T00:00:00Z --interval 15m
    python -m backend.main alerts alerts.jsonl --severity critical --limit 20
"""

from __future__ import annotations

import argparse
import json
import sys
import time
from typing import Any, Dict, List, Optional, Sequence

from dotenv import load_dotenv
from pydantic import ValidationError

from backend.alerts import (
    InMemoryAlertSink,
    JsonLinesAlertSink,
    publish_anomalies,
    summarize_alerts,
)
from src.anomaly import Anomaly, AnomalyDetector, overall_severity
from src.core.config import Config, DetectionConfig
from src.core.exceptions import (
    AggregationError,
    AlertQueryError,
    ConfigurationError,
    DataValidationError,
)
from src.core.logging_config import setup_logging
from src.data import (
    REALTIME_WINDOW_MS,
    aggregate_readings,
    enrich_reading,
    filter_readings_by_range,
    ingest_readings,
    latest_per_device,
    normalize_readings,
    parse_iso_timestamp,
    summarize_buckets,
)
from src.data.ingestion import ReadingIngestionError


def _write_json(payload: Any, output: Optional[str]) -> None:
    text = json.dumps(payload, indent=2)
    if output:
        with open(output, "w", encoding="utf-8") as f:
            f.write(text + "\n")
    else:
        sys.stdout.write(text + "\n")


def run_enrich(args: argparse.Namespace, settings: Config) -> int:
    logger = setup_logging("enrich", settings)
    enriched: List[Dict[str, Any]] = []
    skipped = 0

    for index, raw in enumerate(ingest_readings(args.input, format=args.format)):
        try:
            reading = enrich_reading(raw, retention=settings.retention)
        except DataValidationError as exc:
            skipped += 1
            logger.error("Invalid input record %d: %s", index, exc)
            continue
        logger.debug(
            "Enriched %s: risk_score=%s", reading.device_id, reading.risk_score
        )
        enriched.append(reading.model_dump(exclude_none=True))

    logger.info("Enriched %d readings, skipped %d", len(enriched), skipped)
    _write_json(enriched, args.output)
    return 0


def run_detect(args: argparse.Namespace, settings: Config) -> int:
    logger = setup_logging("detect", settings)

    detection = settings.detection
    if args.threshold is not None:
        try:
            detection = DetectionConfig.model_validate(
                {**detection.model_dump(), "z_score_threshold": args.threshold}
            )
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid --threshold {args.threshold}: {exc}") from exc

    readings, skipped = normalize_readings(ingest_readings(args.input, format=args.format))
    if not readings:
        logger.info("No data found, skipping anomaly detection")
        _write_json(
            {
                "anomaliesDetected": 0,
                "published": 0,
                "failed": 0,
                "skippedReadings": skipped,
                "anomalies": [],
            },
            args.output,
        )
        return 0

    now_ms = parse_iso_timestamp(args.now) if args.now else None
    detector = AnomalyDetector(settings=detection, retention=settings.retention)
    anomalies = detector.detect_all(readings, now_ms=now_ms)

    sink = JsonLinesAlertSink(args.alerts) if args.alerts else InMemoryAlertSink()
    report = publish_anomalies(anomalies, sink)

    if anomalies:
        worst = overall_severity(*(a.severity for a in anomalies))
        logger.info("Highest severity in batch: %s", worst.value)

    _write_json(
        {
            "anomaliesDetected": len(anomalies),
            "published": report.published_count,
            "failed": report.failed_count,
            "skippedReadings": skipped,
            "anomalies": [a.to_alert_record() for a in anomalies],
        },
        args.output,
    )
    return 1 if report.failed_count else 0


def run_aggregate(args: argparse.Namespace, settings: Config) -> int:
    logger = setup_logging("aggregate", settings)

    interval = args.interval or settings.aggregation.default_interval
    start_ms = parse_iso_timestamp(args.start)
    end_ms = parse_iso_timestamp(args.end)

    readings, _ = normalize_readings(ingest_readings(args.input, format=args.format))
    selected = filter_readings_by_range(readings, start_ms, end_ms, device_id=args.device)
    buckets = aggregate_readings(selected, interval, settings.aggregation)

    logger.info(summarize_buckets(buckets))
    _write_json(
        {
            "data": [b.model_dump() for b in buckets],
            "count": len(buckets),
            "query": {
                "from": args.start,
                "to": args.end,
                "interval": interval,
                "deviceId": args.device or "all",
            },
        },
        args.output,
    )
    return 0


def run_alerts(args: argparse.Namespace, settings: Config) -> int:
    logger = setup_logging("alerts", settings)

    anomalies: List[Anomaly] = []
    for index, record in enumerate(ingest_readings(args.input, format=args.format)):
        try:
            anomalies.append(Anomaly.model_validate(record))
        except ValidationError as exc:
            logger.error("Invalid alert record %d: %s", index, exc)

    summary = summarize_alerts(
        anomalies, device_id=args.device, severity=args.severity, limit=args.limit
    )
    logger.info("Returning %d of %d alerts", summary.count, len(anomalies))
    _write_json(summary.model_dump(mode="json"), args.output)
    return 0


def run_realtime(args: argparse.Namespace, settings: Config) -> int:
    logger = setup_logging("realtime", settings)

    now_ms = parse_iso_timestamp(args.now) if args.now else int(time.time() * 1000)
    readings, _ = normalize_readings(ingest_readings(args.input, format=args.format))
    latest = latest_per_device(readings, now_ms - REALTIME_WINDOW_MS, device_id=args.device)

    logger.info("%d device(s) reported in the last 5 minutes", len(latest))
    _write_json(
        {
            "readings": [r.model_dump(exclude_none=True) for r in latest],
            "count": len(latest),
        },
        args.output,
    )
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Wildfire sensor analytics batch jobs")
    parser.add_argument("--format", choices=["auto", "json", "jsonl"], default="auto")
    parser.add_argument("--output", help="Write JSON result here instead of stdout")
    sub = parser.add_subparsers(dest="command", required=True)

    enrich = sub.add_parser("enrich", help="Derive heat index, dew point and risk score")
    enrich.add_argument("input")
    enrich.set_defaults(handler=run_enrich)

    detect = sub.add_parser("detect", help="Run z-score anomaly detection")
    detect.add_argument("input")
    detect.add_argument("--alerts", help="Append alert records to this JSON-lines file")
    detect.add_argument("--now", help="Reference time (ISO 8601), defaults to wall clock")
    detect.add_argument("--threshold", type=float, help="Override the z-score threshold")
    detect.set_defaults(handler=run_detect)

    aggregate = sub.add_parser("aggregate", help="Bucket readings into fixed intervals")
    aggregate.add_argument("input")
    aggregate.add_argument("--from", dest="start", required=True, help="ISO 8601 start")
    aggregate.add_argument("--to", dest="end", required=True, help="ISO 8601 end")
    aggregate.add_argument("--interval", help="5m, 15m, 1h, 6h or 1d")
    aggregate.add_argument("--device", help="Restrict to one device_id")
    aggregate.set_defaults(handler=run_aggregate)

    alerts = sub.add_parser("alerts", help="Query published alert records")
    alerts.add_argument("input")
    alerts.add_argument("--device", help="Restrict to one device_id")
    alerts.add_argument("--severity", help="LOW, MODERATE, HIGH or CRITICAL")
    alerts.add_argument("--limit", type=int, default=50, help="At most this many alerts (max 100)")
    alerts.set_defaults(handler=run_alerts)

    realtime = sub.add_parser("realtime", help="Latest reading per device, last 5 minutes")
    realtime.add_argument("input")
    realtime.add_argument("--now", help="Reference time (ISO 8601), defaults to wall clock")
    realtime.add_argument("--device", help="Restrict to one device_id")
    realtime.set_defaults(handler=run_realtime)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)
    settings = Config()

    try:
        return args.handler(args, settings)
    except (
        ReadingIngestionError,
        AggregationError,
        AlertQueryError,
        ConfigurationError,
    ) as exc:
        setup_logging(args.command, settings).error("%s", exc)
        return 2


if __name__ == "__main__":
    sys.exit(main())
