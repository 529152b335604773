"""
Reading ingestion from exported query results.

Supports JSON (an array of records, or an object with an "Items" or "data"
array) and JSON-lines files. Malformed lines are skipped with a warning.
All ingested records are returned as raw dictionaries for normalization.

Design:
- Format detection by extension, or explicit format
- Iterator-based for memory efficiency with large exports
- Bad rows logged but don't crash the pipeline
"""

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Iterator, Union

logger = logging.getLogger(__name__)


class ReadingIngestionError(Exception):
    """Raised when a reading export cannot be read."""
    pass


class BaseReadingSource(ABC):
    """
    Abstract base class for reading sources.

    Each source type implements this interface.
    """

    def __init__(self, filepath: Union[str, Path], encoding: str = "utf-8"):
        self.filepath = Path(filepath)
        self.encoding = encoding

        if not self.filepath.exists():
            raise ReadingIngestionError(f"Readings file not found: {self.filepath}")

    @abstractmethod
    def ingest(self) -> Iterator[Dict[str, Any]]:
        """
        Ingest records from source.

        Yields:
            Dict representing a single raw reading
        """
        pass


class JSONReadingSource(BaseReadingSource):
    """
    Ingests a JSON document holding a list of records.

    Accepted shapes:
        [{"device_id": ...}, ...]
        {"Items": [...]}     (store scan export)
        {"data": [...]}
    """

    def ingest(self) -> Iterator[Dict[str, Any]]:
        try:
            with self.filepath.open(encoding=self.encoding) as f:
                document = json.load(f)
        except json.JSONDecodeError as exc:
            raise ReadingIngestionError(f"Invalid JSON in {self.filepath}: {exc}") from exc
        except OSError as exc:
            raise ReadingIngestionError(f"Failed to read {self.filepath}: {exc}") from exc

        if isinstance(document, dict):
            document = document.get("Items", document.get("data"))
        if not isinstance(document, list):
            raise ReadingIngestionError(f"No list of readings found in {self.filepath}")

        for index, record in enumerate(document):
            if not isinstance(record, dict):
                logger.warning("Skipping non-object record %d in %s", index, self.filepath)
                continue
            yield record


class JSONLinesReadingSource(BaseReadingSource):
    """
    Ingests one JSON object per line.

    Empty lines are skipped; malformed lines are logged and skipped.
    """

    def ingest(self) -> Iterator[Dict[str, Any]]:
        try:
            with self.filepath.open(encoding=self.encoding) as f:
                for line_num, line in enumerate(f, 1):
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        record = json.loads(line)
                    except json.JSONDecodeError as exc:
                        logger.warning("Line %d: invalid JSON (%s)", line_num, exc)
                        continue
                    if not isinstance(record, dict):
                        logger.warning("Line %d: expected an object", line_num)
                        continue
                    yield record
        except OSError as exc:
            raise ReadingIngestionError(f"Failed to read {self.filepath}: {exc}") from exc


def ingest_readings(
    filepath: Union[str, Path],
    format: str = "auto",
    encoding: str = "utf-8",
) -> Iterator[Dict[str, Any]]:
    """
    Ingest raw readings from a file.

    Args:
        filepath: Path to the export
        format: "json", "jsonl", or "auto" (by extension)
        encoding: File encoding

    Yields:
        Raw reading dicts

    Raises:
        ReadingIngestionError: If the file is missing or the format unknown
    """
    path = Path(filepath)

    if format == "auto":
        format = "jsonl" if path.suffix.lower() in {".jsonl", ".ndjson"} else "json"

    sources = {
        "json": JSONReadingSource,
        "jsonl": JSONLinesReadingSource,
    }
    if format not in sources:
        raise ReadingIngestionError(f"Unknown format: {format}")

    yield from sources[format](path, encoding=encoding).ingest()
