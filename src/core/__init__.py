"""
Core module: Configuration, logging, and exception handling.
"""

from .config import (
    AggregationConfig,
    Config,
    DetectionConfig,
    RetentionConfig,
    SeverityThresholds,
    config,
)
from .exceptions import (
    AggregationError,
    AlertQueryError,
    AlertSinkError,
    AnomalyDetectionError,
    ConfigurationError,
    DataValidationError,
    DomainError,
    WildfireError,
)
from .logging_config import setup_logging

__all__ = [
    "Config",
    "config",
    "DetectionConfig",
    "SeverityThresholds",
    "AggregationConfig",
    "RetentionConfig",
    "setup_logging",
    "WildfireError",
    "DataValidationError",
    "DomainError",
    "AnomalyDetectionError",
    "AggregationError",
    "ConfigurationError",
    "AlertQueryError",
    "AlertSinkError",
]
