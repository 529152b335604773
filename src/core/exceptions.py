"""
Custom exceptions for the wildfire sensor analytics core.

These exceptions provide clear error semantics across the system.
Use them to distinguish between bad input records, physically invalid
formula inputs, aggregation misuse, and configuration errors.

Insufficient data (too few samples, zero variance) is never an exception:
the detector simply emits nothing for that metric.
"""


class WildfireError(Exception):
    """Base exception for the analytics core."""
    pass


class DataValidationError(WildfireError):
    """Raised when a reading is missing a required field or fails validation."""
    pass


class DomainError(WildfireError, ValueError):
    """Raised when a derived-metric formula receives a physically invalid input."""
    pass


class AnomalyDetectionError(WildfireError):
    """Raised when anomaly detection is invoked with invalid parameters."""
    pass


class AggregationError(WildfireError):
    """Raised when interval aggregation is given an invalid interval or range."""
    pass


class ConfigurationError(WildfireError):
    """Raised when configuration is invalid or missing."""
    pass


class AlertSinkError(WildfireError):
    """Raised by an alert sink when a single anomaly cannot be persisted."""
    pass


class AlertQueryError(WildfireError, ValueError):
    """Raised when an alert query names an unknown severity or a bad limit."""
    pass
