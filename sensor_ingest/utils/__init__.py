"""Utility modules for the sensor telemetry ingestion service."""

from .logging import setup_logging, get_logger
from .exceptions import (
    SensorIngestError,
    ConfigurationError,
    StorageError,
    QueueError,
)

__all__ = [
    "setup_logging",
    "get_logger",
    "SensorIngestError",
    "ConfigurationError",
    "StorageError",
    "QueueError",
]
