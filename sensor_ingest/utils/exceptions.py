"""
Custom exceptions for the sensor telemetry ingestion service.

Malformed telemetry is never signalled with an exception: the normalizer
returns a tagged result instead. These types cover the failures that must
reach a caller (configuration, persistence, queue transport).
"""

from typing import Literal

StorageErrorCode = Literal["internal_error"]


class SensorIngestError(Exception):
    """Base exception for all ingestion-related errors."""
    pass


class ConfigurationError(SensorIngestError):
    """Raised when configuration is invalid or names an unsupported backend."""
    pass


class StorageError(SensorIngestError):
    """Raised when the storage backend rejects or fails a write."""

    def __init__(self, code: StorageErrorCode, message: str = ""):
        super().__init__(message)
        self.code = code

    def __str__(self) -> str:
        message = super().__str__()
        return f"[{self.code}] {message}" if message else f"[{self.code}]"


class QueueError(SensorIngestError):
    """Raised when a message cannot be sent to, read from or acked on the queue."""
    pass
