"""Data models for the sensor telemetry ingestion service."""

from .data import (
    SupportedSensorProperty,
    EventType,
    DeviceInfo,
    Reading,
    QueuedMessage,
    SensorObservation,
    DeviceInfoInput,
    IngestResult,
)
from .chirpstack import ChirpStackEvent

__all__ = [
    "SupportedSensorProperty",
    "EventType",
    "DeviceInfo",
    "Reading",
    "QueuedMessage",
    "SensorObservation",
    "DeviceInfoInput",
    "IngestResult",
    "ChirpStackEvent",
]
