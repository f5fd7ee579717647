"""Configuration models for the sensor telemetry ingestion service."""

from .models import IngestConfig

__all__ = ["IngestConfig"]
