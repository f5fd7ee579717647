"""Persistence for sensor observations and device metadata."""

from sensor_ingest.utils import ConfigurationError

from .base import SensorIngestRepository
from .duckdb_repository import DuckDBSensorIngestRepository


def create_repository(settings) -> SensorIngestRepository:
    """
    Build the repository named by the storage settings.

    Args:
        settings: ``StorageSettings`` section of the service configuration

    Raises:
        ConfigurationError: If the backend is not supported
    """
    if settings.backend == "duckdb":
        return DuckDBSensorIngestRepository(settings.database)
    raise ConfigurationError(f"Unsupported database type: {settings.backend}")


__all__ = ["SensorIngestRepository", "DuckDBSensorIngestRepository", "create_repository"]
