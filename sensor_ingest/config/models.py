"""
Pydantic models for service configuration.

These models provide type-safe parsing and validation of the YAML configuration file.
They ensure all required settings are present and have the correct types.
"""

from pathlib import Path
from typing import List, Literal, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

from sensor_ingest.models import EventType

PROJECT_ROOT = Path(__file__).parent.parent.parent


def _resolve_project_path(value: str) -> str:
    path = Path(value)
    if not path.is_absolute():
        path = (PROJECT_ROOT / value).resolve()
    return str(path)


class ServiceInfo(BaseModel):
    """Basic service metadata."""
    name: str = Field(..., description="Service name")
    version: str = Field(..., description="Service version")


class IngressSettings(BaseModel):
    """HTTP webhook receiver settings."""
    host: str = Field("0.0.0.0", description="Bind address")
    port: int = Field(8080, description="Bind port")
    ack_message: str = Field("Data received and queued", description="Fixed acknowledgement body")
    accepted_events: List[EventType] = Field(
        default_factory=lambda: list(EventType),
        description="Event query values that are forwarded to the queue",
    )

    def accepts(self, event: Optional[str]) -> bool:
        """Whether an ``event`` query value should be forwarded to the queue."""
        return event in {e.value for e in self.accepted_events}


class QueueSettings(BaseModel):
    """Durable queue between ingress and consumer."""
    backend: Literal["memory", "redis"] = Field("redis", description="Queue backend")
    redis_url: str = Field("redis://localhost:6379/0", description="Redis connection URL")
    stream: str = Field("sensor-ingest:uplinks", description="Redis stream name")
    group: str = Field("sensor-ingest-consumers", description="Redis consumer group")
    consumer_name: str = Field("consumer-1", description="Consumer name within the group")
    batch_size: int = Field(100, gt=0, description="Maximum messages per batch")
    block_ms: int = Field(1000, ge=0, description="How long a receive blocks waiting for messages")
    max_len: int = Field(100000, gt=0, description="Approximate stream length cap")


class StorageSettings(BaseModel):
    """Persistence backend for observations and device metadata."""
    backend: Literal["duckdb"] = Field("duckdb", description="Storage backend")
    database: str = Field(":memory:", description="DuckDB database file, or :memory:")

    @field_validator('database', mode='before')
    @classmethod
    def resolve_database_path(cls, v):
        """Convert a relative database path to an absolute path."""
        if isinstance(v, str) and v != ":memory:":
            return _resolve_project_path(v)
        return v


class ConsumerSettings(BaseModel):
    """Batch consumer loop tuning."""
    retry_backoff_seconds: float = Field(5.0, ge=0, description="Pause after a batch failed")
    idle_sleep_seconds: float = Field(0.5, ge=0, description="Pause after an empty receive")


class LoggingSettings(BaseModel):
    """Logging output configuration."""
    level: str = Field("INFO", description="Root log level")
    log_file: Optional[str] = Field(None, description="Optional log file path")

    @field_validator('log_file', mode='before')
    @classmethod
    def resolve_log_path(cls, v):
        """Convert a relative log path to an absolute path."""
        if isinstance(v, str):
            return _resolve_project_path(v)
        return v


class IngestConfig(BaseModel):
    """Complete service configuration model."""
    model_config = ConfigDict(extra='forbid')

    service: ServiceInfo = Field(..., description="Service metadata")
    ingress: IngressSettings = Field(default_factory=IngressSettings, description="Ingress settings")
    queue: QueueSettings = Field(default_factory=QueueSettings, description="Queue settings")
    storage: StorageSettings = Field(default_factory=StorageSettings, description="Storage settings")
    consumer: ConsumerSettings = Field(default_factory=ConsumerSettings, description="Consumer settings")
    logging: LoggingSettings = Field(default_factory=LoggingSettings, description="Logging settings")

    @classmethod
    def from_yaml(cls, config_path: Union[str, Path]) -> "IngestConfig":
        """Load configuration from YAML file."""
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path, 'r') as f:
            config_data = yaml.safe_load(f)

        return cls(**config_data)
