"""Pipeline components for LoRaWAN sensor telemetry ingestion."""

from .base import (
    PipelineComponent,
    NormalizationComponent,
    IngestionComponent,
)

from .normalization import (
    ChirpStackNormalizationComponent,
    Ok,
    Err,
    NormalizeResult,
    normalize,
    parse_event,
)
from .ingestion import (
    BatchIngestionComponent,
    project_device_info,
    project_observations,
)

__all__ = [
    "PipelineComponent",
    "NormalizationComponent",
    "IngestionComponent",
    "ChirpStackNormalizationComponent",
    "Ok",
    "Err",
    "NormalizeResult",
    "normalize",
    "parse_event",
    "BatchIngestionComponent",
    "project_device_info",
    "project_observations",
]
