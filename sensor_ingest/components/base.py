"""
Abstract base classes for pipeline components.

These define the interfaces that the normalizer and the batch ingestor
implement, enabling easy testing through dependency injection.
"""

from abc import ABC, abstractmethod
from typing import Any, Sequence

from sensor_ingest.models import IngestResult, QueuedMessage


class PipelineComponent(ABC):
    """Base class for all pipeline components."""

    @abstractmethod
    def execute(self, *args, **kwargs) -> Any:
        """Execute the component's main functionality."""
        pass


class NormalizationComponent(PipelineComponent):
    """Abstract base for turning one raw webhook body into a canonical reading."""

    @abstractmethod
    def execute(self, raw: Any):
        """
        Validate and normalize a raw event body.

        Args:
            raw: Unvalidated JSON value taken from a queued message

        Returns:
            ``Ok(reading)`` on success, ``Err(issues)`` when the body is malformed
        """
        pass


class IngestionComponent(PipelineComponent):
    """Abstract base for persisting one batch of queued messages."""

    @abstractmethod
    def execute(self, messages: Sequence[QueuedMessage]) -> IngestResult:
        """
        Normalize, project and persist a batch.

        Args:
            messages: Messages received from the queue in one batch

        Returns:
            Summary of what was handed to the repository

        Raises:
            StorageError: If persistence fails; the batch must not be acknowledged
        """
        pass
