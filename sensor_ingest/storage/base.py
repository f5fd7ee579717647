"""
Storage contract for the ingestion pipeline.

Both operations are idempotent so a redelivered batch reproduces the same
end state: observations are insert-ignore (first writer wins) and device
metadata is a full-row upsert keyed by dev_eui.
"""

from abc import ABC, abstractmethod
from typing import Sequence

from sensor_ingest.models import DeviceInfoInput, SensorObservation


class SensorIngestRepository(ABC):
    """Idempotent persistence for sensor observations and device metadata."""

    @abstractmethod
    def bulk_insert(self, observations: Sequence[SensorObservation]) -> None:
        """
        Insert observation rows, ignoring rows whose (deduplication_id, type)
        already exists. An empty sequence is a no-op.

        Raises:
            StorageError: If the backend fails
        """
        pass

    @abstractmethod
    def bulk_upsert_device_info(self, devices: Sequence[DeviceInfoInput]) -> None:
        """
        Create or fully replace one device record per row. Omitted optional
        fields are stored as NULL. An empty sequence is a no-op.

        Raises:
            StorageError: If the backend fails
        """
        pass
