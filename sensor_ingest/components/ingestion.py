"""
Batch ingestion component for queued ChirpStack events.

Normalizes every message of a batch, projects two idempotent write-sets
(point observations and latest device metadata) and persists them through
the injected repository. Malformed messages are excluded without aborting
the batch; persistence failures propagate so the batch is redelivered.
"""

from typing import List, Optional, Sequence

import pandas as pd

from sensor_ingest.components.base import IngestionComponent, NormalizationComponent
from sensor_ingest.components.normalization import ChirpStackNormalizationComponent, Ok
from sensor_ingest.models import (
    DeviceInfoInput,
    IngestResult,
    QueuedMessage,
    Reading,
    SensorObservation,
)
from sensor_ingest.storage import SensorIngestRepository
from sensor_ingest.utils import get_logger

logger = get_logger(__name__)


def project_observations(readings: Sequence[Reading]) -> List[SensorObservation]:
    """
    Flatten readings into observation rows, one per (reading, property).

    Args:
        readings: Successfully normalized readings

    Returns:
        Observation rows in reading order
    """
    observations = []
    for reading in readings:
        if not reading.values:
            logger.warning(
                f"No valid sensor values found in message {reading.deduplication_id} "
                f"from device {reading.device_info.dev_eui}"
            )
            continue

        for prop, value in reading.values:
            observations.append(
                SensorObservation(
                    deduplication_id=reading.deduplication_id,
                    time=reading.time,
                    dev_eui=reading.device_info.dev_eui,
                    type=prop,
                    value=value,
                )
            )
    return observations


def _optional(value) -> Optional[str]:
    return None if pd.isna(value) else value


def project_device_info(readings: Sequence[Reading]) -> List[DeviceInfoInput]:
    """
    Keep the newest identity per device.

    Readings are ordered by their own event time, newest first, and the first
    row per dev_eui is kept, so arrival order never decides which name wins.
    Equal times keep the earlier message.

    Args:
        readings: Successfully normalized readings

    Returns:
        At most one row per dev_eui
    """
    rows = []
    for reading in readings:
        info = reading.device_info
        if not info.dev_eui:
            logger.warning(f"Device EUI is missing in message {reading.deduplication_id}")
            continue
        rows.append({
            "dev_eui": info.dev_eui,
            "name": info.device_name or "",
            "application_id": info.application_id,
            "application_name": info.application_name,
            "time": reading.time,
        })

    if not rows:
        return []

    frame = pd.DataFrame(rows)
    latest = (
        frame.sort_values("time", ascending=False, kind="stable")
        .drop_duplicates(subset="dev_eui", keep="first")
    )

    return [
        DeviceInfoInput(
            dev_eui=row["dev_eui"],
            name=row["name"],
            application_id=_optional(row["application_id"]),
            application_name=_optional(row["application_name"]),
            last_seen=row["time"].to_pydatetime(),
        )
        for row in latest.to_dict("records")
    ]


class BatchIngestionComponent(IngestionComponent):
    """Concrete batch ingestor backed by a SensorIngestRepository."""

    def __init__(
        self,
        repository: SensorIngestRepository,
        normalizer: Optional[NormalizationComponent] = None,
    ):
        """
        Initialize the ingestor.

        Args:
            repository: Idempotent storage for observations and device metadata
            normalizer: Event normalizer, defaults to the ChirpStack normalizer
        """
        self.repository = repository
        self.normalizer = normalizer or ChirpStackNormalizationComponent()
        self.logger = get_logger(__name__)

        self.stats = {
            "batches_ingested": 0,
            "messages_received": 0,
            "messages_rejected": 0,
            "observations_written": 0,
            "devices_upserted": 0,
        }

    def execute(self, messages: Sequence[QueuedMessage]) -> IngestResult:
        readings: List[Reading] = []
        rejected = 0
        for message in messages:
            result = self.normalizer.execute(message.data)
            if isinstance(result, Ok):
                readings.append(result.reading)
            else:
                rejected += 1

        observations = project_observations(readings)
        devices = project_device_info(readings)

        # Both writes are idempotent; a failure here leaves the batch for redelivery.
        self.repository.bulk_insert(observations)
        self.repository.bulk_upsert_device_info(devices)

        result = IngestResult(
            messages_received=len(messages),
            readings_normalized=len(readings),
            messages_rejected=rejected,
            observations_written=len(observations),
            devices_upserted=len(devices),
        )
        self._update_stats(result)

        self.logger.info(
            f"Ingested batch: {result.messages_received} messages, "
            f"{result.messages_rejected} rejected, "
            f"{result.observations_written} observations, "
            f"{result.devices_upserted} devices"
        )
        return result

    def _update_stats(self, result: IngestResult) -> None:
        self.stats["batches_ingested"] += 1
        self.stats["messages_received"] += result.messages_received
        self.stats["messages_rejected"] += result.messages_rejected
        self.stats["observations_written"] += result.observations_written
        self.stats["devices_upserted"] += result.devices_upserted
