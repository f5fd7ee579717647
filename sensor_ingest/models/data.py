"""
Pydantic models for data structures used throughout the ingestion pipeline.

These models ensure type safety and validation for data flowing between the
ingress, the queue, the normalizer, the batch ingestor and the repository.
"""

from datetime import datetime
from enum import Enum
from typing import Any, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

# 64-bit EUI rendered as 16 hex characters; the normalizer upper-cases it.
DEV_EUI_PATTERN = r"^[0-9A-Fa-f]{16}$"


class SupportedSensorProperty(str, Enum):
    """Closed allow-list of sensor properties this service persists."""
    SOIL_MOISTURE = "soil-moisture"            # volumetric water content
    SOIL_TEMPERATURE = "soil-temperature"
    SOIL_EC = "soil-ec"                        # electrical conductivity
    AIR_TEMPERATURE = "air-temperature"
    HUMIDITY = "humidity"
    PRECIPITATION = "precipitation"
    WIND_SPEED = "wind-speed"
    SOLAR_RADIATION = "solar-radiation"
    BATTERY_PERCENTAGE = "battery-percentage"

    @classmethod
    def from_key(cls, key: str) -> Optional["SupportedSensorProperty"]:
        """Return the member for a telemetry key, or None when unsupported."""
        try:
            return cls(key)
        except ValueError:
            return None


class EventType(str, Enum):
    """ChirpStack webhook event types accepted by the ingress."""
    UP = "up"
    JOIN = "join"
    STATUS = "status"


class DeviceInfo(BaseModel):
    """Identity of the device that sent an uplink."""
    dev_eui: str = Field(..., pattern=DEV_EUI_PATTERN, description="Device EUI (16 hex characters)")
    device_name: str = Field(..., description="Device name configured on the network server")
    application_id: Optional[str] = Field(None, description="Network server application id")
    application_name: Optional[str] = Field(None, description="Network server application name")


class Reading(BaseModel):
    """Canonical representation of one sensor uplink."""
    deduplication_id: str = Field(..., description="Network-server id of the physical uplink")
    time: datetime = Field(..., description="Event time reported by the network server (UTC)")
    device_info: DeviceInfo = Field(..., description="Identity of the sending device")
    values: Optional[List[Tuple[SupportedSensorProperty, float]]] = Field(
        None, description="Recognized (property, value) pairs; None when nothing was extracted"
    )

    @model_validator(mode="after")
    def check_unique_properties(self) -> "Reading":
        if self.values:
            seen = [prop for prop, _ in self.values]
            if len(seen) != len(set(seen)):
                raise ValueError("values must not contain the same property twice")
        return self


class QueuedMessage(BaseModel):
    """Envelope placed on the queue by the ingress; data is validated at consume time."""
    event: EventType = Field(..., description="Webhook event type")
    data: Any = Field(None, description="Unvalidated JSON body of the webhook call")


class SensorObservation(BaseModel):
    """One point observation row, unique on (deduplication_id, type)."""
    deduplication_id: str
    time: datetime
    dev_eui: str
    type: SupportedSensorProperty
    value: float


class DeviceInfoInput(BaseModel):
    """Latest known identity of a device, written as a full-row upsert."""
    dev_eui: str
    name: str
    application_id: Optional[str] = None
    application_name: Optional[str] = None
    last_seen: Optional[datetime] = Field(
        None, description="Event time of the reading this identity came from; None replaces unconditionally"
    )


class IngestResult(BaseModel):
    """Summary of one batch ingestion."""
    model_config = ConfigDict(frozen=True)

    messages_received: int = Field(..., description="Messages in the batch")
    readings_normalized: int = Field(..., description="Messages that normalized to a Reading")
    messages_rejected: int = Field(..., description="Messages dropped by structural validation")
    observations_written: int = Field(..., description="Observation rows handed to the repository")
    devices_upserted: int = Field(..., description="Device rows handed to the repository")
