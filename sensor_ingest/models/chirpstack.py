"""
Schema of the ChirpStack webhook body, as far as this service consumes it.

Only structure is checked here. Value extraction from ``object.parsed`` and
the battery precedence rule live in the normalization component.
"""

import re
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, Field, StrictFloat, StrictInt, StrictStr, field_validator

from sensor_ingest.models.data import DEV_EUI_PATTERN

# Calendar date, optionally followed by a time of day and a UTC offset.
ISO_DATETIME_RE = re.compile(
    r"^\d{4}-\d{2}-\d{2}"
    r"(?:[Tt ]\d{2}:\d{2}(?::\d{2}(?:[.,]\d+)?)?(?:[Zz]|[+-]\d{2}(?::?\d{2})?)?)?$"
)


class ChirpStackDeviceInfo(BaseModel):
    dev_eui: StrictStr = Field(..., alias="devEui", pattern=DEV_EUI_PATTERN)
    device_name: StrictStr = Field(..., alias="deviceName")
    application_id: Optional[StrictStr] = Field(None, alias="applicationId")
    application_name: Optional[StrictStr] = Field(None, alias="applicationName")

    @field_validator("dev_eui")
    @classmethod
    def upper_case_dev_eui(cls, v: str) -> str:
        return v.upper()


class ChirpStackObject(BaseModel):
    """Payload already decoded by the network server codec."""
    parsed: Optional[Dict[str, Any]] = None


class ChirpStackEvent(BaseModel):
    """Uplink event body delivered by the ChirpStack HTTP integration."""
    deduplication_id: StrictStr = Field(..., alias="deduplicationId")
    time: datetime = Field(..., description="ISO-8601 event time")
    device_info: ChirpStackDeviceInfo = Field(..., alias="deviceInfo")
    payload: Optional[ChirpStackObject] = Field(None, alias="object")
    battery_level: Optional[Union[StrictInt, StrictFloat, StrictStr]] = Field(None, alias="batteryLevel")

    @field_validator("time", mode="before")
    @classmethod
    def require_iso_string(cls, v):
        if not isinstance(v, str) or not ISO_DATETIME_RE.match(v.strip()):
            raise ValueError("time must be an ISO-8601 string")
        return v.strip()

    @field_validator("time")
    @classmethod
    def convert_to_utc(cls, v: datetime) -> datetime:
        # Naive timestamps are taken as UTC.
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)

    @property
    def parsed_values(self) -> Dict[str, Any]:
        if self.payload is None or self.payload.parsed is None:
            return {}
        return self.payload.parsed
