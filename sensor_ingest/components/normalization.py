"""
ChirpStack event normalization.

Turns an arbitrary JSON body from the queue into a canonical ``Reading``.
Malformed bodies are reported through a tagged result rather than an
exception, and are dropped for good: a fixed bad payload cannot self-heal.
"""

import json
import math
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError

from sensor_ingest.components.base import NormalizationComponent
from sensor_ingest.models import ChirpStackEvent, DeviceInfo, Reading, SupportedSensorProperty
from sensor_ingest.utils import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Ok:
    reading: Reading


@dataclass(frozen=True)
class Err:
    issues: List[str]


NormalizeResult = Union[Ok, Err]


def _format_issues(error: ValidationError) -> List[str]:
    issues = []
    for detail in error.errors():
        location = ".".join(str(part) for part in detail["loc"]) or "<root>"
        issues.append(f"{location}: {detail['msg']}")
    return issues


def _dump(raw: Any) -> str:
    try:
        return json.dumps(raw, indent=2, default=str)
    except (TypeError, ValueError):
        return repr(raw)


def to_number(value: Union[int, float, str]) -> Optional[float]:
    """
    Convert a JSON number or numeric string to a finite float.

    Returns None for strings that are not numbers, for NaN and infinities,
    and for integers too large to represent as a float.
    """
    try:
        number = float(value)
    except (ValueError, OverflowError):
        return None
    if not math.isfinite(number):
        return None
    return number


def coerce_number(text: str) -> Optional[float]:
    """Parse a numeric string, returning None when it is not a number."""
    return to_number(text)


def extract_values(parsed: Dict[str, Any]) -> Dict[SupportedSensorProperty, float]:
    """
    Pick the supported properties out of a decoded payload.

    Unknown keys are skipped silently. Values of a supported key that are not
    finite numbers (or numeric strings) are skipped with a warning.

    Args:
        parsed: ``object.parsed`` map of the event

    Returns:
        Property to value map, in the order the keys were encountered
    """
    values: Dict[SupportedSensorProperty, float] = {}
    for key, value in parsed.items():
        prop = SupportedSensorProperty.from_key(key)
        if prop is None:
            continue

        # bool is an int subclass; it is not a measurement
        if isinstance(value, bool) or not isinstance(value, (int, float, str)):
            logger.warning(f"Unsupported value type for {key}: {type(value).__name__}")
            continue

        number = to_number(value)
        if number is None:
            logger.warning(f"Skipping unparseable value for {key}: {value!r:.64}")
        else:
            values[prop] = number

    return values


def apply_battery_level(
    values: Dict[SupportedSensorProperty, float],
    battery_level: Union[int, float, str, None],
) -> None:
    """Overwrite (or add) battery-percentage with the out-of-band batteryLevel."""
    if battery_level is None:
        return

    level = to_number(battery_level)
    if level is None:
        logger.warning(f"Skipping unparseable batteryLevel: {battery_level!r:.64}")
        return

    values[SupportedSensorProperty.BATTERY_PERCENTAGE] = level


def parse_event(raw: Any) -> NormalizeResult:
    """
    Validate a raw ChirpStack event body and build a canonical reading.

    Args:
        raw: Unvalidated JSON value

    Returns:
        ``Ok`` with the reading, or ``Err`` with human-readable validation issues
    """
    try:
        event = ChirpStackEvent.model_validate(raw)
    except ValidationError as e:
        issues = _format_issues(e)
        logger.warning(f"Failed to parse message: {issues}")
        logger.info(f"Original message: {_dump(raw)}")
        return Err(issues)

    values = extract_values(event.parsed_values)
    apply_battery_level(values, event.battery_level)

    reading = Reading(
        deduplication_id=event.deduplication_id,
        time=event.time,
        device_info=DeviceInfo(
            dev_eui=event.device_info.dev_eui,
            device_name=event.device_info.device_name,
            application_id=event.device_info.application_id,
            application_name=event.device_info.application_name,
        ),
        values=list(values.items()) if values else None,
    )
    return Ok(reading)


def normalize(raw: Any) -> Optional[Reading]:
    """Return the canonical reading for a raw event body, or None if it is malformed."""
    result = parse_event(raw)
    if isinstance(result, Ok):
        return result.reading
    return None


class ChirpStackNormalizationComponent(NormalizationComponent):
    """Normalizer for ChirpStack HTTP integration events, with running statistics."""

    def __init__(self):
        self.logger = get_logger(__name__)
        self.stats = {
            "events_processed": 0,
            "events_rejected": 0,
            "readings_without_values": 0,
        }

    def execute(self, raw: Any) -> NormalizeResult:
        self.stats["events_processed"] += 1
        result = parse_event(raw)

        if isinstance(result, Err):
            self.stats["events_rejected"] += 1
        elif not result.reading.values:
            self.stats["readings_without_values"] += 1

        return result
