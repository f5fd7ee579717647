"""
Pytest configuration and shared fixtures for testing.

Provides sample ChirpStack events, configuration and repository doubles
for all test modules.
"""

import copy
import tempfile
from pathlib import Path
from typing import List

import pytest

from sensor_ingest.config import IngestConfig
from sensor_ingest.models import DeviceInfoInput, EventType, QueuedMessage, SensorObservation
from sensor_ingest.storage import DuckDBSensorIngestRepository, SensorIngestRepository
from sensor_ingest.utils import StorageError


class RecordingRepository(SensorIngestRepository):
    """Repository double that records every call."""

    def __init__(self):
        self.insert_calls: List[List[SensorObservation]] = []
        self.upsert_calls: List[List[DeviceInfoInput]] = []

    def bulk_insert(self, observations):
        self.insert_calls.append(list(observations))

    def bulk_upsert_device_info(self, devices):
        self.upsert_calls.append(list(devices))


class FailingRepository(RecordingRepository):
    """Repository double whose observation insert always fails."""

    def bulk_insert(self, observations):
        super().bulk_insert(observations)
        raise StorageError("internal_error", "database unavailable")


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmp_dir:
        yield Path(tmp_dir)


@pytest.fixture
def sample_config_data():
    """Raw configuration mapping as it would appear in YAML."""
    return {
        "service": {
            "name": "test_sensor_ingest",
            "version": "1.0.0"
        },
        "ingress": {
            "host": "127.0.0.1",
            "port": 8080,
            "ack_message": "Data received and queued",
            "accepted_events": ["up", "join", "status"]
        },
        "queue": {
            "backend": "memory",
            "batch_size": 10
        },
        "storage": {
            "backend": "duckdb",
            "database": ":memory:"
        },
        "consumer": {
            "retry_backoff_seconds": 0,
            "idle_sleep_seconds": 0
        },
        "logging": {
            "level": "DEBUG"
        }
    }


@pytest.fixture
def sample_config(sample_config_data):
    """Create a test configuration with in-memory backends."""
    return IngestConfig(**sample_config_data)


@pytest.fixture
def valid_uplink():
    """A well-formed ChirpStack uplink event body."""
    return {
        "deduplicationId": "3ac7e3c4-4401-4b8d-9386-a5c902f9202d",
        "time": "2025-07-11T10:00:00.000Z",
        "deviceInfo": {
            "tenantId": "52f14cd4-c6f1-4fbd-8f87-4025e1d49242",
            "devEui": "2CF7F1C0530004B2",
            "deviceName": "field-a-soil-1",
            "applicationId": "0b4f6a4e-9c7e-4c3b-a2f4-bd8b3b9a8f10",
            "applicationName": "soil-sensors"
        },
        "fPort": 3,
        "object": {
            "parsed": {
                "soil-moisture": 45.2,
                "soil-temperature": 23.5,
                "soil-ec": 1.2
            }
        }
    }


@pytest.fixture
def make_uplink(valid_uplink):
    """Factory building uplink bodies from the valid one with overrides."""
    def _make(dedup_id=None, time=None, dev_eui=None, device_name=None, parsed=None, **extra):
        body = copy.deepcopy(valid_uplink)
        if dedup_id is not None:
            body["deduplicationId"] = dedup_id
        if time is not None:
            body["time"] = time
        if dev_eui is not None:
            body["deviceInfo"]["devEui"] = dev_eui
        if device_name is not None:
            body["deviceInfo"]["deviceName"] = device_name
        if parsed is not None:
            body["object"] = {"parsed": parsed}
        body.update(extra)
        return body
    return _make


@pytest.fixture
def make_message():
    """Wrap an event body into a queued message."""
    def _make(data, event=EventType.UP):
        return QueuedMessage(event=event, data=data)
    return _make


@pytest.fixture
def recording_repository():
    return RecordingRepository()


@pytest.fixture
def failing_repository():
    return FailingRepository()


@pytest.fixture
def duckdb_repository():
    """Reference repository on an in-memory DuckDB database."""
    repository = DuckDBSensorIngestRepository(":memory:")
    yield repository
    repository.close()
