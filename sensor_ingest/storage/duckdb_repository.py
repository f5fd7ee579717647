"""
DuckDB implementation of the sensor ingest repository.

Observation batches are staged as Arrow tables and inserted with a single
``INSERT OR IGNORE`` statement. Device metadata is upserted row by row inside
one transaction and only replaces a stored row when its event time is not
older. Timestamps are stored as naive UTC.
"""

import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import duckdb
import pyarrow as pa

from sensor_ingest.models import DeviceInfoInput, SensorObservation, SupportedSensorProperty
from sensor_ingest.storage.base import SensorIngestRepository
from sensor_ingest.utils import StorageError, get_logger

OBSERVATION_SCHEMA = pa.schema([
    ("deduplication_id", pa.string()),
    ("property_type", pa.string()),
    ("deveui", pa.string()),
    ("timestamp", pa.timestamp("us")),
    ("value", pa.float64()),
])


def _to_utc_naive(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _is_newer_or_equal(candidate: Optional[datetime], current: Optional[datetime]) -> bool:
    if candidate is None or current is None:
        return True
    return candidate >= current


def _property_check_clause() -> str:
    allowed = ", ".join(f"'{prop.value}'" for prop in SupportedSensorProperty)
    return f"property_type IN ({allowed})"


class DuckDBSensorIngestRepository(SensorIngestRepository):
    """Reference repository backed by a DuckDB database file or in-memory database."""

    def __init__(self, database: str = ":memory:", connection: Optional[duckdb.DuckDBPyConnection] = None):
        """
        Open the database and make sure the schema exists.

        Args:
            database: DuckDB file path, or ``:memory:``
            connection: Existing connection to use instead of opening one
        """
        self.logger = get_logger(__name__)
        self.database = database
        if connection is None and database != ":memory:":
            Path(database).parent.mkdir(parents=True, exist_ok=True)
        self.connection = connection or duckdb.connect(database)
        self._lock = threading.Lock()
        self.create_schema()

    def create_schema(self) -> None:
        """Create the observations and devices_info tables if missing."""
        with self._lock:
            self.connection.execute(f"""
                CREATE TABLE IF NOT EXISTS observations (
                    deduplication_id VARCHAR NOT NULL,
                    property_type VARCHAR NOT NULL CHECK ({_property_check_clause()}),
                    deveui VARCHAR NOT NULL,
                    "timestamp" TIMESTAMP NOT NULL,
                    "value" DOUBLE NOT NULL,
                    PRIMARY KEY (deduplication_id, property_type)
                )
            """)
            self.connection.execute("""
                CREATE TABLE IF NOT EXISTS devices_info (
                    deveui VARCHAR PRIMARY KEY,
                    name VARCHAR NOT NULL,
                    application_id VARCHAR,
                    application_name VARCHAR,
                    last_seen_at TIMESTAMP
                )
            """)
        self.logger.info(f"DuckDB schema ready ({self.database})")

    def bulk_insert(self, observations: Sequence[SensorObservation]) -> None:
        if not observations:
            return

        # One statement cannot conflict with itself; keep the first row per key.
        first_per_key: Dict[Tuple[str, str], SensorObservation] = {}
        for observation in observations:
            first_per_key.setdefault((observation.deduplication_id, observation.type.value), observation)

        table = pa.Table.from_pylist(
            [
                {
                    "deduplication_id": o.deduplication_id,
                    "property_type": o.type.value,
                    "deveui": o.dev_eui,
                    "timestamp": _to_utc_naive(o.time),
                    "value": o.value,
                }
                for o in first_per_key.values()
            ],
            schema=OBSERVATION_SCHEMA,
        )

        with self._lock:
            try:
                self.connection.register("incoming_observations", table)
                try:
                    self.connection.execute("""
                        INSERT OR IGNORE INTO observations
                            (deduplication_id, property_type, deveui, "timestamp", "value")
                        SELECT deduplication_id, property_type, deveui, "timestamp", "value"
                        FROM incoming_observations
                    """)
                finally:
                    self.connection.unregister("incoming_observations")
            except duckdb.Error as e:
                self.logger.error(f"Observation insert failed: {e}")
                raise StorageError("internal_error", f"Failed to insert observations: {e}") from e

        self.logger.debug(f"Inserted up to {table.num_rows} observations")

    def bulk_upsert_device_info(self, devices: Sequence[DeviceInfoInput]) -> None:
        if not devices:
            return

        # Rows for the same device collapse to the newest; ties go to the later row.
        latest: Dict[str, DeviceInfoInput] = {}
        for device in devices:
            current = latest.get(device.dev_eui)
            if current is None or _is_newer_or_equal(device.last_seen, current.last_seen):
                latest[device.dev_eui] = device

        params = [
            (
                d.dev_eui,
                d.name,
                d.application_id or None,
                d.application_name or None,
                _to_utc_naive(d.last_seen) if d.last_seen else None,
            )
            for d in latest.values()
        ]

        with self._lock:
            try:
                self.connection.begin()
                try:
                    self.connection.executemany("""
                        INSERT INTO devices_info (deveui, name, application_id, application_name, last_seen_at)
                        VALUES (?, ?, ?, ?, ?)
                        ON CONFLICT (deveui) DO UPDATE SET
                            name = excluded.name,
                            application_id = excluded.application_id,
                            application_name = excluded.application_name,
                            last_seen_at = excluded.last_seen_at
                        WHERE excluded.last_seen_at IS NULL
                            OR devices_info.last_seen_at IS NULL
                            OR excluded.last_seen_at >= devices_info.last_seen_at
                    """, params)
                    self.connection.commit()
                except duckdb.Error:
                    self.connection.rollback()
                    raise
            except duckdb.Error as e:
                self.logger.error(f"Device info upsert failed: {e}")
                raise StorageError("internal_error", f"Failed to upsert device info: {e}") from e

        self.logger.debug(f"Upserted {len(params)} devices")

    def fetch_observations(self, dev_eui: Optional[str] = None) -> List[SensorObservation]:
        """Read stored observations, optionally for one device."""
        query = """
            SELECT deduplication_id, property_type, deveui, "timestamp", "value"
            FROM observations
        """
        params: list = []
        if dev_eui is not None:
            query += " WHERE deveui = ?"
            params.append(dev_eui)
        query += " ORDER BY \"timestamp\", deduplication_id, property_type"

        with self._lock:
            rows = self.connection.execute(query, params).fetchall()

        return [
            SensorObservation(
                deduplication_id=row[0],
                type=SupportedSensorProperty(row[1]),
                dev_eui=row[2],
                time=row[3],
                value=row[4],
            )
            for row in rows
        ]

    def fetch_device_info(self, dev_eui: str) -> Optional[DeviceInfoInput]:
        """Read the stored metadata for one device."""
        with self._lock:
            row = self.connection.execute(
                "SELECT deveui, name, application_id, application_name, last_seen_at "
                "FROM devices_info WHERE deveui = ?",
                [dev_eui],
            ).fetchone()

        if row is None:
            return None
        return DeviceInfoInput(
            dev_eui=row[0],
            name=row[1],
            application_id=row[2],
            application_name=row[3],
            last_seen=row[4],
        )

    def count_devices(self) -> int:
        with self._lock:
            return self.connection.execute("SELECT COUNT(*) FROM devices_info").fetchone()[0]

    def close(self) -> None:
        self.connection.close()
