#!/usr/bin/env python3
"""
Demo script running the whole ingestion path in one process.

Webhook calls go through the real FastAPI app into an in-memory queue, the
consumer drains it in batches and the rows land in an in-memory DuckDB
database. Duplicate deliveries and malformed events are included.
"""

import sys
from pathlib import Path

from fastapi.testclient import TestClient

sys.path.insert(0, str(Path(__file__).parent / "scripts"))

from generate_synthetic_uplinks import generate
from sensor_ingest.broker import InMemoryQueue
from sensor_ingest.components import BatchIngestionComponent
from sensor_ingest.consumer import QueueConsumer
from sensor_ingest.ingress import create_app
from sensor_ingest.storage import DuckDBSensorIngestRepository
from sensor_ingest.utils import setup_logging


def main():
    """Send synthetic uplinks through ingress, queue, consumer and storage."""
    setup_logging("WARNING", include_timestamp=False)
    print("📡 Sensor Telemetry Ingestion Demo")
    print("=" * 50)

    queue = InMemoryQueue()
    repository = DuckDBSensorIngestRepository(":memory:")
    ingestor = BatchIngestionComponent(repository)
    consumer = QueueConsumer(queue, ingestor, batch_size=10, idle_sleep_seconds=0)
    client = TestClient(create_app(queue))

    print("\n📥 Step 1: Webhook ingress")
    print("-" * 30)
    events = generate(count=24, include_edge_cases=True)
    for body in events:
        client.post("/", params={"event": "up"}, json=body)
    client.post("/", params={"event": "txack"}, json=events[0])
    print(f"✓ Posted {len(events) + 1} webhook calls, {len(queue)} queued")

    print("\n🔄 Step 2: Batch consumer")
    print("-" * 30)
    while consumer.run_once() is not None:
        pass
    for key, value in consumer.stats.items():
        print(f"   {key.replace('_', ' ').title()}: {value}")

    print("\n📈 Ingestion Statistics:")
    print("-" * 30)
    for key, value in ingestor.stats.items():
        print(f"   {key.replace('_', ' ').title()}: {value}")

    print("\n💾 Step 3: Stored data")
    print("-" * 30)
    observations = repository.fetch_observations()
    print(f"   - Observations stored: {len(observations)}")
    print(f"   - Devices stored: {repository.count_devices()}")
    for observation in observations[:5]:
        print(f"     • {observation.time} {observation.dev_eui} {observation.type.value}={observation.value}")

    repository.close()
    print("\n✅ Demo completed successfully!")


if __name__ == "__main__":
    main()
