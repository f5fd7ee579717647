"""
Command line entry point for the sensor telemetry ingestion service.

``serve`` runs the HTTP webhook receiver, ``consume`` runs the batch
consumer. Both read the same YAML configuration.
"""

import argparse
import os
import threading
from pathlib import Path
from typing import List, Optional

import uvicorn

from sensor_ingest.broker import MessageQueue, create_queue
from sensor_ingest.components import BatchIngestionComponent
from sensor_ingest.config import IngestConfig
from sensor_ingest.config.models import PROJECT_ROOT
from sensor_ingest.consumer import QueueConsumer
from sensor_ingest.ingress import create_app
from sensor_ingest.storage import create_repository
from sensor_ingest.utils import get_logger, setup_logging

DEFAULT_CONFIG_PATH = str(PROJECT_ROOT / "config" / "default.yaml")

logger = get_logger(__name__)


def load_config(config_path: Optional[str] = None) -> IngestConfig:
    """Load configuration from the given path, $SENSOR_INGEST_CONFIG, or the default file."""
    path = config_path or os.getenv("SENSOR_INGEST_CONFIG", DEFAULT_CONFIG_PATH)
    return IngestConfig.from_yaml(path)


def build_consumer(config: IngestConfig, queue: MessageQueue) -> QueueConsumer:
    """Wire repository, ingestor and consumer from configuration."""
    repository = create_repository(config.storage)
    ingestor = BatchIngestionComponent(repository)
    return QueueConsumer(
        queue,
        ingestor,
        batch_size=config.queue.batch_size,
        retry_backoff_seconds=config.consumer.retry_backoff_seconds,
        idle_sleep_seconds=config.consumer.idle_sleep_seconds,
    )


def serve(config: IngestConfig, with_consumer: bool = False) -> None:
    """Run the webhook receiver, optionally with a consumer thread in the same process."""
    queue = create_queue(config.queue)
    app = create_app(queue, config.ingress)

    consumer = None
    if with_consumer:
        consumer = build_consumer(config, queue)
        threading.Thread(target=consumer.run, name="sensor-ingest-consumer", daemon=True).start()

    logger.info(f"Starting {config.service.name} ingress on {config.ingress.host}:{config.ingress.port}")
    try:
        uvicorn.run(app, host=config.ingress.host, port=config.ingress.port, log_config=None)
    finally:
        if consumer is not None:
            consumer.stop()


def consume(config: IngestConfig, once: bool = False) -> None:
    """Run the batch consumer until interrupted."""
    queue = create_queue(config.queue)
    consumer = build_consumer(config, queue)
    try:
        if once:
            consumer.run_once()
        else:
            consumer.run()
    except KeyboardInterrupt:
        consumer.stop()


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="LoRaWAN sensor telemetry ingestion")
    parser.add_argument("--config", help=f"YAML configuration file (default: {DEFAULT_CONFIG_PATH})")
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve_parser = subparsers.add_parser("serve", help="run the HTTP webhook receiver")
    serve_parser.add_argument("--with-consumer", action="store_true",
                              help="also run the batch consumer in this process")

    consume_parser = subparsers.add_parser("consume", help="run the batch consumer")
    consume_parser.add_argument("--once", action="store_true", help="process a single batch and exit")

    args = parser.parse_args(argv)

    config = load_config(args.config)
    log_file = Path(config.logging.log_file) if config.logging.log_file else None
    setup_logging(config.logging.level, log_file)

    if args.command == "serve":
        serve(config, with_consumer=args.with_consumer)
    else:
        consume(config, once=args.once)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
