"""
Queue consumer for the ingestion pipeline.

Receives batches from the queue and hands them to the batch ingestor:
receive -> normalize -> project -> persist -> ack. A batch is acknowledged
only after both writes succeed; otherwise the whole batch is redelivered.
There is no retry inside the consumer beyond that redelivery.
"""

import threading
from typing import Optional

from sensor_ingest.broker import MessageQueue, QueueBatch
from sensor_ingest.components.base import IngestionComponent
from sensor_ingest.models import IngestResult
from sensor_ingest.utils import get_logger


class QueueConsumer:
    """Single logical consumer draining the queue in batches."""

    def __init__(
        self,
        queue: MessageQueue,
        ingestor: IngestionComponent,
        batch_size: int = 100,
        retry_backoff_seconds: float = 5.0,
        idle_sleep_seconds: float = 0.5,
    ):
        """
        Initialize the consumer.

        Args:
            queue: Source of batches
            ingestor: Component that persists a batch
            batch_size: Maximum messages requested per batch
            retry_backoff_seconds: Pause after a failed batch or queue error
            idle_sleep_seconds: Pause after an empty receive
        """
        self.queue = queue
        self.ingestor = ingestor
        self.batch_size = batch_size
        self.retry_backoff_seconds = retry_backoff_seconds
        self.idle_sleep_seconds = idle_sleep_seconds
        self.logger = get_logger(__name__)
        self._stop_event = threading.Event()

        self.stats = {
            "batches_acked": 0,
            "batches_failed": 0,
            "messages_acked": 0,
        }

    def process_batch(self, batch: QueueBatch) -> IngestResult:
        """
        Ingest one batch and acknowledge it.

        Raises:
            Exception: Whatever the ingestor raised; the batch is released for redelivery
        """
        try:
            result = self.ingestor.execute(batch.messages)
        except Exception:
            self.stats["batches_failed"] += 1
            batch.retry_all()
            raise

        batch.ack_all()
        self.stats["batches_acked"] += 1
        self.stats["messages_acked"] += len(batch.messages)
        self.logger.info(f"Processed {len(batch.messages)} sensor data messages")
        return result

    def run_once(self) -> Optional[IngestResult]:
        """Receive and process a single batch; returns None when the queue was empty."""
        batch = self.queue.receive_batch(self.batch_size)
        if batch.is_empty:
            return None
        return self.process_batch(batch)

    def run(self, max_batches: Optional[int] = None) -> None:
        """
        Consume until stopped.

        Args:
            max_batches: Stop after this many non-empty batches (acked or failed)
        """
        self.logger.info(f"Consumer started (batch_size={self.batch_size})")
        handled = 0

        while not self._stop_event.is_set():
            if max_batches is not None and handled >= max_batches:
                break
            try:
                result = self.run_once()
            except Exception:
                handled += 1
                self.logger.exception(
                    f"Batch failed and was not acknowledged; retrying in {self.retry_backoff_seconds}s"
                )
                self._stop_event.wait(self.retry_backoff_seconds)
                continue

            if result is None:
                self._stop_event.wait(self.idle_sleep_seconds)
            else:
                handled += 1

        self.logger.info(f"Consumer stopped. Stats: {self.stats}")

    def stop(self) -> None:
        self._stop_event.set()
