"""Queue backends connecting the ingress to the batch consumer."""

from sensor_ingest.utils import ConfigurationError

from .base import MessageQueue, QueueBatch
from .memory import InMemoryQueue
from .redis_stream import RedisStreamQueue


def create_queue(settings) -> MessageQueue:
    """
    Build the queue backend named by the queue settings.

    Raises:
        ConfigurationError: If the backend is not supported
    """
    if settings.backend == "memory":
        return InMemoryQueue()
    if settings.backend == "redis":
        return RedisStreamQueue.from_settings(settings)
    raise ConfigurationError(f"Unsupported queue backend: {settings.backend}")


__all__ = ["MessageQueue", "QueueBatch", "InMemoryQueue", "RedisStreamQueue", "create_queue"]
