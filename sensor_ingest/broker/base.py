"""
Queue contract between the ingress and the batch consumer.

Delivery is at-least-once: a batch that is not acknowledged is delivered
again later, in full. There is no partial acknowledgement.
"""

from abc import ABC, abstractmethod
from typing import List

from sensor_ingest.models import QueuedMessage


class QueueBatch(ABC):
    """Messages delivered together to one consumer invocation."""

    def __init__(self, messages: List[QueuedMessage]):
        self.messages = messages

    @property
    @abstractmethod
    def is_empty(self) -> bool:
        """True when the backend delivered nothing at all."""
        pass

    @abstractmethod
    def ack_all(self) -> None:
        """Acknowledge every message so it is never delivered again."""
        pass

    @abstractmethod
    def retry_all(self) -> None:
        """Release every message for redelivery."""
        pass


class MessageQueue(ABC):
    """Durable queue of webhook events."""

    @abstractmethod
    def send(self, message: QueuedMessage) -> None:
        """
        Enqueue one message.

        Raises:
            QueueError: If the backend cannot accept the message
        """
        pass

    @abstractmethod
    def receive_batch(self, max_messages: int) -> QueueBatch:
        """
        Receive up to ``max_messages`` messages.

        Raises:
            QueueError: If the backend cannot be read
        """
        pass
