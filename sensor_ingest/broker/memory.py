"""In-process queue for tests, demos and single-process deployments."""

import threading
from collections import deque
from typing import Deque, List

from sensor_ingest.models import QueuedMessage
from sensor_ingest.broker.base import MessageQueue, QueueBatch


class InMemoryBatch(QueueBatch):

    def __init__(self, queue: "InMemoryQueue", messages: List[QueuedMessage]):
        super().__init__(messages)
        self._queue = queue
        self._settled = False

    @property
    def is_empty(self) -> bool:
        return not self.messages

    @property
    def settled(self) -> bool:
        return self._settled

    def ack_all(self) -> None:
        self._settled = True

    def retry_all(self) -> None:
        if self._settled:
            return
        self._settled = True
        self._queue.requeue(self.messages)


class InMemoryQueue(MessageQueue):
    """FIFO queue; retried batches go back to the head in their original order."""

    def __init__(self):
        self._messages: Deque[QueuedMessage] = deque()
        self._lock = threading.Lock()

    def send(self, message: QueuedMessage) -> None:
        with self._lock:
            self._messages.append(message)

    def receive_batch(self, max_messages: int = 100) -> InMemoryBatch:
        with self._lock:
            count = min(max_messages, len(self._messages))
            messages = [self._messages.popleft() for _ in range(count)]
        return InMemoryBatch(self, messages)

    def requeue(self, messages: List[QueuedMessage]) -> None:
        with self._lock:
            self._messages.extendleft(reversed(messages))

    def __len__(self) -> int:
        with self._lock:
            return len(self._messages)
