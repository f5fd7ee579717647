"""
Redis Streams queue backend.

The ingress appends each webhook event to a stream; consumers read through a
consumer group. A batch that is not acknowledged stays in the consumer's
pending-entries list and is read again, before any new entries, on the next
receive.
"""

from typing import Dict, List, Optional, Tuple

import redis
from pydantic import ValidationError

from sensor_ingest.models import QueuedMessage
from sensor_ingest.broker.base import MessageQueue, QueueBatch
from sensor_ingest.utils import QueueError, get_logger

logger = get_logger(__name__)

BODY_FIELD = "body"


def _decode_entry(fields: Optional[Dict]) -> Optional[QueuedMessage]:
    if not fields:
        return None
    raw = fields.get(BODY_FIELD.encode()) or fields.get(BODY_FIELD)
    if raw is None:
        return None
    if isinstance(raw, bytes):
        raw = raw.decode()
    try:
        return QueuedMessage.model_validate_json(raw)
    except ValidationError:
        return None


class RedisStreamBatch(QueueBatch):

    def __init__(self, queue: "RedisStreamQueue", entry_ids: List, messages: List[QueuedMessage]):
        super().__init__(messages)
        self._queue = queue
        self.entry_ids = entry_ids

    @property
    def is_empty(self) -> bool:
        return not self.entry_ids

    def ack_all(self) -> None:
        if self.entry_ids:
            self._queue.ack(self.entry_ids)

    def retry_all(self) -> None:
        # Unacked entries remain pending and are re-read first.
        pass


class RedisStreamQueue(MessageQueue):
    """Queue backed by a Redis stream and consumer group."""

    def __init__(
        self,
        client: redis.Redis,
        stream: str,
        group: str,
        consumer_name: str,
        block_ms: int = 1000,
        max_len: int = 100000,
    ):
        self._client = client
        self.stream = stream
        self.group = group
        self.consumer_name = consumer_name
        self.block_ms = block_ms
        self.max_len = max_len
        self._group_ready = False

    @classmethod
    def from_settings(cls, settings) -> "RedisStreamQueue":
        """Connect using the ``queue`` section of the service configuration."""
        client = redis.Redis.from_url(
            settings.redis_url,
            socket_timeout=5.0 + settings.block_ms / 1000.0,
            socket_connect_timeout=5.0,
        )
        logger.info(f"Redis queue configured: {settings.redis_url.split('@')[-1]} stream={settings.stream}")
        return cls(
            client,
            stream=settings.stream,
            group=settings.group,
            consumer_name=settings.consumer_name,
            block_ms=settings.block_ms,
            max_len=settings.max_len,
        )

    def send(self, message: QueuedMessage) -> None:
        try:
            self._client.xadd(
                self.stream,
                {BODY_FIELD: message.model_dump_json()},
                maxlen=self.max_len,
                approximate=True,
            )
        except redis.RedisError as e:
            raise QueueError(f"Failed to enqueue {message.event.value} event: {e}") from e

    def ensure_group(self) -> None:
        """Create the consumer group (and the stream) if they do not exist."""
        if self._group_ready:
            return
        try:
            self._client.xgroup_create(self.stream, self.group, id="0", mkstream=True)
            logger.info(f"Created consumer group {self.group} on {self.stream}")
        except redis.ResponseError as e:
            if "BUSYGROUP" not in str(e):
                raise QueueError(f"Failed to create consumer group {self.group}: {e}") from e
        self._group_ready = True

    def receive_batch(self, max_messages: int = 100) -> RedisStreamBatch:
        try:
            self.ensure_group()
            entries = self._read("0", max_messages, block=None)
            if entries:
                logger.info(f"Redelivering {len(entries)} pending entries from {self.stream}")
            else:
                entries = self._read(">", max_messages, block=self.block_ms)
        except redis.RedisError as e:
            raise QueueError(f"Failed to read from {self.stream}: {e}") from e

        entry_ids = []
        messages = []
        for entry_id, fields in entries:
            entry_ids.append(entry_id)
            message = _decode_entry(fields)
            if message is None:
                logger.warning(f"Dropping undecodable stream entry {entry_id!r}")
                continue
            messages.append(message)

        return RedisStreamBatch(self, entry_ids, messages)

    def _read(self, start_id: str, count: int, block: Optional[int]) -> List[Tuple]:
        response = self._client.xreadgroup(
            groupname=self.group,
            consumername=self.consumer_name,
            streams={self.stream: start_id},
            count=count,
            block=block,
        )
        if not response:
            return []
        entries = []
        for _stream, stream_entries in response:
            entries.extend(stream_entries)
        return entries

    def ack(self, entry_ids: List) -> None:
        try:
            self._client.xack(self.stream, self.group, *entry_ids)
        except redis.RedisError as e:
            raise QueueError(f"Failed to ack {len(entry_ids)} entries: {e}") from e
