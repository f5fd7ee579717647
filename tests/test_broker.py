"""
Tests for the queue backends: the in-memory queue and the Redis Streams queue.

The Redis client is replaced by a MagicMock so no server is needed.
"""

from unittest.mock import MagicMock

import pytest
import redis

from sensor_ingest.broker import InMemoryQueue, RedisStreamQueue, create_queue
from sensor_ingest.broker.redis_stream import BODY_FIELD
from sensor_ingest.config.models import QueueSettings
from sensor_ingest.models import EventType, QueuedMessage
from sensor_ingest.utils.exceptions import ConfigurationError, QueueError


def message(n):
    return QueuedMessage(event=EventType.UP, data={"deduplicationId": f"m-{n}"})


class TestInMemoryQueue:
    """Test suite for the in-process queue."""

    def test_fifo_batches(self):
        """Test that batches come out in send order and respect the size cap."""
        queue = InMemoryQueue()
        for n in range(5):
            queue.send(message(n))

        first = queue.receive_batch(3)
        second = queue.receive_batch(3)

        assert [m.data["deduplicationId"] for m in first.messages] == ["m-0", "m-1", "m-2"]
        assert [m.data["deduplicationId"] for m in second.messages] == ["m-3", "m-4"]
        assert len(queue) == 0

    def test_empty_receive(self):
        batch = InMemoryQueue().receive_batch(10)

        assert batch.is_empty
        assert batch.messages == []

    def test_ack_removes_for_good(self):
        """Test that an acked batch is never delivered again."""
        queue = InMemoryQueue()
        queue.send(message(1))

        batch = queue.receive_batch(10)
        batch.ack_all()

        assert batch.settled
        assert queue.receive_batch(10).is_empty

    def test_retry_redelivers_whole_batch_first(self):
        """Test that a retried batch returns to the head in its original order."""
        queue = InMemoryQueue()
        for n in range(3):
            queue.send(message(n))

        batch = queue.receive_batch(2)
        batch.retry_all()
        redelivered = queue.receive_batch(10)

        assert [m.data["deduplicationId"] for m in redelivered.messages] == ["m-0", "m-1", "m-2"]

    def test_retry_after_ack_is_ignored(self):
        queue = InMemoryQueue()
        queue.send(message(1))

        batch = queue.receive_batch(10)
        batch.ack_all()
        batch.retry_all()

        assert len(queue) == 0


@pytest.fixture
def redis_client():
    return MagicMock(spec=redis.Redis)


@pytest.fixture
def redis_queue(redis_client):
    return RedisStreamQueue(redis_client, stream="uplinks", group="consumers",
                            consumer_name="c-1", block_ms=50, max_len=1000)


class TestRedisStreamQueue:
    """Test suite for the Redis Streams backend."""

    def test_send_appends_to_stream(self, redis_queue, redis_client):
        """Test that send writes the serialized message with a length cap."""
        redis_queue.send(message(1))

        args, kwargs = redis_client.xadd.call_args
        assert args[0] == "uplinks"
        assert QueuedMessage.model_validate_json(args[1][BODY_FIELD]) == message(1)
        assert kwargs == {"maxlen": 1000, "approximate": True}

    def test_send_failure_raises_queue_error(self, redis_queue, redis_client):
        redis_client.xadd.side_effect = redis.ConnectionError("down")

        with pytest.raises(QueueError):
            redis_queue.send(message(1))

    def test_group_created_once(self, redis_queue, redis_client):
        """Test that the consumer group is created with the stream on first receive."""
        redis_client.xreadgroup.return_value = []

        redis_queue.receive_batch(10)
        redis_queue.receive_batch(10)

        redis_client.xgroup_create.assert_called_once_with("uplinks", "consumers", id="0", mkstream=True)

    def test_existing_group_is_fine(self, redis_queue, redis_client):
        """Test that BUSYGROUP from an existing group is not an error."""
        redis_client.xgroup_create.side_effect = redis.ResponseError(
            "BUSYGROUP Consumer Group name already exists"
        )
        redis_client.xreadgroup.return_value = []

        assert redis_queue.receive_batch(10).is_empty

    def test_group_creation_failure(self, redis_queue, redis_client):
        redis_client.xgroup_create.side_effect = redis.ResponseError("WRONGTYPE")

        with pytest.raises(QueueError):
            redis_queue.receive_batch(10)

    def test_new_entries_read_when_nothing_pending(self, redis_queue, redis_client):
        """Test that new entries are read after an empty pending read."""
        redis_client.xreadgroup.side_effect = [
            [["uplinks", []]],
            [[b"uplinks", [(b"1-0", {b"body": message(1).model_dump_json().encode()})]]],
        ]

        batch = redis_queue.receive_batch(10)

        assert batch.messages == [message(1)]
        assert batch.entry_ids == [b"1-0"]
        calls = redis_client.xreadgroup.call_args_list
        assert calls[0].kwargs["streams"] == {"uplinks": "0"}
        assert calls[1].kwargs["streams"] == {"uplinks": ">"}
        assert calls[1].kwargs["block"] == 50

    def test_pending_entries_redelivered_first(self, redis_queue, redis_client):
        """Test that pending entries are returned without reading new ones."""
        redis_client.xreadgroup.return_value = [
            ["uplinks", [("1-0", {"body": message(1).model_dump_json()})]]
        ]

        batch = redis_queue.receive_batch(10)

        assert batch.messages == [message(1)]
        assert redis_client.xreadgroup.call_count == 1

    def test_undecodable_entries_are_acked(self, redis_queue, redis_client):
        """Test that broken entries are dropped from the batch but still acknowledged."""
        redis_client.xreadgroup.return_value = [
            ["uplinks", [
                ("1-0", {"body": "not json"}),
                ("2-0", {"other": "field"}),
                ("3-0", {"body": message(3).model_dump_json()}),
            ]]
        ]

        batch = redis_queue.receive_batch(10)
        batch.ack_all()

        assert batch.messages == [message(3)]
        redis_client.xack.assert_called_once_with("uplinks", "consumers", "1-0", "2-0", "3-0")

    def test_retry_leaves_entries_pending(self, redis_queue, redis_client):
        redis_client.xreadgroup.return_value = [["uplinks", [("1-0", {"body": message(1).model_dump_json()})]]]

        redis_queue.receive_batch(10).retry_all()

        redis_client.xack.assert_not_called()

    def test_read_failure_raises_queue_error(self, redis_queue, redis_client):
        redis_client.xreadgroup.side_effect = redis.TimeoutError("slow")

        with pytest.raises(QueueError):
            redis_queue.receive_batch(10)


class TestCreateQueue:
    """Test suite for the queue factory."""

    def test_memory_backend(self):
        assert isinstance(create_queue(QueueSettings(backend="memory")), InMemoryQueue)

    def test_redis_backend(self):
        """Test that the redis backend is built without contacting the server."""
        queue = create_queue(QueueSettings(backend="redis", redis_url="redis://localhost:6379/0",
                                           stream="s", group="g"))

        assert isinstance(queue, RedisStreamQueue)
        assert queue.stream == "s"
        assert queue.group == "g"

    def test_unsupported_backend(self):
        settings = QueueSettings.model_construct(backend="kafka")

        with pytest.raises(ConfigurationError):
            create_queue(settings)
