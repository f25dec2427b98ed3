"""Tests for the Redis Streams transport against fakeredis."""

import fakeredis
import pytest

from reportflow.messaging.consumer import PartitionConsumer
from reportflow.messaging.redis_streams import RedisStreamsTransport

TOPIC = "bim-report-requested"
GROUP = "bim-report-workers"


@pytest.fixture
async def redis():
    client = fakeredis.FakeAsyncRedis(decode_responses=True)
    yield client
    await client.aclose()


@pytest.fixture
def transport(redis):
    return RedisStreamsTransport(redis, partitions=1)


@pytest.mark.asyncio
async def test_publish_writes_partition_stream(transport, redis):
    metadata = await transport.publish(TOPIC, "req-1", b'{"requestId":"req-1"}', {"correlation_id": "req-1"})
    assert metadata.partition == 0
    assert await redis.xlen(f"{TOPIC}:0") == 1


@pytest.mark.asyncio
async def test_fetch_returns_record_with_headers(transport):
    await transport.publish(TOPIC, "req-1", b"payload", {"correlation_id": "req-1", "trace_id": "trc_1"})

    record = await transport.fetch(TOPIC, GROUP, 0)
    assert record.key == "req-1"
    assert record.value == b"payload"
    assert record.headers == {"correlation_id": "req-1", "trace_id": "trc_1"}
    assert record.delivery_count == 1


@pytest.mark.asyncio
async def test_unacked_record_is_redelivered(transport):
    await transport.publish(TOPIC, "req-1", b"first")
    await transport.publish(TOPIC, "req-2", b"second")

    record = await transport.fetch(TOPIC, GROUP, 0)
    again = await transport.fetch(TOPIC, GROUP, 0)
    assert again.offset == record.offset
    assert again.delivery_count == 2

    await transport.ack(again, GROUP)
    nxt = await transport.fetch(TOPIC, GROUP, 0)
    assert nxt.value == b"second"


@pytest.mark.asyncio
async def test_empty_stream_returns_none(transport):
    assert await transport.fetch(TOPIC, GROUP, 0) is None


@pytest.mark.asyncio
async def test_consumer_dead_letters_to_redis_stream(transport, redis):
    async def handler(record):
        raise RuntimeError("boom")

    consumer = PartitionConsumer(transport, TOPIC, GROUP, handler, max_attempts=2, backoff_ms=0)
    await transport.publish(TOPIC, "req-1", b"payload")
    await consumer.poll_once(0)

    assert await redis.xlen(f"{TOPIC}.DLT:0") == 1
    assert await transport.fetch(TOPIC, GROUP, 0) is None
