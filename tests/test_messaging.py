"""Tests for the in-memory transport and the partition consumer."""

import asyncio

import pytest

from reportflow.messaging.consumer import PartitionConsumer
from reportflow.messaging.memory import InMemoryTransport
from reportflow.messaging.transport import partition_for

TOPIC = "orders"
GROUP = "workers"


def test_partition_for_is_stable():
    assert partition_for("req-1", 6) == partition_for("req-1", 6)
    assert 0 <= partition_for("anything", 6) < 6


def test_assigned_partitions_split_across_workers():
    assert PartitionConsumer.assigned_partitions(6, 0, 2) == [0, 2, 4]
    assert PartitionConsumer.assigned_partitions(6, 1, 2) == [1, 3, 5]
    with pytest.raises(ValueError):
        PartitionConsumer.assigned_partitions(6, 2, 2)


@pytest.mark.asyncio
async def test_same_key_lands_on_same_partition_in_order():
    transport = InMemoryTransport(partitions=4)
    first = await transport.publish(TOPIC, "k", b"1")
    second = await transport.publish(TOPIC, "k", b"2")
    assert first.partition == second.partition
    assert (first.offset, second.offset) == (0, 1)


@pytest.mark.asyncio
async def test_unacked_record_is_redelivered_before_newer_ones():
    transport = InMemoryTransport(partitions=1)
    await transport.publish(TOPIC, "k", b"1")
    await transport.publish(TOPIC, "k", b"2")

    record = await transport.fetch(TOPIC, GROUP, 0)
    again = await transport.fetch(TOPIC, GROUP, 0)
    assert again.value == b"1"
    assert again.delivery_count == 2

    await transport.ack(again, GROUP)
    nxt = await transport.fetch(TOPIC, GROUP, 0)
    assert nxt.value == b"2"
    assert record.offset == 0


@pytest.mark.asyncio
async def test_groups_consume_independently():
    transport = InMemoryTransport(partitions=1)
    await transport.publish(TOPIC, "k", b"1")

    a = await transport.fetch(TOPIC, "group-a", 0)
    await transport.ack(a, "group-a")
    b = await transport.fetch(TOPIC, "group-b", 0)
    assert b.value == b"1"
    assert await transport.fetch(TOPIC, "group-a", 0) is None


@pytest.mark.asyncio
async def test_fetch_waits_for_publish():
    transport = InMemoryTransport(partitions=1)

    async def publish_later():
        await asyncio.sleep(0.01)
        await transport.publish(TOPIC, "k", b"late")

    task = asyncio.create_task(publish_later())
    record = await transport.fetch(TOPIC, GROUP, 0, timeout=1.0)
    await task
    assert record.value == b"late"


@pytest.mark.asyncio
async def test_fetch_times_out_empty():
    transport = InMemoryTransport(partitions=1)
    assert await transport.fetch(TOPIC, GROUP, 0, timeout=0.01) is None


@pytest.mark.asyncio
async def test_consumer_processes_same_key_in_order():
    transport = InMemoryTransport(partitions=3)
    seen: list[bytes] = []
    done = asyncio.Event()

    async def handler(record):
        seen.append(record.value)
        if len(seen) == 3:
            done.set()

    consumer = PartitionConsumer(transport, TOPIC, GROUP, handler, backoff_ms=0, poll_timeout_ms=20)
    await consumer.start()
    for value in (b"W1", b"W2", b"W3"):
        await transport.publish(TOPIC, "same-key", value)
    await asyncio.wait_for(done.wait(), timeout=2)
    await consumer.stop()

    assert seen == [b"W1", b"W2", b"W3"]
    assert transport.lag(TOPIC, GROUP) == 0
    assert not consumer.running


@pytest.mark.asyncio
async def test_handler_retried_then_succeeds():
    transport = InMemoryTransport(partitions=1)
    calls = []

    async def handler(record):
        calls.append(record.offset)
        if len(calls) < 2:
            raise RuntimeError("transient")

    consumer = PartitionConsumer(transport, TOPIC, GROUP, handler, max_attempts=3, backoff_ms=0)
    await transport.publish(TOPIC, "k", b"v")
    assert await consumer.poll_once(0) is True

    assert len(calls) == 2
    assert transport.records(f"{TOPIC}.DLT") == []
    assert transport.lag(TOPIC, GROUP) == 0


@pytest.mark.asyncio
async def test_exhausted_record_goes_to_dead_letter_topic():
    transport = InMemoryTransport(partitions=1)

    async def handler(record):
        raise ValueError("bad payload")

    consumer = PartitionConsumer(transport, TOPIC, GROUP, handler, max_attempts=2, backoff_ms=0)
    await transport.publish(TOPIC, "k", b"v", {"correlation_id": "k"})
    await consumer.poll_once(0)

    dead = transport.records(f"{TOPIC}.DLT")
    assert len(dead) == 1
    assert dead[0].key == "k"
    assert dead[0].value == b"v"
    headers = dead[0].headers
    assert headers["correlation_id"] == "k"
    assert headers["dlt_original_topic"] == TOPIC
    assert headers["dlt_original_partition"] == "0"
    assert headers["dlt_original_offset"] == "0"
    assert headers["dlt_exception_class"] == "ValueError"
    assert headers["dlt_exception_message"] == "bad payload"
    assert headers["dlt_attempts"] == "2"
    assert transport.lag(TOPIC, GROUP) == 0


@pytest.mark.asyncio
async def test_slow_partition_does_not_block_others():
    transport = InMemoryTransport(partitions=2)
    release = asyncio.Event()
    fast_done = asyncio.Event()

    keys = {}
    for candidate in (f"key-{i}" for i in range(50)):
        keys.setdefault(partition_for(candidate, 2), candidate)
        if len(keys) == 2:
            break

    async def handler(record):
        if record.partition == 0:
            await release.wait()
        else:
            fast_done.set()

    consumer = PartitionConsumer(transport, TOPIC, GROUP, handler, backoff_ms=0, poll_timeout_ms=20)
    await consumer.start()
    await transport.publish(TOPIC, keys[0], b"slow")
    await transport.publish(TOPIC, keys[1], b"fast")

    await asyncio.wait_for(fast_done.wait(), timeout=2)
    release.set()
    await consumer.stop()
    assert transport.lag(TOPIC, GROUP) == 0


@pytest.mark.asyncio
async def test_dead_letter_keeps_first_failure():
    transport = InMemoryTransport(partitions=1)
    calls = []

    async def handler(record):
        calls.append(record.offset)
        if len(calls) == 1:
            raise ConnectionError("archive down")
        raise LookupError("request already failed")

    consumer = PartitionConsumer(transport, TOPIC, GROUP, handler, max_attempts=3, backoff_ms=0)
    await transport.publish(TOPIC, "k", b"v")
    await consumer.poll_once(0)

    headers = transport.records(f"{TOPIC}.DLT")[0].headers
    assert headers["dlt_exception_class"] == "LookupError"
    assert headers["dlt_first_exception_class"] == "ConnectionError"
    assert headers["dlt_first_exception_message"] == "archive down"


@pytest.mark.asyncio
async def test_stop_lets_in_flight_record_finish_and_fetches_nothing_new():
    transport = InMemoryTransport(partitions=1)
    started = asyncio.Event()
    release = asyncio.Event()
    handled: list[bytes] = []

    async def handler(record):
        started.set()
        await release.wait()
        handled.append(record.value)

    consumer = PartitionConsumer(transport, TOPIC, GROUP, handler, backoff_ms=0, poll_timeout_ms=20)
    await consumer.start()
    await transport.publish(TOPIC, "k", b"in-flight")
    await asyncio.wait_for(started.wait(), timeout=2)

    stopping = asyncio.create_task(consumer.stop())
    await asyncio.sleep(0.01)
    assert not stopping.done()

    await transport.publish(TOPIC, "k", b"after-stop")
    release.set()
    await asyncio.wait_for(stopping, timeout=2)

    assert handled == [b"in-flight"]
    assert not consumer.running
    # The in-flight record was acknowledged; the later one was never fetched
    assert transport.lag(TOPIC, GROUP) == 1
    nxt = await transport.fetch(TOPIC, GROUP, 0)
    assert nxt.value == b"after-stop"
    assert nxt.delivery_count == 1
