"""In-process partitioned log used in local mode and tests."""

import asyncio
from dataclasses import replace

from reportflow.messaging.records import Record, RecordMetadata
from reportflow.messaging.transport import QueueTransport, partition_for


class InMemoryTransport(QueueTransport):
    """Append-only log per topic partition with per-group committed offsets."""

    def __init__(self, partitions: int = 6):
        self._partitions = partitions
        self._logs: dict[tuple[str, int], list[Record]] = {}
        self._committed: dict[tuple[str, str, int], int] = {}
        self._inflight: dict[tuple[str, str, int], Record] = {}
        self._conditions: dict[tuple[str, int], asyncio.Condition] = {}

    def partition_count(self, topic: str) -> int:
        return self._partitions

    def _condition(self, topic: str, partition: int) -> asyncio.Condition:
        return self._conditions.setdefault((topic, partition), asyncio.Condition())

    async def publish(
        self, topic: str, key: str, value: bytes, headers: dict[str, str] | None = None
    ) -> RecordMetadata:
        partition = partition_for(key, self._partitions)
        log = self._logs.setdefault((topic, partition), [])
        record = Record(
            topic=topic,
            partition=partition,
            offset=len(log),
            key=key,
            value=value,
            headers=dict(headers or {}),
        )
        log.append(record)
        condition = self._condition(topic, partition)
        async with condition:
            condition.notify_all()
        return RecordMetadata(topic=topic, partition=partition, offset=record.offset)

    async def fetch(self, topic: str, group: str, partition: int, timeout: float = 0.0) -> Record | None:
        slot = (group, topic, partition)
        pending = self._inflight.get(slot)
        if pending is not None:
            redelivered = replace(pending, delivery_count=pending.delivery_count + 1)
            self._inflight[slot] = redelivered
            return redelivered

        record = self._next(slot)
        if record is None and timeout > 0:
            condition = self._condition(topic, partition)
            try:
                async with condition:
                    await asyncio.wait_for(
                        condition.wait_for(lambda: self._has_next(slot)),
                        timeout,
                    )
            except asyncio.TimeoutError:
                return None
            record = self._next(slot)
        if record is not None:
            self._inflight[slot] = record
        return record

    async def ack(self, record: Record, group: str) -> None:
        slot = (group, record.topic, record.partition)
        current = self._committed.get(slot, 0)
        self._committed[slot] = max(current, int(record.offset) + 1)
        inflight = self._inflight.get(slot)
        if inflight is not None and inflight.offset == record.offset:
            del self._inflight[slot]

    def _has_next(self, slot: tuple[str, str, int]) -> bool:
        group, topic, partition = slot
        return self._committed.get(slot, 0) < len(self._logs.get((topic, partition), []))

    def _next(self, slot: tuple[str, str, int]) -> Record | None:
        if not self._has_next(slot):
            return None
        group, topic, partition = slot
        return self._logs[(topic, partition)][self._committed.get(slot, 0)]

    def records(self, topic: str) -> list[Record]:
        """Every record published to ``topic``, across partitions."""
        found: list[Record] = []
        for (log_topic, _partition), log in sorted(self._logs.items()):
            if log_topic == topic:
                found.extend(log)
        return found

    def lag(self, topic: str, group: str) -> int:
        """Records not yet acknowledged by ``group``."""
        total = 0
        for (log_topic, partition), log in self._logs.items():
            if log_topic == topic:
                total += len(log) - self._committed.get((group, topic, partition), 0)
        return total
