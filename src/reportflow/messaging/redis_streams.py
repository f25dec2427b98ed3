"""Redis Streams transport: one stream per topic partition."""

import json
import logging

from redis.exceptions import ResponseError

from reportflow.messaging.records import Record, RecordMetadata
from reportflow.messaging.transport import QueueTransport, partition_for

logger = logging.getLogger(__name__)


def _text(value) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return value


class RedisStreamsTransport(QueueTransport):
    """Partitioned transport on ``redis.asyncio``.

    Each partition is the stream ``{topic}:{partition}``. Consumer groups map
    onto Redis consumer groups; the consumer name is derived from the
    partition, so whichever worker owns a partition also inherits its pending
    (delivered but unacknowledged) entries and reads them first.
    """

    def __init__(self, redis, partitions: int = 6):
        self._redis = redis
        self._partitions = partitions
        self._groups_ready: set[tuple[str, str]] = set()

    def partition_count(self, topic: str) -> int:
        return self._partitions

    @staticmethod
    def stream_key(topic: str, partition: int) -> str:
        return f"{topic}:{partition}"

    @staticmethod
    def consumer_name(group: str, partition: int) -> str:
        return f"{group}-p{partition}"

    async def publish(
        self, topic: str, key: str, value: bytes, headers: dict[str, str] | None = None
    ) -> RecordMetadata:
        partition = partition_for(key, self._partitions)
        entry_id = await self._redis.xadd(
            self.stream_key(topic, partition),
            {
                "key": key,
                "value": value.decode("utf-8"),
                "headers": json.dumps(headers or {}),
            },
        )
        return RecordMetadata(topic=topic, partition=partition, offset=_text(entry_id))

    async def _ensure_group(self, stream: str, group: str) -> None:
        if (stream, group) in self._groups_ready:
            return
        try:
            await self._redis.xgroup_create(stream, group, id="0", mkstream=True)
            logger.info("Created consumer group %s on %s", group, stream)
        except ResponseError as exc:
            if "BUSYGROUP" not in str(exc):
                raise
        self._groups_ready.add((stream, group))

    async def fetch(self, topic: str, group: str, partition: int, timeout: float = 0.0) -> Record | None:
        stream = self.stream_key(topic, partition)
        await self._ensure_group(stream, group)
        consumer = self.consumer_name(group, partition)

        # Pending entries first: redeliver what a previous owner left unacknowledged.
        response = await self._redis.xreadgroup(group, consumer, {stream: "0"}, count=16)
        record, trimmed = self._first_record(topic, partition, response, redelivered=True)
        if trimmed:
            await self._redis.xack(stream, group, *trimmed)
        if record is not None:
            return record

        block = int(timeout * 1000) if timeout > 0 else None
        response = await self._redis.xreadgroup(group, consumer, {stream: ">"}, count=1, block=block)
        record, _ = self._first_record(topic, partition, response, redelivered=False)
        return record

    def _first_record(
        self, topic: str, partition: int, response, redelivered: bool
    ) -> tuple[Record | None, list[str]]:
        trimmed: list[str] = []
        if not response:
            return None, trimmed
        streams = response.items() if isinstance(response, dict) else response
        for _stream, entries in streams:
            for entry in entries or []:
                entry_id, fields = _text(entry[0]), entry[1]
                if not fields:
                    # Entry trimmed from the stream while still pending.
                    trimmed.append(entry_id)
                    continue
                fields = {_text(k): _text(v) for k, v in fields.items()}
                record = Record(
                    topic=topic,
                    partition=partition,
                    offset=entry_id,
                    key=fields["key"],
                    value=fields["value"].encode("utf-8"),
                    headers=json.loads(fields.get("headers") or "{}"),
                    delivery_count=2 if redelivered else 1,
                )
                return record, trimmed
        return None, trimmed

    async def ack(self, record: Record, group: str) -> None:
        await self._redis.xack(self.stream_key(record.topic, record.partition), group, record.offset)
