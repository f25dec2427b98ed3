"""Queue transport interface."""

import zlib
from abc import ABC, abstractmethod

from reportflow.messaging.records import Record, RecordMetadata


def partition_for(key: str, partitions: int) -> int:
    """Stable key-to-partition mapping shared by every producer process."""
    return zlib.crc32(key.encode("utf-8")) % partitions


class QueueTransport(ABC):
    """Partitioned, at-least-once message transport with consumer groups.

    Records with the same key land on the same partition. Within a group a
    partition's records are delivered in order, and a record that was fetched
    but not acknowledged is delivered again before anything newer.
    """

    @abstractmethod
    async def publish(
        self, topic: str, key: str, value: bytes, headers: dict[str, str] | None = None
    ) -> RecordMetadata:
        ...

    @abstractmethod
    async def fetch(self, topic: str, group: str, partition: int, timeout: float = 0.0) -> Record | None:
        """Return the next record for ``group`` on ``partition``, or None after ``timeout`` seconds."""
        ...

    @abstractmethod
    async def ack(self, record: Record, group: str) -> None:
        ...

    @abstractmethod
    def partition_count(self, topic: str) -> int:
        ...

    async def close(self) -> None:
        return None
