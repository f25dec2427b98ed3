"""Partition consumer: ordered per-partition delivery with retry and dead-lettering."""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from datetime import datetime, timezone

from tenacity import AsyncRetrying, stop_after_attempt, wait_fixed

from reportflow.messaging.records import Record
from reportflow.messaging.transport import QueueTransport
from reportflow.metrics import DEAD_LETTERS_TOTAL

logger = logging.getLogger(__name__)

RecordHandler = Callable[[Record], Awaitable[None]]


class PartitionConsumer:
    """Consumer-group member that owns a fixed set of partitions.

    Each owned partition gets its own loop task, so a slow record on one
    partition never blocks another, while records on the same partition are
    handled strictly one after the other. A record whose handler keeps
    failing is retried ``max_attempts`` times, then published to
    ``{topic}{dead_letter_suffix}`` and acknowledged.
    """

    def __init__(
        self,
        transport: QueueTransport,
        topic: str,
        group: str,
        handler: RecordHandler,
        *,
        partitions: Iterable[int] | None = None,
        max_attempts: int = 3,
        backoff_ms: int = 1000,
        poll_timeout_ms: int = 1000,
        concurrency: int | None = None,
        dead_letter_suffix: str = ".DLT",
    ):
        self.transport = transport
        self.topic = topic
        self.group = group
        self.handler = handler
        self.partitions = sorted(partitions) if partitions is not None else list(
            range(transport.partition_count(topic))
        )
        self.max_attempts = max(1, max_attempts)
        self.backoff_ms = backoff_ms
        self.poll_timeout = poll_timeout_ms / 1000
        self.dead_letter_topic = f"{topic}{dead_letter_suffix}"
        self._semaphore = asyncio.Semaphore(concurrency) if concurrency else None
        self._stopping = asyncio.Event()
        self._tasks: list[asyncio.Task] = []

    @staticmethod
    def assigned_partitions(partition_count: int, worker_index: int, worker_count: int) -> list[int]:
        """Static assignment: worker ``i`` of ``n`` owns partitions ``p`` with ``p % n == i``."""
        if worker_count < 1 or not 0 <= worker_index < worker_count:
            raise ValueError(f"Invalid worker slot {worker_index}/{worker_count}")
        return [p for p in range(partition_count) if p % worker_count == worker_index]

    @property
    def running(self) -> bool:
        return any(not task.done() for task in self._tasks)

    async def start(self) -> None:
        if self.running:
            return
        self._stopping.clear()
        self._tasks = [
            asyncio.create_task(self._consume_partition(p), name=f"{self.topic}-p{p}")
            for p in self.partitions
        ]
        logger.info(
            "Consumer %s started on %s partitions %s",
            self.group,
            self.topic,
            self.partitions,
        )

    async def stop(self) -> None:
        """Stop fetching, let in-flight records finish and be acknowledged."""
        self._stopping.set()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        logger.info("Consumer %s stopped", self.group)

    async def poll_once(self, partition: int, timeout: float = 0.0) -> bool:
        """Fetch and fully handle at most one record; returns whether one was handled."""
        record = await self.transport.fetch(self.topic, self.group, partition, timeout=timeout)
        if record is None:
            return False
        await self.process(record)
        return True

    async def _consume_partition(self, partition: int) -> None:
        while not self._stopping.is_set():
            try:
                await self.poll_once(partition, timeout=self.poll_timeout)
            except Exception:
                # Record stays unacknowledged and is fetched again.
                logger.exception("Consumer loop error on %s partition %d", self.topic, partition)
                await asyncio.sleep(self.backoff_ms / 1000)

    async def process(self, record: Record) -> None:
        if self._semaphore is None:
            await self._process(record)
            return
        async with self._semaphore:
            await self._process(record)

    async def _process(self, record: Record) -> None:
        attempts = 0
        first_error: Exception | None = None
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.max_attempts),
                wait=wait_fixed(self.backoff_ms / 1000),
                reraise=True,
            ):
                with attempt:
                    attempts += 1
                    try:
                        await self.handler(record)
                    except Exception as exc:
                        first_error = first_error or exc
                        raise
        except Exception as exc:
            logger.warning(
                "Record %s/%d@%s failed after %d attempt(s): %s",
                record.topic,
                record.partition,
                record.offset,
                attempts,
                exc,
            )
            await self._dead_letter(record, exc, attempts, first_error or exc)
        await self.transport.ack(record, self.group)

    async def _dead_letter(self, record: Record, exc: Exception, attempts: int, first_error: Exception) -> None:
        headers = dict(record.headers)
        headers.update(
            {
                "dlt_original_topic": record.topic,
                "dlt_original_partition": str(record.partition),
                "dlt_original_offset": str(record.offset),
                "dlt_exception_class": type(exc).__name__,
                "dlt_exception_message": str(exc)[:1024],
                "dlt_first_exception_class": type(first_error).__name__,
                "dlt_first_exception_message": str(first_error)[:1024],
                "dlt_attempts": str(attempts),
                "dlt_failed_at": datetime.now(timezone.utc).isoformat(),
            }
        )
        metadata = await self.transport.publish(self.dead_letter_topic, record.key, record.value, headers)
        DEAD_LETTERS_TOTAL.labels(topic=self.dead_letter_topic).inc()
        logger.error(
            "Record key=%s dead-lettered to %s (partition %d, offset %s)",
            record.key,
            self.dead_letter_topic,
            metadata.partition,
            metadata.offset,
        )
