"""Component wiring shared by the API process and worker processes."""

import logging
from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from reportflow.clients.archive import ArchiveClient
from reportflow.db.engine import create_db_engine, create_schema_if_sqlite, create_session_factory
from reportflow.messaging.consumer import PartitionConsumer
from reportflow.messaging.factory import create_transport
from reportflow.messaging.publisher import WorkItemPublisher
from reportflow.messaging.transport import QueueTransport
from reportflow.strategies.registry import StrategyRegistry, build_default_registry
from reportflow.workers.report_worker import ReportRequestWorker

logger = logging.getLogger(__name__)


@dataclass
class Runtime:
    engine: AsyncEngine
    session_factory: async_sessionmaker[AsyncSession]
    transport: QueueTransport
    publisher: WorkItemPublisher
    archive_client: ArchiveClient
    registry: StrategyRegistry
    worker: ReportRequestWorker
    redis: object | None = None
    consumers: list[PartitionConsumer] = field(default_factory=list)

    def build_consumer(self, cfg, partitions: list[int] | None = None) -> PartitionConsumer:
        if partitions is None:
            partitions = PartitionConsumer.assigned_partitions(
                self.transport.partition_count(cfg.request_topic),
                cfg.worker_index,
                cfg.worker_count,
            )
        consumer = PartitionConsumer(
            self.transport,
            cfg.request_topic,
            cfg.consumer_group,
            self.worker.handle,
            partitions=partitions,
            max_attempts=cfg.consumer_max_attempts,
            backoff_ms=cfg.consumer_backoff_ms,
            poll_timeout_ms=cfg.consumer_poll_timeout_ms,
            concurrency=cfg.consumer_concurrency,
            dead_letter_suffix=cfg.dead_letter_suffix,
        )
        self.consumers.append(consumer)
        return consumer

    async def close(self) -> None:
        for consumer in self.consumers:
            await consumer.stop()
        await self.archive_client.close()
        await self.transport.close()
        if self.redis is not None:
            await self.redis.aclose()
        await self.engine.dispose()


async def build_runtime(cfg, *, engine: AsyncEngine | None = None, redis=None) -> Runtime:
    """Create every long-lived component from settings.

    The strategy registry is validated here, so a report type without a
    strategy stops the process at startup.
    """
    engine = engine or create_db_engine(cfg.effective_database_url)
    await create_schema_if_sqlite(engine)
    session_factory = create_session_factory(engine)

    if redis is None and cfg.effective_queue_backend == "redis":
        import redis.asyncio as aioredis

        redis = aioredis.from_url(cfg.redis_url, decode_responses=True)

    transport = create_transport(cfg, redis=redis)
    archive_client = ArchiveClient.from_settings(cfg)
    registry = build_default_registry(archive_client)
    worker = ReportRequestWorker(session_factory, registry)
    logger.info(
        "Runtime ready (db=%s, queue=%s, topic=%s)",
        engine.dialect.name,
        cfg.effective_queue_backend,
        cfg.request_topic,
    )
    return Runtime(
        engine=engine,
        session_factory=session_factory,
        transport=transport,
        publisher=WorkItemPublisher(transport, cfg.request_topic),
        archive_client=archive_client,
        registry=registry,
        worker=worker,
        redis=redis,
    )
