"""Build the configured queue transport."""

import logging

from reportflow.messaging.memory import InMemoryTransport
from reportflow.messaging.transport import QueueTransport

logger = logging.getLogger(__name__)


def create_transport(cfg, redis=None) -> QueueTransport:
    """Return an in-memory or Redis Streams transport.

    ``redis`` may be an existing ``redis.asyncio`` client; otherwise one is
    created from ``cfg.redis_url``.
    """
    backend = cfg.effective_queue_backend
    if backend == "memory":
        logger.info("Using in-memory queue transport (%d partitions)", cfg.queue_partitions)
        return InMemoryTransport(partitions=cfg.queue_partitions)
    if backend == "redis":
        from reportflow.messaging.redis_streams import RedisStreamsTransport

        if redis is None:
            import redis.asyncio as aioredis

            redis = aioredis.from_url(cfg.redis_url, decode_responses=True)
        logger.info("Using Redis Streams queue transport (%d partitions)", cfg.queue_partitions)
        return RedisStreamsTransport(redis, partitions=cfg.queue_partitions)
    raise ValueError(f"Unknown queue backend: {backend!r}")
