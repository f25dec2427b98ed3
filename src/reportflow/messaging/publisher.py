"""Publishes work items to the request topic."""

import logging

from reportflow.context import CorrelationContext
from reportflow.errors.exceptions import QueuePublishError
from reportflow.messaging.records import RecordMetadata
from reportflow.messaging.transport import QueueTransport
from reportflow.models.work_item import WorkItem

logger = logging.getLogger(__name__)


class WorkItemPublisher:
    def __init__(self, transport: QueueTransport, topic: str):
        self.transport = transport
        self.topic = topic

    async def publish(self, item: WorkItem, correlation: CorrelationContext) -> RecordMetadata:
        """Publish keyed by request id; transport failures surface as QueuePublishError."""
        try:
            metadata = await self.transport.publish(
                self.topic,
                item.request_id,
                item.to_bytes(),
                correlation.as_headers(),
            )
        except Exception as exc:
            logger.error("Failed to publish work item %s to %s: %s", item.request_id, self.topic, exc)
            raise QueuePublishError(details={"request_id": item.request_id}) from exc
        logger.debug(
            "Published work item %s to %s partition %d",
            item.request_id,
            metadata.topic,
            metadata.partition,
        )
        return metadata
