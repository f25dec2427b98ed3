"""Report worker: drives a report request from SUBMITTED to a terminal state.

Delivery is at-least-once, so the worker gates on the stored status before
doing anything:

* unknown request id -> dropped with a warning
* COMPLETED / IN_PROGRESS -> duplicate delivery, dropped
* FAILED -> ``ReportProcessingError``; the transport's retry and dead-letter
  policy decides what happens to the record, the report is never regenerated
* SUBMITTED -> claimed with a conditional SUBMITTED -> IN_PROGRESS update,
  committed before any work starts

A failure after the claim is recorded as FAILED with its error message and
then re-raised to the transport.
"""

from enum import StrEnum

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from reportflow.context import CorrelationContext
from reportflow.errors.exceptions import ReportFlowError, ReportProcessingError
from reportflow.messaging.records import Record
from reportflow.metrics import WORK_ITEMS_TOTAL
from reportflow.models.enums import ReportStatus, ReportType
from reportflow.models.work_item import WorkItem
from reportflow.repositories.report_request_repo import ReportRequestRepository
from reportflow.strategies.base import ReportContext
from reportflow.strategies.registry import StrategyRegistry

ERROR_MESSAGE_MAX = 512


class ProcessingOutcome(StrEnum):
    COMPLETED = "completed"
    DROPPED_UNKNOWN = "dropped_unknown"
    DROPPED_COMPLETED = "dropped_completed"
    DROPPED_IN_PROGRESS = "dropped_in_progress"
    DROPPED_CLAIMED = "dropped_claimed"


def describe_error(exc: BaseException) -> str:
    """Short, storable description of a processing failure."""
    if isinstance(exc, ReportFlowError):
        message = exc.message
        reason = exc.details.get("reason") if isinstance(exc.details, dict) else None
        if reason:
            message = f"{message}: {reason}"
    else:
        message = str(exc)
    message = message or type(exc).__name__
    return message[:ERROR_MESSAGE_MAX]


class ReportRequestWorker:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession], registry: StrategyRegistry):
        self._session_factory = session_factory
        self._registry = registry

    async def handle(self, record: Record) -> None:
        """Transport entry point for one delivered record."""
        item = WorkItem.from_bytes(record.value)
        correlation = CorrelationContext.from_headers(item.request_id, record.headers)
        await self.process(item, correlation)

    async def process(
        self, item: WorkItem, correlation: CorrelationContext | None = None
    ) -> ProcessingOutcome:
        correlation = correlation or CorrelationContext(correlation_id=item.request_id)
        log = correlation.logger(__name__).bind(request_id=item.request_id)

        async with self._session_factory() as session:
            repo = ReportRequestRepository(session)
            row = await repo.get(item.request_id)
            if row is None:
                log.warning("Dropping work item for unknown request")
                return self._count(ProcessingOutcome.DROPPED_UNKNOWN)

            status = ReportStatus(row.status)
            if status == ReportStatus.COMPLETED:
                log.info("Request already completed, skipping", archive_ref=row.archive_ref)
                return self._count(ProcessingOutcome.DROPPED_COMPLETED)
            if status == ReportStatus.IN_PROGRESS:
                log.info("Request already in progress, skipping")
                return self._count(ProcessingOutcome.DROPPED_IN_PROGRESS)
            if status == ReportStatus.FAILED:
                WORK_ITEMS_TOTAL.labels(outcome="rejected_failed").inc()
                log.warning("Request previously failed, not reprocessing", error_message=row.error_message)
                raise ReportProcessingError(row.request_id, row.error_message)

            request_id = row.request_id
            claimed = await repo.transition(request_id, ReportStatus.SUBMITTED, ReportStatus.IN_PROGRESS)
            await session.commit()
            if not claimed:
                log.info("Request claimed by another consumer, skipping")
                return self._count(ProcessingOutcome.DROPPED_CLAIMED)

            context = ReportContext(
                request_id=request_id,
                report_type=ReportType(row.report_type),
                requested_by=row.requested_by,
                parameters=dict(row.parameters or {}),
                requested_at=item.requested_at,
                correlation=correlation,
            )
            try:
                strategy = self._registry.resolve(context.report_type)
                result = await strategy.generate(context)
                await repo.transition(
                    request_id,
                    ReportStatus.IN_PROGRESS,
                    ReportStatus.COMPLETED,
                    archive_ref=result.archive_ref,
                    error_message=None,
                )
                await session.commit()
            except Exception as exc:
                await session.rollback()
                error_message = describe_error(exc)
                await repo.transition(
                    request_id,
                    ReportStatus.IN_PROGRESS,
                    ReportStatus.FAILED,
                    archive_ref=None,
                    error_message=error_message,
                )
                await session.commit()
                WORK_ITEMS_TOTAL.labels(outcome="failed").inc()
                log.error("Report generation failed", error_message=error_message)
                raise

        log.info("Report completed", archive_ref=result.archive_ref)
        return self._count(ProcessingOutcome.COMPLETED)

    @staticmethod
    def _count(outcome: ProcessingOutcome) -> ProcessingOutcome:
        WORK_ITEMS_TOTAL.labels(outcome=str(outcome)).inc()
        return outcome
