"""Submission and query operations for report requests."""

import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from reportflow.context import CorrelationContext
from reportflow.db.models.report_request import ReportRequestRow
from reportflow.errors.exceptions import NotFoundError, QueuePublishError, ValidationError
from reportflow.messaging.publisher import WorkItemPublisher
from reportflow.models.enums import ReportStatus, ReportType
from reportflow.models.report_request import ReportDetailsResponse, ReportStatusResponse
from reportflow.models.work_item import WorkItem
from reportflow.repositories.report_request_repo import ReportRequestRepository
from reportflow.services.id_generator import generate_request_id

logger = logging.getLogger(__name__)


class ReportService:
    def __init__(self, session: AsyncSession, publisher: WorkItemPublisher | None = None):
        self.session = session
        self.publisher = publisher

    async def submit(
        self,
        report_type: ReportType | str,
        requested_by: str,
        parameters: dict[str, Any],
        *,
        trace_id: str | None = None,
    ) -> str:
        """Persist a SUBMITTED request, then publish its work item.

        The record is committed before publishing. If publishing fails the
        request stays SUBMITTED and QueuePublishError propagates to the caller.
        """
        if self.publisher is None:
            raise QueuePublishError("Queue transport not configured")
        try:
            report_type = ReportType(report_type)
        except ValueError as exc:
            raise ValidationError(f"Unknown report type: {report_type}") from exc
        if not requested_by or not requested_by.strip() or len(requested_by) > 128:
            raise ValidationError("requestedBy must be non-blank and at most 128 characters")
        if parameters is None:
            raise ValidationError("parameters are required")

        request_id = generate_request_id()
        repo = ReportRequestRepository(self.session)
        row = await repo.create(
            request_id=request_id,
            report_type=report_type,
            requested_by=requested_by,
            parameters=parameters,
        )
        await self.session.commit()
        logger.info("Report request %s submitted (type=%s, by=%s)", request_id, report_type, requested_by)

        item = WorkItem.for_request(
            request_id=request_id,
            report_type=report_type,
            requested_by=requested_by,
            parameters=parameters,
            requested_at=row.created_at,
        )
        await self.publisher.publish(item, CorrelationContext(correlation_id=request_id, trace_id=trace_id))
        return request_id

    async def _load(self, request_id: str) -> ReportRequestRow:
        row = await ReportRequestRepository(self.session).get(request_id)
        if row is None:
            raise NotFoundError("Report", request_id)
        return row

    async def get_status(self, request_id: str) -> ReportStatusResponse:
        row = await self._load(request_id)
        return ReportStatusResponse(
            request_id=row.request_id,
            status=ReportStatus(row.status),
            error_message=row.error_message,
        )

    async def get_details(self, request_id: str) -> ReportDetailsResponse:
        row = await self._load(request_id)
        return ReportDetailsResponse(
            request_id=row.request_id,
            report_type=ReportType(row.report_type),
            status=ReportStatus(row.status),
            requested_by=row.requested_by,
            parameters=row.parameters or {},
            archive_ref=row.archive_ref,
            error_message=row.error_message,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )
