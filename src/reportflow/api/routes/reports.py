"""Report request API routes."""

from fastapi import APIRouter

from reportflow.dependencies import (
    ReportServiceDep,
    RequireReportsRead,
    RequireReportsWrite,
    TraceId,
)
from reportflow.models.report_request import (
    ReportDetailsResponse,
    ReportStatusResponse,
    ReportSubmission,
    ReportSubmissionResponse,
)

router = APIRouter(prefix="/reports", tags=["Reports"])


@router.post(
    "/generate",
    status_code=202,
    response_model=ReportSubmissionResponse,
    dependencies=[RequireReportsWrite],
)
async def generate_report(
    body: ReportSubmission,
    service: ReportServiceDep,
    trace_id: TraceId,
) -> ReportSubmissionResponse:
    request_id = await service.submit(
        body.report_type,
        body.requested_by,
        body.parameters,
        trace_id=trace_id,
    )
    return ReportSubmissionResponse(request_id=request_id)


@router.get(
    "/{request_id}/status",
    response_model=ReportStatusResponse,
    dependencies=[RequireReportsRead],
)
async def get_report_status(request_id: str, service: ReportServiceDep) -> ReportStatusResponse:
    return await service.get_status(request_id)


@router.get(
    "/{request_id}",
    response_model=ReportDetailsResponse,
    dependencies=[RequireReportsRead],
)
async def get_report(request_id: str, service: ReportServiceDep) -> ReportDetailsResponse:
    return await service.get_details(request_id)
