"""Base report strategy: build the archive payload, archive it, time it."""

import time
from abc import ABC
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, ClassVar

from reportflow.clients.archive import ArchiveClient
from reportflow.context import CorrelationContext
from reportflow.metrics import REPORT_GENERATION_SECONDS
from reportflow.models.enums import ReportType


@dataclass(frozen=True)
class ReportContext:
    """Everything a strategy needs to produce one report."""

    request_id: str
    report_type: ReportType
    requested_by: str
    parameters: dict[str, Any]
    requested_at: datetime | None = None
    correlation: CorrelationContext | None = field(default=None, compare=False)


@dataclass(frozen=True)
class ReportGenerationResult:
    archive_ref: str


class ReportStrategy(ABC):
    """One strategy per report type. Instances hold no per-request state."""

    report_type: ClassVar[ReportType]
    label: ClassVar[str] = "Report"

    def __init__(self, archive_client: ArchiveClient):
        self._archive = archive_client

    def build_payload(self, context: ReportContext) -> dict[str, Any]:
        return {
            "reportType": str(self.report_type),
            "requestId": context.request_id,
            "parameters": context.parameters,
        }

    async def generate(self, context: ReportContext) -> ReportGenerationResult:
        correlation = context.correlation or CorrelationContext(correlation_id=context.request_id)
        log = correlation.logger(type(self).__module__)
        started = time.perf_counter()
        try:
            archive_ref = await self._archive.archive(
                context.request_id,
                self.build_payload(context),
                correlation=correlation,
            )
        finally:
            REPORT_GENERATION_SECONDS.labels(report_type=str(self.report_type)).observe(
                time.perf_counter() - started
            )
        log.info(
            f"{self.label} report generated",
            request_id=context.request_id,
            report_type=str(self.report_type),
            archive_ref=archive_ref,
        )
        return ReportGenerationResult(archive_ref=archive_ref)
