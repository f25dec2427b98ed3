"""String enums for report requests."""

from enum import StrEnum


class ReportType(StrEnum):
    PERFORMANCE = "PERFORMANCE"
    BENCHMARK_SUMMARY = "BENCHMARK_SUMMARY"
    DIVERSIFICATION_BAR = "DIVERSIFICATION_BAR"
    ASSET_ALLOCATION = "ASSET_ALLOCATION"


class ReportStatus(StrEnum):
    SUBMITTED = "SUBMITTED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in (ReportStatus.COMPLETED, ReportStatus.FAILED)
