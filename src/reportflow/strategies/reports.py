"""Concrete strategies, one per report type."""

from reportflow.models.enums import ReportType
from reportflow.strategies.base import ReportStrategy


class PerformanceReportStrategy(ReportStrategy):
    report_type = ReportType.PERFORMANCE
    label = "Performance"


class BenchmarkSummaryReportStrategy(ReportStrategy):
    report_type = ReportType.BENCHMARK_SUMMARY
    label = "Benchmark summary"


class DiversificationBarReportStrategy(ReportStrategy):
    report_type = ReportType.DIVERSIFICATION_BAR
    label = "Diversification bar"


class AssetAllocationReportStrategy(ReportStrategy):
    report_type = ReportType.ASSET_ALLOCATION
    label = "Asset allocation"


DEFAULT_STRATEGIES: tuple[type[ReportStrategy], ...] = (
    PerformanceReportStrategy,
    BenchmarkSummaryReportStrategy,
    DiversificationBarReportStrategy,
    AssetAllocationReportStrategy,
)
