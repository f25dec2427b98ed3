"""Strategy registry mapping report types to strategy instances."""

from collections.abc import Iterable

from reportflow.clients.archive import ArchiveClient
from reportflow.errors.exceptions import StrategyConfigurationError
from reportflow.models.enums import ReportType
from reportflow.strategies.base import ReportStrategy


class StrategyRegistry:
    """Total mapping from every ReportType to exactly one strategy.

    Construction fails if a report type is unmapped or mapped twice, so a
    missing strategy is a startup error rather than a per-request one.
    """

    def __init__(self, strategies: Iterable[ReportStrategy]):
        mapping: dict[ReportType, ReportStrategy] = {}
        for strategy in strategies:
            if strategy.report_type in mapping:
                raise StrategyConfigurationError(
                    f"Duplicate strategy for report type {strategy.report_type}: "
                    f"{type(mapping[strategy.report_type]).__name__} and {type(strategy).__name__}"
                )
            mapping[strategy.report_type] = strategy

        missing = [rt for rt in ReportType if rt not in mapping]
        if missing:
            raise StrategyConfigurationError(
                "No strategy registered for report type(s): " + ", ".join(str(rt) for rt in missing)
            )
        self._strategies = mapping

    def resolve(self, report_type: ReportType | str) -> ReportStrategy:
        return self._strategies[ReportType(report_type)]

    def __len__(self) -> int:
        return len(self._strategies)


def build_default_registry(archive_client: ArchiveClient) -> StrategyRegistry:
    """Instantiate the built-in strategy for every report type."""
    from reportflow.strategies.reports import DEFAULT_STRATEGIES

    return StrategyRegistry(cls(archive_client) for cls in DEFAULT_STRATEGIES)
