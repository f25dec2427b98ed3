"""Correlation identifiers carried explicitly through the processing path."""

from dataclasses import dataclass

import structlog

CORRELATION_HEADER = "correlation_id"
TRACE_HEADER = "trace_id"


@dataclass(frozen=True)
class CorrelationContext:
    """Identifiers tying log lines and outbound calls back to one request.

    ``correlation_id`` is the report request id; ``trace_id`` is the id of the
    HTTP request that submitted it, when known.
    """

    correlation_id: str
    trace_id: str | None = None

    @classmethod
    def from_headers(cls, request_id: str, headers: dict[str, str] | None) -> "CorrelationContext":
        headers = headers or {}
        return cls(
            correlation_id=headers.get(CORRELATION_HEADER) or request_id,
            trace_id=headers.get(TRACE_HEADER) or None,
        )

    def as_headers(self) -> dict[str, str]:
        """Transport headers for a published work item."""
        headers = {CORRELATION_HEADER: self.correlation_id}
        if self.trace_id:
            headers[TRACE_HEADER] = self.trace_id
        return headers

    def as_http_headers(self) -> dict[str, str]:
        """Outbound HTTP headers for downstream calls."""
        headers = {"X-Correlation-Id": self.correlation_id}
        if self.trace_id:
            headers["X-Trace-Id"] = self.trace_id
        return headers

    def logger(self, name: str):
        """Return a structlog logger bound to these identifiers."""
        log = structlog.get_logger(name).bind(correlation_id=self.correlation_id)
        if self.trace_id:
            log = log.bind(trace_id=self.trace_id)
        return log
