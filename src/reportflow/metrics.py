"""Prometheus collectors for report processing."""

from prometheus_client import Counter, Histogram

REPORT_GENERATION_SECONDS = Histogram(
    "report_generation_seconds",
    "Time spent generating a report, successful or not",
    ["report_type"],
)

ARCHIVE_CALL_SECONDS = Histogram(
    "archive_call_seconds",
    "Latency of successful archive calls including retries",
    ["report_type"],
)

ARCHIVE_CALLS_TOTAL = Counter(
    "archive_calls_total",
    "Archive call outcomes",
    ["outcome"],
)

WORK_ITEMS_TOTAL = Counter(
    "work_items_total",
    "Work items handled by the report worker, by outcome",
    ["outcome"],
)

DEAD_LETTERS_TOTAL = Counter(
    "dead_letters_total",
    "Records routed to a dead-letter topic",
    ["topic"],
)
