"""Structured logging configuration using structlog.

The API process and worker processes share one configuration; each passes its
own ``service`` name so their JSON lines can be told apart once aggregated.
Processing-path code binds ``correlation_id`` and ``trace_id`` explicitly (see
``reportflow.context``); the HTTP layer binds ``trace_id`` through contextvars.
"""

import logging
import sys

import structlog


def _add_service(service: str):
    def processor(logger, method_name, event_dict):
        event_dict.setdefault("service", service)
        return event_dict

    return processor


def configure_logging(log_level: str = "info", json_output: bool = False, service: str = "reportflow-api") -> None:
    """Configure structlog over stdlib logging.

    Args:
        log_level: Logging level string (debug/info/warning/error).
        json_output: If True, output JSON (production). If False, colored console (dev).
        service: Value of the ``service`` field on every log line.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        _add_service(service),
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    if json_output:
        renderer = structlog.processors.JSONRenderer()
        shared_processors.append(structlog.processors.format_exc_info)
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
        foreign_pre_chain=shared_processors,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    # Quiet noisy libraries; the archive client logs its own outcomes
    for noisy in ("uvicorn.access", "sqlalchemy.engine", "httpx", "aiosqlite"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def bind_request_context(trace_id: str) -> None:
    """Bind the HTTP request's trace id to the current async context."""
    structlog.contextvars.bind_contextvars(trace_id=trace_id)


def clear_request_context() -> None:
    """Clear bound context variables after a request."""
    structlog.contextvars.clear_contextvars()
