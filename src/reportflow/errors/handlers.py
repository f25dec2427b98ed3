"""FastAPI exception handlers producing the ErrorResponse envelope."""

import logging
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from reportflow.errors.exceptions import AuthorizationError, ReportFlowError
from reportflow.models.common import ErrorDetail, ErrorResponse

logger = logging.getLogger(__name__)


def _error_response(request: Request, status_code: int, code: str, message: str, details=None) -> JSONResponse:
    trace_id = getattr(request.state, "trace_id", "unknown")
    error_response = ErrorResponse(
        error=ErrorDetail(
            code=code,
            message=message,
            details=details,
            trace_id=trace_id,
            path=request.url.path,
            timestamp=datetime.now(timezone.utc),
        ),
    )
    return JSONResponse(
        status_code=status_code,
        content=error_response.model_dump(mode="json", exclude_none=True),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all custom exception handlers on the FastAPI app."""

    @app.exception_handler(ReportFlowError)
    async def reportflow_error_handler(request: Request, exc: ReportFlowError):
        if isinstance(exc, AuthorizationError):
            user = getattr(request.state, "user", {}) or {}
            logger.warning(
                "report_access_denied",
                extra={
                    "path": request.url.path,
                    "method": request.method,
                    "user_sub": user.get("sub", "anonymous"),
                    "user_scopes": user.get("scopes", []),
                    "reason": str(exc),
                },
            )
        elif exc.status_code >= 500:
            logger.error("Request %s %s failed: %s", request.method, request.url.path, exc.message)
        return _error_response(request, exc.status_code, exc.code, exc.message, exc.details)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        details = [
            {"field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"), "message": err.get("msg")}
            for err in exc.errors()
        ]
        return _error_response(request, 400, "VALIDATION_ERROR", "Request validation failed", details)

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return _error_response(request, 500, "INTERNAL_ERROR", "Unexpected error")
