"""FastAPI dependency injection providers."""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from reportflow.errors.exceptions import AuthenticationError, AuthorizationError
from reportflow.services.report_service import ReportService

SCOPE_REPORTS_READ = "reports.read"
SCOPE_REPORTS_WRITE = "reports.write"


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Yield a database session from the app's session factory."""
    session_factory = request.app.state.db_session_factory
    async with session_factory() as session:
        yield session


def get_trace_id(request: Request) -> str:
    """Extract trace_id from request state (set by middleware)."""
    return getattr(request.state, "trace_id", "unknown")


async def get_current_user(request: Request) -> dict:
    """Return the authenticated user dict or raise 401."""
    user = getattr(request.state, "user", {})
    if "_auth_error" in (user or {}):
        raise AuthenticationError(user["_auth_error"])
    if not user or user.get("sub") in ("anonymous", ""):
        raise AuthenticationError("Authentication required")
    return user


def require_scope(scope: str):
    """Return a dependency that enforces the given OAuth scope."""

    async def _check(user: dict = Depends(get_current_user)) -> dict:
        scopes = set(user.get("scopes", []))
        if "*" not in scopes and scope not in scopes:
            raise AuthorizationError(f"Requires scope: {scope}")
        return user

    return _check


async def get_report_service(
    session: Annotated[AsyncSession, Depends(get_db)],
    request: Request,
) -> ReportService:
    return ReportService(session, getattr(request.app.state, "publisher", None))


# Type aliases for dependency injection
TraceId = Annotated[str, Depends(get_trace_id)]
ReportServiceDep = Annotated[ReportService, Depends(get_report_service)]
RequireReportsRead = Depends(require_scope(SCOPE_REPORTS_READ))
RequireReportsWrite = Depends(require_scope(SCOPE_REPORTS_WRITE))
