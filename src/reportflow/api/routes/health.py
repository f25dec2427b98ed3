"""Health check endpoints."""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text

from reportflow import __version__

router = APIRouter()


@router.get("/health")
async def health_check():
    """Return service health status."""
    return {"status": "healthy", "service": "reportflow-api", "version": __version__}


@router.get("/health/live")
async def liveness():
    """Liveness probe: 200 while the process is running."""
    return {"status": "alive"}


@router.get("/health/ready")
async def readiness(request: Request):
    """Readiness probe: checks the database and, when configured, Redis."""
    checks: dict[str, str] = {}
    overall_ok = True

    try:
        session_factory = request.app.state.db_session_factory
        async with session_factory() as session:
            await session.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as exc:
        checks["database"] = f"error: {exc}"
        overall_ok = False

    redis = getattr(request.app.state, "redis", None)
    if redis is not None:
        try:
            await redis.ping()
            checks["redis"] = "ok"
        except Exception as exc:
            checks["redis"] = f"error: {exc}"
            overall_ok = False
    else:
        checks["redis"] = "disabled"

    consumer = getattr(request.app.state, "consumer", None)
    if consumer is not None:
        checks["consumer"] = "running" if consumer.running else "stopped"

    return JSONResponse(
        status_code=200 if overall_ok else 503,
        content={
            "status": "ready" if overall_ok else "not_ready",
            "checks": checks,
        },
    )
