"""FastAPI application factory and lifespan management."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from reportflow import __version__
from reportflow.config import settings
from reportflow.logging_config import configure_logging

# Configure logging at import time
configure_logging(log_level=settings.log_level, json_output=not settings.local_mode)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application startup and shutdown resources."""
    from reportflow.runtime import build_runtime

    runtime = await build_runtime(settings)
    app.state.runtime = runtime
    app.state.db_engine = runtime.engine
    app.state.db_session_factory = runtime.session_factory
    app.state.redis = runtime.redis
    app.state.publisher = runtime.publisher
    app.state.consumer = None

    # Local mode processes work items in-process; otherwise run reportflow-worker
    if settings.local_mode:
        consumer = runtime.build_consumer(settings, partitions=None)
        await consumer.start()
        app.state.consumer = consumer

    logger.info(
        "reportflow API started (db=%s, queue=%s)",
        runtime.engine.dialect.name,
        settings.effective_queue_backend,
    )
    yield

    await runtime.close()
    logger.info("reportflow API shutdown complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="reportflow API",
        version=__version__,
        description="Accepts report-generation requests and processes them asynchronously.",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Add middleware (order matters: last added = first executed)
    from reportflow.api.middleware.auth import AuthMiddleware
    from reportflow.api.middleware.trace_id import TraceIdMiddleware
    app.add_middleware(AuthMiddleware)
    app.add_middleware(TraceIdMiddleware)

    from reportflow.errors.handlers import register_exception_handlers
    register_exception_handlers(app)

    from prometheus_fastapi_instrumentator import Instrumentator
    Instrumentator(
        should_group_status_codes=True,
        should_respect_env_var=False,
        excluded_handlers=["/api/v1/health.*", "/metrics"],
    ).instrument(app).expose(app, endpoint="/metrics", include_in_schema=False)

    from reportflow.api.router import api_router
    app.include_router(api_router)

    return app


app = create_app()
