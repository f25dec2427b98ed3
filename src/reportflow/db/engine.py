"""Async SQLAlchemy engine and session creation."""

import logging

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from reportflow.config import settings

logger = logging.getLogger(__name__)


def create_db_engine(url: str | None = None) -> AsyncEngine:
    """Create an async SQLAlchemy engine."""
    db_url = url or settings.effective_database_url
    engine_kwargs: dict = {"echo": False}

    # SQLite does not support pool_size / max_overflow
    if "sqlite" not in db_url:
        engine_kwargs.update(pool_size=10, max_overflow=20)

    return create_async_engine(db_url, **engine_kwargs)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create an async session factory."""
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def create_schema_if_sqlite(engine: AsyncEngine) -> None:
    """Create tables directly on SQLite (local dev, no Alembic migrations)."""
    if engine.dialect.name != "sqlite":
        return

    from reportflow.db.base import Base
    import reportflow.db.models  # noqa: F401  register ORM models

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("SQLite tables created (local mode)")
