"""Async SQLAlchemy engine and session management."""

from __future__ import annotations

from typing import Any

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from orchestrator.core.config import Settings, get_settings
from orchestrator.infrastructure.database.base import Base

_engine: AsyncEngine | None = None


def build_engine(settings: Settings) -> AsyncEngine:
    engine_kwargs: dict[str, Any] = {
        "echo": settings.database.echo,
        "future": True,
    }
    if settings.database.pool_size is not None:
        engine_kwargs["pool_size"] = settings.database.pool_size
    if settings.database.max_overflow is not None:
        engine_kwargs["max_overflow"] = settings.database.max_overflow

    return create_async_engine(settings.database_url, **engine_kwargs)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


def get_engine() -> AsyncEngine:
    """Process-wide engine for tooling that runs outside the application container."""
    global _engine
    if _engine is None:
        _engine = build_engine(get_settings())
    return _engine


async def init_db(engine: AsyncEngine | None = None) -> None:
    """Create database tables in development mode (migrations preferred)."""
    # deferred so that model registration does not create an import cycle
    from orchestrator.db import models  # noqa: F401

    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
