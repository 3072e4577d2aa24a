"""Database engine and session configuration."""

from __future__ import annotations

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from campus_board.core.settings import settings


class Base(DeclarativeBase):
    """Declarative base shared by all ORM models."""


def build_engine(url: str | None = None, *, echo: bool | None = None) -> AsyncEngine:
    """Create an async engine for ``url`` (defaults to the configured store)."""
    return create_async_engine(
        url or settings.database_url,
        pool_pre_ping=True,
        echo=settings.sql_debug if echo is None else echo,
    )


def build_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Return a session factory bound to ``engine``."""
    return async_sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


async def create_tables(engine: AsyncEngine) -> None:
    """Create all database tables."""
    # Ensure model modules are imported so that metadata is populated.
    import campus_board.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
