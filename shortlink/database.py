"""Database engine and session factory management for the shortlink service.

This module provides SQLAlchemy async engine setup and the declarative base
for the mapping table. Nothing is connected at import time: the
``ServiceManager`` builds the engine once at startup and disposes it on
shutdown.

Flow Diagram — Database Lifecycle
=================================
::
    ┌─────────────┐
    │  Startup    │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ build_engine│
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ init_db()    │
    │ create_all   │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Sessions per │
    │ store call   │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ close_db()   │
    │ (dispose)    │
    └─────────────┘

Classes:
    Base:  SQLAlchemy declarative base for all models.

Functions:
    build_engine():  Creates the async engine from settings.
    build_session_factory():  Creates the async_sessionmaker bound to an engine.
    init_db():  Creates all tables.
    close_db():  Disposes the engine.
"""

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from shortlink.config import Settings

__all__ = ["Base", "build_engine", "build_session_factory", "init_db", "close_db"]


class Base(DeclarativeBase):
    pass


def build_engine(settings: Settings) -> AsyncEngine:
    url = make_url(settings.DATABASE_URL)
    if url.get_backend_name() == "sqlite":
        # SQLite pools do not accept sizing arguments.
        return create_async_engine(url, echo=settings.DATABASE_ECHO)
    return create_async_engine(
        url,
        echo=settings.DATABASE_ECHO,
        pool_size=settings.DATABASE_POOL_SIZE,
        max_overflow=settings.DATABASE_MAX_OVERFLOW,
        pool_pre_ping=True,
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def init_db(engine: AsyncEngine) -> None:
    # Register the mapping table on Base.metadata.
    from shortlink import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db(engine: AsyncEngine) -> None:
    await engine.dispose()
