"""Async engine and session plumbing for the short-link store.

Each application's ``ServiceManager`` builds one engine from its own
``Settings.DATABASE_URL`` (PostgreSQL via asyncpg in production, SQLite via
aiosqlite in tests). Each request gets its own ``AsyncSession`` through
``get_db``; objects stay readable after commit.

Session Lifecycle
=================
::
    request ──▶ get_db() ──▶ AsyncSession ──▶ route / service
                   │               │
       app.state.service_manager   ├─ rollback on error
       .session_factory            ▼
                             session closed

Startup creates the ``short_links`` table together with its partial unique
index; shutdown disposes the connection pool.
"""

from collections.abc import AsyncGenerator

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from shortlinks.config import Settings

__all__ = ["Base", "build_engine", "build_session_factory", "get_db", "init_db", "close_db"]


class Base(DeclarativeBase):
    """Declarative base shared by every ORM model."""


def build_engine(settings: Settings) -> AsyncEngine:
    return create_async_engine(
        settings.DATABASE_URL,
        echo=settings.DATABASE_ECHO,
        pool_size=20,
        max_overflow=10,
        pool_pre_ping=True,
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    session_factory = request.app.state.service_manager.session_factory
    async with session_factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def init_db(engine: AsyncEngine) -> None:
    """Create missing tables and indexes."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db(engine: AsyncEngine) -> None:
    await engine.dispose()
