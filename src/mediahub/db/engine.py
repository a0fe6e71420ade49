"""Async SQLAlchemy engine and session factory.

Learn: SQLAlchemy 2.0 async mode. create_async_engine for connection pooling,
AsyncSession for per-request database access, dependency injection via FastAPI.

The engine is built from the Settings object passed to create_app() and
parked on app.state; get_db() pulls the session factory from there.
"""

from collections.abc import AsyncIterator

from fastapi import Request
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from mediahub.config import Settings


def create_engine(settings: Settings) -> AsyncEngine:
    """Build the async engine for settings.database_url."""
    url = settings.database_url
    if url.startswith("sqlite"):
        # In-memory SQLite must share one connection or every session
        # would see its own empty database.
        return create_async_engine(
            url,
            echo=settings.database_echo,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )

    # Connection pool: min 5, max 20 connections.
    return create_async_engine(
        url,
        echo=settings.database_echo,
        pool_size=5,
        max_overflow=15,
        pool_pre_ping=True,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # Each request gets its own session.
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    """FastAPI dependency: yields a session per request, auto-closes."""
    factory: async_sessionmaker[AsyncSession] = request.app.state.session_factory
    async with factory() as session:
        try:
            yield session
        finally:
            await session.close()
