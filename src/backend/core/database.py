"""
Database configuration.
Async SQLAlchemy engine, session factory and the request-scoped session
dependency.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.exc import PendingRollbackError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import AsyncAdaptedQueuePool
from sqlmodel import SQLModel

from .config import settings


def build_engine(url: str) -> AsyncEngine:
    """Create the async engine with pool settings suited to the dialect."""
    if url.startswith("sqlite"):
        return create_async_engine(url, echo=settings.database.echo, future=True)

    return create_async_engine(
        url,
        echo=settings.database.echo,
        future=True,
        pool_pre_ping=True,
        pool_size=settings.database.pool_size,
        max_overflow=settings.database.max_overflow,
        pool_timeout=settings.database.pool_timeout,
        pool_recycle=settings.database.pool_recycle,
        poolclass=AsyncAdaptedQueuePool,
        connect_args={
            "server_settings": {"application_name": settings.api.app_name},
            "command_timeout": 60,
            "timeout": 30,
        },
    )


engine = build_engine(settings.database.url)

# Create async session factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,  # Prevent additional queries after commit
    autoflush=False,
    autocommit=False,
)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency for getting async database sessions.
    Commits on success, rolls back on any exception.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            if session.in_transaction():
                try:
                    await session.commit()
                except PendingRollbackError:
                    await session.rollback()
                    raise
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def get_background_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Create an isolated session for scheduler jobs and other work that runs
    outside a request.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def check_database() -> bool:
    """Return True when a trivial query succeeds."""
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    return True


async def init_db() -> None:
    """
    Initialize database tables.
    Should be called on application startup; create_all skips existing tables.
    """
    # Register table metadata before create_all
    import db.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


async def close_db() -> None:
    """
    Close database connections.
    Should be called on application shutdown.
    """
    await engine.dispose()
