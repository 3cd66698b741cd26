"""Async PostgreSQL engine, request sessions and startup/shutdown hooks."""

import time
from collections.abc import AsyncGenerator
from typing import Any, Dict

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from grindflow.core.config import settings
from grindflow.utils.logging import get_logger

LOGGER = get_logger(__name__)


class Base(DeclarativeBase):
    """Declarative base shared by the document tables."""

    pass


def build_engine() -> AsyncEngine:
    """Engine for the configured Supabase Postgres database."""
    return create_async_engine(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
        echo=settings.database_echo,
        pool_pre_ping=True,
        # Supabase pooler runs PgBouncer in transaction mode
        connect_args={"statement_cache_size": 0},
    )


class DatabaseClient:
    """Owns the engine and the session factory handed to request handlers."""

    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self.session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async def ping(self) -> float:
        """Round-trip ``SELECT 1`` and return the latency in milliseconds."""
        started = time.monotonic()
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return (time.monotonic() - started) * 1000

    async def create_tables(self) -> None:
        """Create missing document tables; existing ones are left as they are."""
        # Registers the mapped classes on Base.metadata
        from grindflow.database import models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        LOGGER.info("Document tables verified")

    async def health_check(self) -> Dict[str, Any]:
        """Report database reachability without raising."""
        try:
            latency_ms = await self.ping()
        except Exception as e:
            LOGGER.error("Database health check failed", extra={"error": str(e)})
            return {"status": "unhealthy", "error": str(e)}
        return {"status": "healthy", "latency_ms": round(latency_ms, 1)}

    async def dispose(self) -> None:
        await self.engine.dispose()
        LOGGER.info("Database engine disposed")


db_client = DatabaseClient(build_engine())


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding one session per request."""
    async with db_client.session_factory() as session:
        yield session


async def init_database(auto_migrate: bool = True) -> None:
    """Check connectivity and, when ``auto_migrate`` is set, create missing tables.

    Raises:
        Exception: Whatever the driver raised; startup logs it and carries on
    """
    latency_ms = await db_client.ping()
    LOGGER.info(f"Database reachable ({latency_ms:.1f} ms)")

    if auto_migrate:
        await db_client.create_tables()


async def close_database() -> None:
    await db_client.dispose()
