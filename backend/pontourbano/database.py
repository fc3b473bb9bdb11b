"""
Ponto Urbano Backend — Database Engine & Sessions
===================================================

What:  Async SQLAlchemy engine, session factory, declarative base and schema bootstrap.
Why:   Centralizes all database connection logic in one place.
How:   `Database` owns one async engine (connection pool) and one session
       factory. The ServiceContainer creates exactly one per app instance;
       the request dependency in dependencies.py opens a session per request.

Connection Pooling Strategy:
    pool_size / max_overflow come from Settings (defaults 10 + 5).
    pool_pre_ping validates connections before use (catches DB restarts).
    pool_recycle=3600 recycles connections every hour.
    SQLite (tests, local hacking) gets the dialect's default pool instead,
    because its pools don't accept the sizing arguments.

Schema management:
    There are no migrations. create_tables() issues CREATE TABLE IF NOT EXISTS
    for every model at startup, which is all this service has ever needed.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from pontourbano.config import Settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    All models inherit from this class so that Base.metadata knows every table
    when create_tables() runs.
    """
    pass


class Database:
    """Owns the engine and session factory for one application instance."""

    def __init__(self, settings: Settings):
        engine_kwargs = {
            # Echo SQL queries only when debugging; it's noisy otherwise
            "echo": settings.log_level == "DEBUG",
        }
        if not settings.is_sqlite:
            engine_kwargs.update(
                pool_size=settings.db_pool_size,
                max_overflow=settings.db_max_overflow,
                pool_pre_ping=settings.db_pool_pre_ping,
                pool_recycle=3600,
            )

        self.engine: AsyncEngine = create_async_engine(settings.database_url, **engine_kwargs)

        # expire_on_commit=False: services read attributes (ids, timestamps)
        # after commit to build responses; expiring them would trigger lazy
        # loads outside the session.
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Yield one session for the duration of a request.

        How it works:
            1. Creates a new session from the factory
            2. Yields it to the route handler / services
            3. On success: commits anything the services left pending
            4. On error: rolls back, then re-raises for the global handlers
            5. Always: closes the session (returns connection to pool)
        """
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise
            finally:
                await session.close()

    async def create_tables(self) -> None:
        """CREATE TABLE IF NOT EXISTS for every registered model."""
        # Importing the package registers every model on Base.metadata
        import pontourbano.models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database schema ready (%d tables)", len(Base.metadata.tables))

    async def ping(self) -> bool:
        """Lightweight connectivity probe used by the health check."""
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.warning("Database ping failed: %s", str(e))
            return False

    async def dispose(self) -> None:
        """
        What:  Gracefully closes all connections in the pool.
        When:  Called during application shutdown (lifespan handler).
        """
        await self.engine.dispose()
