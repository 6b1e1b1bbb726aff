"""Database connection, session and transaction management."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, AsyncGenerator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from payrun_engine.config import get_settings
from payrun_engine.errors import PersistenceError

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

logger = logging.getLogger(__name__)


def get_engine(database_url: str | None = None) -> AsyncEngine:
    """Create async database engine."""
    settings = get_settings()
    url = database_url or settings.database_url
    if url.startswith("sqlite"):
        return create_async_engine(url, echo=False)
    return create_async_engine(
        url,
        echo=False,
        pool_pre_ping=True,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Build the session factory used for one-transaction-per-call sessions."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


# Global engine and session factory
_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def init_db() -> tuple[AsyncEngine, async_sessionmaker[AsyncSession]]:
    """Initialize database engine and session factory."""
    global _engine, _session_factory
    if _engine is None:
        _engine = get_engine()
        _session_factory = create_session_factory(_engine)
    return _engine, _session_factory


async def dispose_db() -> None:
    """Dispose the global engine, if any."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get the global session factory, initializing on first use."""
    _, factory = init_db()
    return factory


@asynccontextmanager
async def transaction(
    factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Run a unit of work in a single transaction.

    Commits on success. Any exception rolls the whole transaction back;
    database failures are re-raised as PersistenceError.
    """
    async with factory() as session:
        try:
            async with session.begin():
                yield session
        except SQLAlchemyError as exc:
            logger.error("Transaction rolled back after database failure", exc_info=exc)
            raise PersistenceError(
                f"Database operation failed: {exc.__class__.__name__}",
                {"error": str(exc)},
            ) from exc


@asynccontextmanager
async def snapshot(
    factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Open a read-only transaction that sees one consistent version of the data.

    On PostgreSQL the transaction runs at REPEATABLE READ so every statement in
    it reads the same snapshot. Nothing is written; the transaction is rolled
    back on exit.
    """
    async with factory() as session:
        try:
            if session.get_bind().dialect.name == "postgresql":
                await session.connection(
                    execution_options={"isolation_level": "REPEATABLE READ"}
                )
            yield session
        except SQLAlchemyError as exc:
            raise PersistenceError(
                f"Snapshot read failed: {exc.__class__.__name__}",
                {"error": str(exc)},
            ) from exc
        finally:
            await session.rollback()
