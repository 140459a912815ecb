"""Database connection, session management and units of work."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, AsyncGenerator

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from payout_engine.config import Settings, get_settings
from payout_engine.errors import FatalPersistenceError, PayoutError

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

logger = logging.getLogger(__name__)


def get_engine(settings: Settings | None = None) -> AsyncEngine:
    """Create async database engine."""
    settings = settings or get_settings()
    pool_args: dict[str, int] = {}
    if settings.database_url.startswith("postgresql"):
        pool_args = {"pool_size": 10, "max_overflow": 20}
    return create_async_engine(
        settings.database_url,
        echo=False,
        pool_pre_ping=True,
        isolation_level=settings.isolation_level,
        **pool_args,
    )


# Global engine and session factory
_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def make_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory with the options every caller relies on."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


def init_db() -> tuple[AsyncEngine, async_sessionmaker[AsyncSession]]:
    """Initialize database engine and session factory."""
    global _engine, _session_factory
    if _engine is None:
        _engine = get_engine()
        _session_factory = make_session_factory(_engine)
    return _engine, _session_factory


async def dispose_db() -> None:
    """Dispose of the global engine."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None


@asynccontextmanager
async def atomic(
    session: AsyncSession,
    timeout_seconds: float | None = None,
) -> AsyncGenerator[AsyncSession, None]:
    """Run the enclosed block as a single unit of work.

    Commits when the block finishes, rolls back on any exception. Domain
    errors are re-raised unchanged; database failures and timeouts are
    raised as FatalPersistenceError.
    """
    if timeout_seconds is None:
        timeout_seconds = get_settings().transaction_timeout_seconds

    try:
        async with asyncio.timeout(timeout_seconds):
            bind = session.bind
            if bind is not None and bind.dialect.name == "postgresql":
                await session.execute(
                    text(f"SET LOCAL statement_timeout = {int(timeout_seconds * 1000)}")
                )
            yield session
            await session.commit()
    except PayoutError:
        await session.rollback()
        raise
    except (SQLAlchemyError, TimeoutError) as exc:
        await session.rollback()
        logger.exception("Unit of work rolled back")
        raise FatalPersistenceError(f"Unit of work rolled back: {exc}") from exc
    except Exception:
        await session.rollback()
        raise
