"""FastAPI dependencies for dependency injection."""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from payout_engine.config import Settings, get_settings
from payout_engine.database import init_db


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency."""
    _, factory = init_db()
    async with factory() as session:
        try:
            yield session
        finally:
            await session.close()


def get_app_settings() -> Settings:
    """Settings dependency (overridable in tests)."""
    return get_settings()


async def get_actor_id(x_actor_id: Annotated[str | None, Header()] = None) -> str | None:
    """Acting user, recorded on audit events and ledger rows."""
    return x_actor_id or None


# Type aliases for cleaner dependency injection
DbSession = Annotated[AsyncSession, Depends(get_db_session)]
AppSettings = Annotated[Settings, Depends(get_app_settings)]
ActorId = Annotated[str | None, Depends(get_actor_id)]
