"""FastAPI dependencies for dependency injection."""

from typing import Annotated
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from payrun_engine import database
from payrun_engine.config import Settings
from payrun_engine.config import get_settings as load_settings
from payrun_engine.services.pay_run_service import PayRunService


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get the session factory dependency."""
    return database.get_session_factory()


def get_settings() -> Settings:
    """Get settings dependency."""
    return load_settings()


async def get_actor_id(
    x_actor_id: Annotated[str | None, Header()] = None
) -> UUID | None:
    """Extract the acting user's ID from header, if supplied."""
    if not x_actor_id:
        return None
    try:
        return UUID(x_actor_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid X-Actor-ID format",
        )


SessionFactory = Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)]
AppSettings = Annotated[Settings, Depends(get_settings)]
ActorId = Annotated[UUID | None, Depends(get_actor_id)]


def get_pay_run_service(factory: SessionFactory) -> PayRunService:
    """Get pay run service dependency."""
    return PayRunService(factory)


PayRuns = Annotated[PayRunService, Depends(get_pay_run_service)]
