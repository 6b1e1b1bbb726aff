"""API test fixtures: the FastAPI app bound to the in-memory test database."""

from collections.abc import AsyncGenerator

import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from payrun_engine.api.app import create_app
from payrun_engine.api.dependencies import get_session_factory, get_settings


@pytest_asyncio.fixture
async def client(session_factory, settings) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against the app; the lifespan is not run, so no real engine is created."""
    app = create_app()
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_settings] = lambda: settings

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
