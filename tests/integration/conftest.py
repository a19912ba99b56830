"""Integration test fixtures: the FastAPI app over a SQLite file database."""

from collections.abc import AsyncGenerator

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from payroll_remittance.api.app import create_app
from payroll_remittance.api.dependencies import get_app_settings, get_db_session
from payroll_remittance.config import Settings

PAYROLL_HEADERS = {"X-Actor-Id": "ana.dp", "X-Actor-Role": "PAYROLL"}
FINANCE_HEADERS = {"X-Actor-Id": "bruno.fin", "X-Actor-Role": "FINANCE"}


@pytest_asyncio.fixture
async def client(
    session_factory: async_sessionmaker[AsyncSession],
    settings: Settings,
) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for API testing."""
    app = create_app()

    async def override_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db_session] = override_session
    app.dependency_overrides[get_app_settings] = lambda: settings

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
