"""Integration test fixtures for database and HTTP client operations.

Each test gets its own SQLite file so sessions opened by the app and by the
test see each other's commits without sharing a connection.
"""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.pool import NullPool

from src.leadflow.api.dependencies import get_db_session, get_dispatcher, get_text_generator
from src.leadflow.core.config import Settings, get_settings
from src.leadflow.core.db import get_session_factory, init_models
from src.leadflow.main import create_app
from tests.helpers import FakeDispatcher, FakeTextGenerator


@pytest.fixture(scope="function")
async def engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine]:
    """Create a throwaway database with every table in place."""
    test_engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'leadflow.db'}",
        poolclass=NullPool,
    )
    await init_models(test_engine)

    yield test_engine
    await test_engine.dispose()


@pytest.fixture
async def db_session(engine: AsyncEngine) -> AsyncGenerator[AsyncSession]:
    """Provide an async session for database operations.

    The session does not auto-commit; tests must call `await session.commit()`
    before the engine or the HTTP client can see their rows.
    """
    async with AsyncSession(engine, expire_on_commit=False) as session:
        yield session


@pytest.fixture
async def client(
    engine: AsyncEngine,
    settings: Settings,
    text_generator: FakeTextGenerator,
    dispatcher: FakeDispatcher,
) -> AsyncGenerator[AsyncClient]:
    """HTTP client wired to the test database and collaborator fakes."""
    app = create_app()
    session_factory = get_session_factory(engine)

    async def _db_session() -> AsyncGenerator[AsyncSession]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db_session] = _db_session
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_text_generator] = lambda: text_generator
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
