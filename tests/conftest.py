"""Shared pytest fixtures for service, database and API tests."""

from collections.abc import Callable
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from shortlinks.config import Settings
from shortlinks.database import close_db, init_db
from shortlinks.dependencies import RequestContext, ServiceManager
from shortlinks.main import app
from shortlinks.service import ShortLinkService

TEST_BASE_URL = "http://sho.rt"
TEST_JWT_SECRET = "test-secret"


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        BASE_URL=TEST_BASE_URL,
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'shortlinks.db'}",
        JWT_SECRET=TEST_JWT_SECRET,
    )


@pytest_asyncio.fixture(scope="function")
async def service_manager(settings: Settings) -> AsyncGenerator[ServiceManager, None]:
    manager = ServiceManager(settings)
    await manager.initialize()
    await init_db(manager.engine)
    yield manager
    await manager.cleanup()
    await close_db(manager.engine)


@pytest.fixture
def session_factory(service_manager: ServiceManager) -> async_sessionmaker[AsyncSession]:
    return service_manager.session_factory


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def link_service(db_session: AsyncSession, service_manager: ServiceManager) -> ShortLinkService:
    ctx = RequestContext(database=db_session, service_manager=service_manager)
    return ShortLinkService.from_context(ctx)


@pytest.fixture
def auth_headers() -> Callable[[str], dict[str, str]]:
    def _headers(user_id: str) -> dict[str, str]:
        token = jwt.encode({"sub": user_id}, TEST_JWT_SECRET, algorithm="HS256")
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest_asyncio.fixture(scope="function")
async def client(service_manager: ServiceManager) -> AsyncGenerator[AsyncClient, None]:
    original_manager = app.state.service_manager
    app.state.service_manager = service_manager

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.state.service_manager = original_manager
