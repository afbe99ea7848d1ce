# tests/conftest.py
# Shared fixtures: in-memory SQLite per test, an HTTP client wired to it,
# and registered users with bearer tokens.

import os
import tempfile

# Settings are read at import time, so configure the environment first
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="tour-uploads-"))

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import app.db.models  # noqa: F401
from app.core.db import Base, get_db
from app.infrastructure.storage.screenshots import ScreenshotStorage, get_screenshot_storage
from tests.helpers import register_and_login


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def upload_dir(tmp_path):
    path = tmp_path / "uploads"
    path.mkdir()
    return path


@pytest_asyncio.fixture
async def client(session_factory, upload_dir):
    from app.main import app

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_screenshot_storage] = lambda: ScreenshotStorage(str(upload_dir), 1024 * 1024)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def auth_headers(client):
    return await register_and_login(client, "owner@example.com", "owner")


@pytest_asyncio.fixture
async def other_headers(client):
    return await register_and_login(client, "intruder@example.com", "intruder")


@pytest_asyncio.fixture
async def owner(db_session):
    """User row for repository/service level tests"""
    from app.db.repositories.user_repository import UserRepository
    from app.domains.identity.entities import User

    return await UserRepository(db_session).create(
        User.create_user(email="svc@example.com", username="svc_user", password="Passw0rd123")
    )
