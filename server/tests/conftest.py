"""
Test configuration and fixtures for the Stofhamp API tests.
"""
from typing import Dict

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from stofhamp.database import crud
from stofhamp.database.db import get_session
from stofhamp.database.models import Base, UserType
from stofhamp.main import create_app
from stofhamp.services.auth import create_access_token, hash_password
from stofhamp.services.cache import Cache

# Use in-memory SQLite database for testing
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def engine():
    """Fresh in-memory database with all tables for each test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_maker):
    """Session used by tests to prepare and inspect data."""
    async with session_maker() as session:
        yield session


@pytest.fixture
def cache() -> Cache:
    return Cache()


@pytest_asyncio.fixture
async def client(session_maker, cache):
    """Async client against an app wired to the test database and cache."""
    app = create_app(cache=cache)

    async def override_get_session():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def test_user(db_session):
    """Create a personal account."""
    return await crud.create_user(
        db_session,
        name="Ayşe Yılmaz",
        email="ayse@example.com",
        password_hash=hash_password("secret123"),
        phone="5551234567",
    )


@pytest_asyncio.fixture
async def other_user(db_session):
    """Create a second, business account."""
    return await crud.create_user(
        db_session,
        name="Mehmet Demir",
        email="mehmet@example.com",
        password_hash=hash_password("secret123"),
        company="Demir Hurda",
        user_type=UserType.BUSINESS,
    )


@pytest_asyncio.fixture
async def admin_user(db_session):
    """Create an administrator."""
    return await crud.create_user(
        db_session,
        name="Admin",
        email="admin@example.com",
        password_hash=hash_password("adminpass"),
        user_type=UserType.ADMIN,
    )


@pytest.fixture
def auth_headers(test_user) -> Dict[str, str]:
    """Authentication headers for the personal account."""
    token = create_access_token(test_user.id, test_user.user_type)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def other_headers(other_user) -> Dict[str, str]:
    """Authentication headers for the business account."""
    token = create_access_token(other_user.id, other_user.user_type)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(admin_user) -> Dict[str, str]:
    """Authentication headers for the administrator."""
    token = create_access_token(admin_user.id, admin_user.user_type)
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def test_category(db_session):
    return await crud.create_category(db_session, "Metal", "Metal scraps")


@pytest_asyncio.fixture
async def test_material(db_session, test_category):
    return await crud.create_material(db_session, "Çelik", "Steel", test_category.id)


@pytest_asyncio.fixture
async def test_listing(db_session, other_user, test_category, test_material):
    """A listing sold by the business account."""
    return await crud.create_listing(
        db_session,
        seller_id=other_user.id,
        title="Galvanized steel sheets",
        description="Leftover sheets from a roofing job",
        price=250.0,
        condition="USED",
        images=["https://example.com/sheet.jpg"],
        location="İstanbul",
        category_id=test_category.id,
        material_id=test_material.id,
    )
