"""
Centralized Test Configuration.
"""

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import Pool, StaticPool

from backend.app.main import app
from backend.app.db.session import get_db, Base
from backend.app.core.security import get_password_hash
from backend.app.models.enums import UserRole
from backend.app.models.user import User
from backend.app.services.cache import MemoryCache, get_cache

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@event.listens_for(Pool, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    """Enable foreign key constraints for SQLite."""
    if 'sqlite' in str(type(dbapi_conn)).lower():
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


@pytest.fixture
async def engine():
    """Fresh in-memory database per test."""
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def cache():
    return MemoryCache(default_ttl=300)


@pytest.fixture
async def client(session_factory, cache):
    """Async client wired to the test database and cache."""

    async def override_get_db():
        async with session_factory() as session:
            yield session

    async def override_get_cache():
        return cache

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_cache] = override_get_cache

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides = {}


# Shared session for fixture data creation
@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def make_user(db_session):
    """Factory: insert a user directly (admins and salesmen are not self-registered)."""

    async def _make_user(username: str, password: str, role: UserRole, is_active: bool = True) -> User:
        user = User(
            email=f"{username}@distro.in",
            username=username,
            hashed_password=get_password_hash(password),
            role=role,
            is_active=is_active,
        )
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture
def login_as(client):
    """Factory: log in and return the bearer token."""

    async def _login(username: str, password: str) -> str:
        response = await client.post("/v1/auth/login", json={"username": username, "password": password})
        assert response.status_code == 200, response.text
        return response.json()["access_token"]

    return _login


@pytest.fixture
async def admin_token(make_user, login_as):
    """Create admin user and return auth token."""
    await make_user("admin", "admin123", UserRole.ADMIN)
    return await login_as("admin", "admin123")


@pytest.fixture
async def salesman_token(make_user, login_as):
    """Create salesman user and return auth token."""
    await make_user("salesman", "sales123", UserRole.SALESMAN)
    return await login_as("salesman", "sales123")


@pytest.fixture
async def customer_account(client, admin_token, login_as):
    """Create a customer with a login; return (customer_id, token)."""
    response = await client.post(
        "/v1/customers",
        json={
            "name": "Sharma Traders",
            "mobile": "9876543210",
            "address": "12 Market Road, Pune",
            "credit_limit": "50000.00",
            "login": {
                "email": "sharma@distro.in",
                "username": "sharma",
                "password": "sharma123"
            }
        },
        headers={"Authorization": f"Bearer {admin_token}"}
    )
    assert response.status_code == 201, response.text
    customer_id = response.json()["id"]
    token = await login_as("sharma", "sharma123")
    return customer_id, token
