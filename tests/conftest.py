# tests/conftest.py

"""
Pytest configuration and shared fixtures for testing.
"""

import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["RBAC_INIT_ON_STARTUP"] = "false"
os.environ["JWT_SECRET"] = "test-secret-key"

import httpx
import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import cmms.models  # noqa: F401
from cmms.core.security import create_access_token
from cmms.db.base import Base
from cmms.db.session import get_db
from cmms.db.seeds.seed_rbac import initialize_rbac
from cmms.main import create_app
from cmms.models.user import User
from cmms.services.rbac_service import rbac_service


@pytest.fixture
async def engine():
    """In-memory SQLite engine with the full schema."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def seeded_db(db):
    """Session over a database with the default catalog seeded."""
    assert await initialize_rbac(db) is True
    return db


@pytest.fixture
def make_user(db):
    """Create a user and grant it the given roles."""

    async def _make_user(email: str, *roles: str) -> User:
        user = User(email=email, full_name=email.split("@")[0])
        db.add(user)
        await db.commit()
        for role in roles:
            await rbac_service.assign_role(db, user.id, role, assigned_by="test-admin")
        return user

    return _make_user


@pytest.fixture
def app(session_factory):
    """FastAPI application wired to the test database."""
    app = create_app()

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    return app


@pytest.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture
def auth_headers():
    """Bearer header for a user id, as the identity provider would issue."""

    def _auth_headers(user_id: str) -> dict:
        return {"Authorization": f"Bearer {create_access_token({'sub': user_id})}"}

    return _auth_headers
