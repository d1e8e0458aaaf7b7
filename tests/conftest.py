"""Pytest configuration and fixtures."""

import os
import tempfile

# Settings are cached on first use, so configure them before importing the app
os.environ.setdefault("TASKNEST_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("TASKNEST_DATA_DIR", tempfile.mkdtemp(prefix="tasknest-test-"))
os.environ.setdefault("TASKNEST_AUTH_SECRET", "test-secret")
os.environ.setdefault("TASKNEST_RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("TASKNEST_LOG_JSON", "false")

import pytest
from httpx import AsyncClient, ASGITransport
from jose import jwt
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from tasknest.api.limits import limiter
from tasknest.database import get_db
from tasknest.identity import CallerIdentity
from tasknest.main import create_app
from tasknest.models import Base
from tasknest.services.user_service import UserService

TEST_SECRET = "test-secret"


def make_token(subject: str, email: str | None = None, name: str | None = None) -> str:
    """Mint an identity-provider token the app will accept."""
    claims = {"sub": subject}
    if email:
        claims["email"] = email
    if name:
        claims["name"] = name
    return jwt.encode(claims, TEST_SECRET, algorithm="HS256")


def auth_headers(subject: str, email: str | None = None) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(subject, email or f'{subject}@example.com')}"}


@pytest.fixture
async def test_engine():
    """Create a test database engine."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def test_session(test_engine):
    """Create a test database session."""
    async_session_maker = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    async with async_session_maker() as session:
        yield session


@pytest.fixture
async def alice(test_session):
    """Caller context for the first test user."""
    return await UserService(test_session).resolve_context(
        CallerIdentity(subject="user_alice", email="alice@example.com", name="Alice")
    )


@pytest.fixture
async def bob(test_session):
    """Caller context for a second, unrelated user."""
    return await UserService(test_session).resolve_context(
        CallerIdentity(subject="user_bob", email="bob@example.com")
    )


@pytest.fixture
async def client(test_engine):
    """Create a test client with overridden database."""
    async_session_maker = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async def override_get_db():
        async with async_session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    limiter.enabled = False
    app = create_app()
    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def alice_headers():
    return auth_headers("user_alice")


@pytest.fixture
def bob_headers():
    return auth_headers("user_bob")


@pytest.fixture
def headers_for():
    """Factory for auth headers of arbitrary subjects."""
    return auth_headers


@pytest.fixture
def token_for():
    """Factory for raw identity tokens."""
    return make_token
