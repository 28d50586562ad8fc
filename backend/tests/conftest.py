"""
Centralized Test Configuration.
"""

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool, NullPool

from backend.app.main import app
from backend.app.core.jwt import issue_caller_token
from backend.app.db.session import get_db, Base, configure_sqlite
from backend.app.domain.directory.directory_engine import DirectoryEngine
from backend.app.domain.scoring.score_engine import ScoreEngine

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

engine = configure_sqlite(
    create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    ),
    immediate=False,
)

TestingSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


async def override_get_db():
    async with TestingSessionLocal() as session:
        yield session


@pytest.fixture(scope="session", autouse=True)
def apply_overrides():
    """Route every request session to the in-memory test database."""
    app.dependency_overrides[get_db] = override_get_db
    yield
    app.dependency_overrides = {}


@pytest.fixture(autouse=True)
async def setup_database():
    """Create tables before each test function and drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def client():
    """Async client for testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
def auth_headers():
    """Bearer header for an authenticated caller."""
    token = issue_caller_token("alice@example.com")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def db_session():
    async with TestingSessionLocal() as session:
        yield session


@pytest.fixture
def directory(db_session):
    return DirectoryEngine(db_session, default_max_score=200)


@pytest.fixture
def scores(db_session):
    return ScoreEngine(db_session)


@pytest.fixture
async def file_session_factory(tmp_path):
    """
    Session factory over a file-backed SQLite database.

    One connection per session (NullPool), so concurrent sessions really
    contend on the database lock.
    """
    file_engine = configure_sqlite(
        create_async_engine(
            f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}",
            connect_args={"timeout": 30},
            poolclass=NullPool,
        )
    )
    async with file_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(file_engine, class_=AsyncSession, expire_on_commit=False)

    await file_engine.dispose()
