import os

# Settings are read at import time; point them at test values first.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("TELEMETRY_ENABLED", "false")
os.environ.setdefault("INTERNAL_ADMIN_KEY", "test-internal")
os.environ.setdefault("API_KEY_PEPPER", "test-pepper")

import httpx
import pytest

from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession

# Import Base + all models so metadata is complete
import app.models  # noqa: F401
from app.models.base import Base

from app.main import app
from app.core.db import get_db

from tests.fixtures_seed import make_user


def _test_db_url(tmp_path) -> str:
    url = os.getenv("DATABASE_URL_TEST")
    if url:
        return url
    return f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"


@pytest.fixture
async def async_engine(tmp_path):
    engine = create_async_engine(_test_db_url(tmp_path), future=True)
    try:
        # Fresh schema per test
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
            await conn.run_sync(Base.metadata.create_all)
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
async def db_session(async_engine):
    session_factory = async_sessionmaker(bind=async_engine, expire_on_commit=False, class_=AsyncSession)
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(db_session: AsyncSession):
    """
    HTTP client that uses the test DB session via dependency override.
    A failed request rolls the session back, as closing a real session would.
    """
    async def _override_get_db():
        try:
            yield db_session
        except Exception:
            await db_session.rollback()
            raise

    app.dependency_overrides[get_db] = _override_get_db

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
async def seed_users(db_session):
    """One approved user per role, plus a second of each non-admin role."""
    users = {}
    for name, role in [
        ("provider", "provider"),
        ("other_provider", "provider"),
        ("beneficiary", "beneficiary"),
        ("other_beneficiary", "beneficiary"),
        ("courier", "delivery"),
        ("other_courier", "delivery"),
        ("admin", "admin"),
    ]:
        users[name] = await make_user(db_session, role=role, email=f"{name}@foodshare.org")
    return users
