"""
Test Suite Configuration
"""
import os

os.environ.setdefault("APP_ENV", "testing")
os.environ["REDIS_ENABLED"] = "false"
os.environ.setdefault("RATE_LIMIT_REQUESTS", "100000")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("JWT_SECRET_KEY", "test-jwt-secret")
os.environ.setdefault("ADMIN_KEY", "test-admin-key")
os.environ.setdefault("ADMIN_EMAIL", "admin@webhub.test")
os.environ.setdefault("ADMIN_PASSWORD", "admin-pass")

from datetime import timedelta  # noqa: E402
from typing import AsyncGenerator, Callable  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: E402

from webhub.database.connection import (  # noqa: E402
    build_engine,
    build_session_factory,
    create_tables,
    get_db_dependency,
)
from webhub.database.models import User, generate_id, utcnow  # noqa: E402
from webhub.security import create_access_token, hash_password  # noqa: E402
from webhub.services import catalog  # noqa: E402


@pytest.fixture
async def test_engine():
    """Fresh in-memory database per test"""
    engine = build_engine("sqlite+aiosqlite:///:memory:")
    await create_tables(engine)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return build_session_factory(test_engine)


@pytest.fixture
async def test_db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Database session for service-level tests"""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """API client whose requests each get a session on the test database"""
    from webhub.main import app

    async def override_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_dependency] = override_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(test_db) -> Callable:
    """Create a user row directly; ``age_days`` back-dates the account."""
    async def _make_user(
        name: str = "Ada",
        email: str = None,
        password: str = "secret123",
        age_days: int = 0,
        badges=None,
    ) -> User:
        user = User(
            id=generate_id("user"),
            email=email or f"{generate_id('u')}@example.com",
            password_hash=hash_password(password),
            name=name,
            badges=badges or [],
            created_at=utcnow() - timedelta(days=age_days),
        )
        test_db.add(user)
        await test_db.flush()
        return user

    return _make_user


def _submission(**overrides) -> dict:
    data = {
        "name": "Pixel Forge",
        "description_short": "Browser-based pixel art editor with layers",
        "url": f"https://{generate_id('app').replace('_', '-')}.example.com",
        "category": "design",
        "tags": "art, editor",
    }
    data.update(overrides)
    return data


@pytest.fixture
def make_item(test_db) -> Callable:
    async def _make_item(owner: User, **overrides):
        return await catalog.create_item(test_db, _submission(**overrides), owner.id)

    return _make_item


@pytest.fixture
def submission() -> Callable:
    """Builder for a submission that passes every validation rule"""
    return _submission


@pytest.fixture
def auth_headers() -> Callable:
    def _auth_headers(user_id: str) -> dict:
        return {"Authorization": f"Bearer {create_access_token(user_id)}"}

    return _auth_headers
