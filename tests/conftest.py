import os

os.environ.setdefault("JWT_SECRET", "test-secret-not-for-production-use-0123456789")
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["MODE"] = "test"
os.environ.pop("GEMINI_API_KEY", None)

import httpx
import pytest

from app.core.db.base import async_session_maker, create_tables, drop_tables, engine
from app.core.db.schemas.auth import User
from app.modules.auth import current_active_user
from app.apis.flashcards.main import get_generation_gateway
from main import app as fastapi_app
from tests.utils import make_gateway


@pytest.fixture
async def database():
    await create_tables()
    yield
    await drop_tables()
    # The next test runs on a new event loop; its connection must be opened there
    await engine.dispose()


@pytest.fixture
async def session(database):
    async with async_session_maker() as s:
        yield s


async def _make_user(session, email: str) -> User:
    user = User(
        email=email,
        hashed_password="not-a-real-hash",
        is_active=True,
        is_superuser=False,
        is_verified=True,
    )
    session.add(user)
    await session.commit()
    return user


@pytest.fixture
async def user(session):
    return await _make_user(session, "reader@example.com")


@pytest.fixture
async def other_user(session):
    return await _make_user(session, "someone.else@example.com")


@pytest.fixture
def app(user):
    fastapi_app.dependency_overrides[current_active_user] = lambda: user
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def use_gateway(app):
    """Install a gateway backed by a fake upstream for the generation route."""

    def _install(handler, api_key: str = "test-api-key"):
        gateway = make_gateway(handler, api_key=api_key)
        app.dependency_overrides[get_generation_gateway] = lambda: gateway
        return gateway

    return _install


@pytest.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
