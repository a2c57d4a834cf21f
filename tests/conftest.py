"""
Shared fixtures: a throwaway SQLite database per test, an in-memory
rate-limit storage per test, and an HTTP client bound to the app with
its dependencies pointed at both.
"""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from limits.aio.storage import MemoryStorage

from shortener.db.adapters import SQLiteAdapter
from shortener.db.session import get_session, get_session_maker, init_models, make_session_maker
from shortener.services.link_store import SQLLinkStore
from shortener.services.rate_limiter import RateLimiter, get_rate_limiter

TEST_RATE_LIMIT = 10
TEST_RATE_WINDOW_SECONDS = 60


@pytest_asyncio.fixture
async def engine(tmp_path):
    database_url = f"sqlite+aiosqlite:///{tmp_path / 'shortener-test.db'}"
    engine = SQLiteAdapter().create_engine(database_url)
    await init_models(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return make_session_maker(engine)


@pytest_asyncio.fixture
async def session(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
def store(session):
    return SQLLinkStore(session, write_retry_backoff=0)


@pytest.fixture
def rate_limiter():
    return RateLimiter(
        limit=TEST_RATE_LIMIT,
        window_seconds=TEST_RATE_WINDOW_SECONDS,
        storage=MemoryStorage(),
    )


@pytest_asyncio.fixture
async def client(session_maker, rate_limiter):
    from shortener.main import app

    async def override_get_session():
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_session_maker] = lambda: session_maker
    app.dependency_overrides[get_rate_limiter] = lambda: rate_limiter

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client

    app.dependency_overrides.clear()
