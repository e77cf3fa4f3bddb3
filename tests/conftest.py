"""
Test infrastructure for the Conduit API.

Strategy
--------
- SQLite in-memory via aiosqlite eliminates the need for a running Postgres
  instance in CI, keeping the suite fast and self-contained.
- StaticPool forces all async tasks to share the same in-memory database
  connection, which is required because SQLite in-memory databases are
  connection-scoped; a new connection would see an empty database.
- SQLite only enforces foreign keys (and therefore ON DELETE CASCADE) when
  ``PRAGMA foreign_keys`` is on, so every new connection switches it on.
- The app's get_db dependency is overridden so every test-time request uses
  the test session factory rather than the production one.
- All tables are created fresh before each test and dropped after, giving
  each test a clean isolated state without needing transactions or truncation.
- The Redis cache is disabled by setting cache._redis = None; the RedisCache
  already handles a None _redis gracefully (no-op reads and writes), so tests
  exercise real service logic without any Redis infrastructure.
- bcrypt runs with the minimum cost factor; settings are read at import
  time, so the variable is set before anything from ``conduit`` is imported.
"""
import os

os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from conduit.database import Base, commit, get_db
from conduit.main import app
from conduit.cache import cache
from conduit.middleware import install_query_counter

# ---------------------------------------------------------------------------
# Test database engine: SQLite in-memory with aiosqlite
# ---------------------------------------------------------------------------

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

engine_test = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


@event.listens_for(engine_test.sync_engine, "connect")
def _enable_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


# Register the per-request SQL query counter on the test engine.
install_query_counter(engine_test)

async_session_test = async_sessionmaker(
    engine_test,
    class_=AsyncSession,
    expire_on_commit=False,
)


# ---------------------------------------------------------------------------
# Dependency override: replace production get_db with the test session factory
# ---------------------------------------------------------------------------

async def override_get_db():
    async with async_session_test() as session:
        try:
            yield session
            await commit(session)
        except Exception:
            await session.rollback()
            raise


app.dependency_overrides[get_db] = override_get_db


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture(autouse=True)
async def setup_db():
    """Create all tables before each test, drop after to guarantee isolation."""
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def db_session() -> AsyncSession:
    """
    Yield a live AsyncSession for tests that need to interact with the
    database directly (e.g. seeding data, asserting table state).
    """
    async with async_session_test() as session:
        yield session


@pytest_asyncio.fixture
async def async_client() -> AsyncClient:
    """
    Yield an httpx.AsyncClient wired to the FastAPI app via ASGITransport.

    Redis is disabled by setting cache._redis = None before each request so
    that tests are deterministic and do not depend on external infrastructure.
    """
    cache._redis = None
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def make_user(async_client: AsyncClient):
    """
    Return a coroutine that registers a user through the API.

    The returned dict is the ``user`` projection plus a ready-made
    ``headers`` entry carrying the session token.
    """
    async def _make_user(username: str, password: str = "password123") -> dict:
        resp = await async_client.post("/api/users", json={"user": {
            "username": username,
            "email": f"{username}@example.com",
            "password": password,
        }})
        assert resp.status_code == 201, resp.text
        user = resp.json()["user"]
        user["headers"] = {"Authorization": f"Token {user['token']}"}
        return user

    return _make_user


@pytest.fixture
def make_article(async_client: AsyncClient):
    """Return a coroutine that publishes an article as *author*."""
    async def _make_article(author: dict, title: str, tags: list[str] | None = None) -> dict:
        resp = await async_client.post(
            "/api/articles",
            json={"article": {
                "title": title,
                "description": f"About {title}",
                "body": f"Body of {title}",
                "tagList": tags or [],
            }},
            headers=author["headers"],
        )
        assert resp.status_code == 201, resp.text
        return resp.json()["article"]

    return _make_article
