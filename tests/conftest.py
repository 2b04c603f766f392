"""
Test infrastructure for the blog content API.

Strategy
--------
- SQLite in-memory via aiosqlite eliminates the need for a running Postgres
  instance in CI, keeping the suite fast and self-contained.
- StaticPool forces all async tasks to share the same in-memory database
  connection, which is required because SQLite in-memory databases are
  connection-scoped; a new connection would see an empty database.
- The app's get_db dependency is overridden so every test-time request uses
  the test session factory rather than the production one.
- All tables are created fresh before each test and dropped after.
- Redis is disabled by default (cache._redis = None).  Tests that check
  invalidation opt into ``fake_redis``, a small in-memory stand-in for the
  handful of redis.asyncio calls CacheManager makes.
- The boto3 client is replaced by ``FakeS3`` so uploads and deletes never
  leave the process.
"""
import fnmatch

import pytest
import pytest_asyncio
from botocore.exceptions import ClientError
from httpx import AsyncClient, ASGITransport
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from app.cache import cache
from app.database import POSTS_CHANGED, Base, commit, get_db
from app.main import app
from app.storage import storage

# ---------------------------------------------------------------------------
# Test database engine: SQLite in-memory with aiosqlite
# ---------------------------------------------------------------------------

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

engine_test = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

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
            session.info.pop(POSTS_CHANGED, None)
            await session.rollback()
            raise


app.dependency_overrides[get_db] = override_get_db


# ---------------------------------------------------------------------------
# Infrastructure fakes
# ---------------------------------------------------------------------------

def _client_error(code: str, operation: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


class FakeS3:
    """In-memory stand-in for the boto3 S3 client calls ObjectStorage makes."""

    def __init__(self) -> None:
        self.objects: dict[tuple[str, str], dict] = {}
        self.fail_puts = False
        self.fail_deletes = False
        self.missing_raises = False

    def put_object(self, Bucket, Key, Body, **params):
        if self.fail_puts:
            raise _client_error("InternalError", "PutObject")
        if params.get("IfNoneMatch") == "*" and (Bucket, Key) in self.objects:
            raise _client_error("PreconditionFailed", "PutObject")
        self.objects[(Bucket, Key)] = {"Body": Body, **params}
        return {"ETag": '"fake"'}

    def delete_object(self, Bucket, Key):
        if self.fail_deletes:
            raise _client_error("InternalError", "DeleteObject")
        if (Bucket, Key) not in self.objects and self.missing_raises:
            raise _client_error("NoSuchKey", "DeleteObject")
        self.objects.pop((Bucket, Key), None)
        return {}

    def keys(self) -> set[str]:
        return {key for _, key in self.objects}


class FakeRedis:
    """Just enough of redis.asyncio.Redis for CacheManager."""

    def __init__(self) -> None:
        self.store: dict[str, str] = {}
        self.down = False

    def _check(self):
        if self.down:
            raise RedisConnectionError("connection refused")

    async def ping(self):
        self._check()
        return True

    async def get(self, key):
        self._check()
        return self.store.get(key)

    async def set(self, key, value, ex=None):
        self._check()
        self.store[key] = value

    async def delete(self, *keys):
        self._check()
        for key in keys:
            self.store.pop(key, None)

    async def scan_iter(self, match="*"):
        self._check()
        for key in list(self.store):
            if fnmatch.fnmatchcase(key, match):
                yield key

    async def aclose(self):
        pass


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


@pytest.fixture(autouse=True)
def fake_s3() -> FakeS3:
    """Route every storage call to an in-memory bucket."""
    client = FakeS3()
    storage._client = client
    yield client
    storage._client = None


@pytest.fixture(autouse=True)
def no_redis():
    cache._redis = None
    yield
    cache._redis = None


@pytest.fixture
def fake_redis(no_redis) -> FakeRedis:
    client = FakeRedis()
    cache._redis = client
    return client


@pytest_asyncio.fixture
async def db_session() -> AsyncSession:
    """
    Yield a live AsyncSession for tests that call services directly.
    """
    async with async_session_test() as session:
        yield session


@pytest_asyncio.fixture
async def async_client() -> AsyncClient:
    """
    Yield an httpx.AsyncClient wired to the FastAPI app via ASGITransport.

    ASGITransport does not run the lifespan, so neither Redis nor the real
    boto3 client is ever contacted.
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
