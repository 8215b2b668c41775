"""Shared pytest fixtures for store, cache, resolver, writer and API tests."""

from collections.abc import AsyncGenerator
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
import redis.asyncio as redis
from httpx import ASGITransport, AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncEngine

from shortlink.background import CacheMaintainer
from shortlink.config import Settings
from shortlink.database import build_engine, build_session_factory, init_db
from shortlink.dependencies import ServiceManager
from shortlink.distributed_cache import DistributedCache
from shortlink.generations import PathGenerations
from shortlink.hashing import long_id
from shortlink.local_cache import LocalCache
from shortlink.main import app
from shortlink.models import UrlMapping
from shortlink.resolver import Resolver
from shortlink.store import MappingStore
from shortlink.writer import MappingWriter


def urls_sharing_prefix(length: int, count: int = 2) -> list[str]:
    """Find ``count`` distinct URLs whose long IDs share their first ``length`` characters."""
    buckets: dict[str, list[str]] = {}
    for i in range(200_000):
        url = f"https://example.com/page/{i}"
        bucket = buckets.setdefault(long_id(url)[:length], [])
        bucket.append(url)
        if len(bucket) == count:
            return bucket
    raise AssertionError(f"no {count} urls share a {length}-character prefix")


@pytest.fixture
def colliding_urls():
    return urls_sharing_prefix


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'shortlink.db'}",
        LOCAL_CACHE_MAX_SIZE=100,
        MIN_SHORT_ID_LENGTH=6,
        DISTRIBUTED_CACHE_KEY_PREFIX="url:",
        LOG_LEVEL="DEBUG",
    )


@pytest_asyncio.fixture
async def engine(settings: Settings) -> AsyncGenerator[AsyncEngine, None]:
    engine = build_engine(settings)
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def store(engine: AsyncEngine) -> MappingStore:
    return MappingStore(build_session_factory(engine))


@pytest.fixture
def count_mappings(engine: AsyncEngine):
    session_factory = build_session_factory(engine)

    async def _count() -> int:
        async with session_factory() as session:
            result = await session.execute(select(func.count()).select_from(UrlMapping))
            return result.scalar_one()

    return _count


@pytest.fixture
def redis_data() -> dict[str, str]:
    """Backing dict for the mocked Redis client."""
    return {}


@pytest.fixture
def mock_redis(redis_data: dict[str, str]) -> AsyncMock:
    """Mock Redis client backed by ``redis_data``."""

    def _set(key: str, value: str, *args, **kwargs) -> bool:
        redis_data[key] = value
        return True

    def _delete(*keys: str) -> int:
        return sum(1 for key in keys if redis_data.pop(key, None) is not None)

    redis_client = AsyncMock(spec=redis.Redis)
    redis_client.get = AsyncMock(side_effect=lambda key: redis_data.get(key))
    redis_client.set = AsyncMock(side_effect=_set)
    redis_client.delete = AsyncMock(side_effect=_delete)
    redis_client.ping = AsyncMock(return_value=True)
    redis_client.aclose = AsyncMock(return_value=None)
    return redis_client


@pytest.fixture
def local_cache(settings: Settings) -> LocalCache:
    return LocalCache(settings.LOCAL_CACHE_MAX_SIZE)


@pytest.fixture
def distributed_cache(mock_redis: AsyncMock, settings: Settings) -> DistributedCache:
    return DistributedCache(mock_redis, key_prefix=settings.DISTRIBUTED_CACHE_KEY_PREFIX)


@pytest_asyncio.fixture
async def maintainer() -> AsyncGenerator[CacheMaintainer, None]:
    maintainer = CacheMaintainer()
    yield maintainer
    await maintainer.close()


@pytest.fixture
def generations(settings: Settings) -> PathGenerations:
    return PathGenerations(settings.LOCAL_CACHE_MAX_SIZE)


@pytest.fixture
def resolver(
    local_cache: LocalCache,
    distributed_cache: DistributedCache,
    store: MappingStore,
    maintainer: CacheMaintainer,
    generations: PathGenerations,
) -> Resolver:
    return Resolver(local_cache, distributed_cache, store, maintainer, generations)


@pytest.fixture
def make_writer(
    store: MappingStore,
    local_cache: LocalCache,
    distributed_cache: DistributedCache,
    maintainer: CacheMaintainer,
    generations: PathGenerations,
    settings: Settings,
):
    def _make(min_short_id_length: int = settings.MIN_SHORT_ID_LENGTH) -> MappingWriter:
        return MappingWriter(
            store, local_cache, distributed_cache, maintainer, generations, min_short_id_length
        )

    return _make


@pytest.fixture
def writer(make_writer) -> MappingWriter:
    return make_writer()


@pytest_asyncio.fixture
async def manager(
    settings: Settings, engine: AsyncEngine, mock_redis: AsyncMock
) -> AsyncGenerator[ServiceManager, None]:
    manager = ServiceManager(settings, engine=engine, redis_client=mock_redis)
    await manager.initialize()
    yield manager
    await manager.cleanup()


@pytest_asyncio.fixture
async def client(manager: ServiceManager) -> AsyncGenerator[AsyncClient, None]:
    app.state.services = manager
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.state.services = None
