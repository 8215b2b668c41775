"""Persistent store tests against an on-disk SQLite database."""

import logging

import pytest

from shortlink.config import Settings
from shortlink.database import build_engine, build_session_factory
from shortlink.exceptions import StoreConflictError, StoreError
from shortlink.models import UrlMapping
from shortlink.store import MappingStore


def _short(short_id: str, url: str) -> UrlMapping:
    return UrlMapping(short_id=short_id, path=short_id, url=url, origin_url=url)


@pytest.mark.asyncio
async def test_insert_and_find_by_path(store: MappingStore) -> None:
    mapping = UrlMapping(path="docs/home", url="https://example.com/docs", origin_url="https://example.com/docs")
    new_id = await store.insert(mapping)

    assert new_id == mapping.id
    found = await store.find_by_path("docs/home")
    assert found is not None
    assert found.id == new_id
    assert found.short_id is None
    assert found.create_time is not None
    assert found.last_update_time is not None


@pytest.mark.asyncio
async def test_find_by_path_missing(store: MappingStore) -> None:
    assert await store.find_by_path("nope/nope") is None


@pytest.mark.asyncio
async def test_duplicate_path_raises_conflict(store: MappingStore) -> None:
    await store.insert(UrlMapping(path="a/b", url="https://one.example", origin_url="https://one.example"))
    with pytest.raises(StoreConflictError) as excinfo:
        await store.insert(UrlMapping(path="a/b", url="https://two.example", origin_url="https://two.example"))
    assert excinfo.value.path == "a/b"


@pytest.mark.asyncio
async def test_duplicate_short_id_raises_conflict(store: MappingStore) -> None:
    await store.insert(_short("abcdef", "https://one.example"))
    with pytest.raises(StoreConflictError):
        await store.insert(UrlMapping(short_id="abcdef", path="x/y", url="https://two.example"))


@pytest.mark.asyncio
async def test_prefix_scan_is_ordered(store: MappingStore) -> None:
    for short_id in ("abcdefZ", "abcdef", "abcdef0", "abcdeg", "ABCDEFx"):
        await store.insert(_short(short_id, f"https://example.com/{short_id}"))

    found = await store.find_by_short_id_prefix("abcdef")
    assert [m.short_id for m in found] == ["abcdef", "abcdef0", "abcdefZ"]


@pytest.mark.asyncio
async def test_prefix_scan_treats_underscore_literally(store: MappingStore) -> None:
    await store.insert(_short("ab_x", "https://example.com/1"))
    await store.insert(_short("abcx", "https://example.com/2"))

    found = await store.find_by_short_id_prefix("ab_")
    assert [m.short_id for m in found] == ["ab_x"]


@pytest.mark.asyncio
async def test_prefix_scan_ignores_explicit_paths(store: MappingStore) -> None:
    await store.insert(UrlMapping(path="abc/def", url="https://example.com", origin_url="https://example.com"))
    assert await store.find_by_short_id_prefix("abc") == []


@pytest.mark.asyncio
async def test_update_url_by_path_keeps_origin(store: MappingStore) -> None:
    await store.insert(UrlMapping(path="a/b", url="https://one.example", origin_url="https://one.example"))

    assert await store.update_url_by_path("a/b", "https://two.example") is True
    found = await store.find_by_path("a/b")
    assert found.url == "https://two.example"
    assert found.origin_url == "https://one.example"


@pytest.mark.asyncio
async def test_update_url_by_path_missing(store: MappingStore) -> None:
    assert await store.update_url_by_path("missing/path", "https://example.com") is False


@pytest.mark.asyncio
async def test_ping(store: MappingStore) -> None:
    assert await store.ping() is True


@pytest.mark.asyncio
async def test_sql_failure_hides_statement(tmp_path, caplog) -> None:
    settings = Settings(DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'empty.db'}")
    engine = build_engine(settings)
    # No init_db: the table is missing.
    store = MappingStore(build_session_factory(engine))
    try:
        with caplog.at_level(logging.ERROR, logger="shortlink.store"):
            with pytest.raises(StoreError) as excinfo:
                await store.find_by_path("a/b")
    finally:
        await engine.dispose()

    assert not isinstance(excinfo.value, StoreConflictError)
    assert str(excinfo.value) == "store operation failed"
    assert "url_mapping" in caplog.text
