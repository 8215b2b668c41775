"""Persistent store client for URL mappings.

The store is the source of truth. Each operation opens its own session from
the shared ``async_sessionmaker`` so concurrent callers never share one, and
every SQLAlchemy failure is translated into the package's ``StoreError``
hierarchy. Unique-constraint violations become ``StoreConflictError``.

Operations
==========
::
    find_by_path(path)               -> UrlMapping | None
    find_by_short_id_prefix(prefix)  -> list[UrlMapping]  (short_id ASC)
    insert(mapping)                  -> id
    update_url_by_path(path, url)    -> bool (row existed)
    ping()                           -> bool
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import func, select, text, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from shortlink.exceptions import StoreConflictError, StoreError
from shortlink.models import UrlMapping

__all__ = ["MappingStore"]

logger = logging.getLogger(__name__)

STORE_FAILURE_MESSAGE = "store operation failed"


class MappingStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def find_by_path(self, path: str) -> UrlMapping | None:
        with _translate_errors():
            async with self._session_factory() as session:
                result = await session.execute(select(UrlMapping).where(UrlMapping.path == path))
                return result.scalar_one_or_none()

    async def find_by_short_id_prefix(self, prefix: str) -> list[UrlMapping]:
        """Return every mapping whose short_id starts with ``prefix``.

        ``_`` belongs to the short ID alphabet, so the prefix is escaped
        before it reaches LIKE. Some backends compare LIKE case-insensitively
        while short IDs are case-sensitive, hence the second filter.
        """
        with _translate_errors():
            async with self._session_factory() as session:
                result = await session.execute(
                    select(UrlMapping)
                    .where(UrlMapping.short_id.startswith(prefix, autoescape=True))
                    .order_by(UrlMapping.short_id)
                )
                return [m for m in result.scalars().all() if m.short_id.startswith(prefix)]

    async def insert(self, mapping: UrlMapping) -> int:
        with _translate_errors():
            async with self._session_factory() as session:
                session.add(mapping)
                try:
                    await session.commit()
                except IntegrityError as exc:
                    await session.rollback()
                    raise StoreConflictError(mapping.path, mapping.short_id) from exc
                await session.refresh(mapping)
                return mapping.id

    async def update_url_by_path(self, path: str, url: str) -> bool:
        with _translate_errors():
            async with self._session_factory() as session:
                result = await session.execute(
                    update(UrlMapping)
                    .where(UrlMapping.path == path)
                    .values(url=url, last_update_time=func.now())
                )
                await session.commit()
                return result.rowcount > 0

    async def ping(self) -> bool:
        with _translate_errors():
            async with self._session_factory() as session:
                await session.execute(text("SELECT 1"))
        return True


@contextmanager
def _translate_errors() -> Iterator[None]:
    try:
        yield
    except StoreError:
        raise
    except SQLAlchemyError as exc:
        # Statement text and parameters stay in the log.
        logger.error(f"Store operation failed: {exc}")
        raise StoreError(STORE_FAILURE_MESSAGE) from exc
