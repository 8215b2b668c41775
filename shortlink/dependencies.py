"""Dependency injection with an explicitly managed service manager.

The ``ServiceManager`` owns every process-wide resource (database engine,
Redis client, local cache, background maintainer) and the Resolver and
Mapping Writer built on top of them. It is constructed once in the
application lifespan, attached to ``app.state.services`` and handed to
request handlers through FastAPI dependencies.
"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Optional

import redis.asyncio as redis
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncEngine

from shortlink.background import CacheMaintainer
from shortlink.config import Settings, get_settings
from shortlink.database import build_engine, build_session_factory, close_db, init_db
from shortlink.distributed_cache import DistributedCache, build_redis
from shortlink.generations import PathGenerations
from shortlink.local_cache import LocalCache
from shortlink.resolver import Resolver
from shortlink.store import MappingStore
from shortlink.writer import MappingWriter

LOGGER_NAME = "shortlink"


# ============================================================================
# SERVICE MANAGER
# ============================================================================


class ServiceManager:
    """Owner of shared resources with an explicit startup/shutdown lifecycle.

    The engine and Redis client may be injected (tests do this); otherwise
    they are built from settings during ``initialize()``.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        engine: Optional[AsyncEngine] = None,
        redis_client: Optional[redis.Redis] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._engine = engine
        self._redis_client = redis_client
        self._initialized = False

    async def initialize(self) -> None:
        """Initialize shared resources once at startup."""
        if self._initialized:
            return
        self.logger = self._setup_logger()
        if self._engine is None:
            self._engine = build_engine(self.settings)
        await init_db(self._engine)
        if self._redis_client is None:
            self._redis_client = build_redis(self.settings)

        self.store = MappingStore(build_session_factory(self._engine))
        self.local_cache = LocalCache(self.settings.LOCAL_CACHE_MAX_SIZE)
        self.distributed_cache = DistributedCache(
            self._redis_client, key_prefix=self.settings.DISTRIBUTED_CACHE_KEY_PREFIX
        )
        self.maintainer = CacheMaintainer()
        self.generations = PathGenerations(self.settings.LOCAL_CACHE_MAX_SIZE)
        self.resolver = Resolver(
            self.local_cache, self.distributed_cache, self.store, self.maintainer, self.generations
        )
        self.writer = MappingWriter(
            self.store,
            self.local_cache,
            self.distributed_cache,
            self.maintainer,
            self.generations,
            min_short_id_length=self.settings.MIN_SHORT_ID_LENGTH,
        )
        self._initialized = True
        self.logger.info(f"{self.settings.APP_NAME} services initialized ({self.settings.APP_ENV})")

    def _setup_logger(self) -> logging.Logger:
        """Setup the package logger once."""
        logger = logging.getLogger(LOGGER_NAME)
        if not logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
            handler.setFormatter(formatter)
            logger.addHandler(handler)
        logger.setLevel(self.settings.LOG_LEVEL.upper())
        return logger

    async def cleanup(self) -> None:
        """Release shared resources at shutdown."""
        if not self._initialized:
            return
        await self.maintainer.close()
        await self.distributed_cache.close()
        await close_db(self._engine)
        self._initialized = False


# ============================================================================
# REQUEST CONTEXT
# ============================================================================


@dataclass
class RequestContext:
    """Per-request view of the shared services plus tracking information.

    Attributes:
        service_manager: Shared, already initialized services
        request_id: Unique identifier for this request
        client_ip: Client IP address
        start_time: Request start timestamp
    """

    service_manager: ServiceManager
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    client_ip: Optional[str] = None
    start_time: float = field(default_factory=time.time)

    @property
    def logger(self) -> logging.LoggerAdapter:
        """Shared logger tagged with this request's id."""
        return logging.LoggerAdapter(
            self.service_manager.logger,
            {"request_id": self.request_id, "client_ip": self.client_ip},
        )

    def get_duration(self) -> float:
        """Get request duration in milliseconds."""
        return (time.time() - self.start_time) * 1000


# ============================================================================
# DEPENDENCY FUNCTIONS
# ============================================================================


def get_service_manager(request: Request) -> ServiceManager:
    return request.app.state.services


def get_request_context(
    request: Request,
    manager: ServiceManager = Depends(get_service_manager),
) -> RequestContext:
    return RequestContext(
        service_manager=manager,
        request_id=request.headers.get("x-request-id") or str(uuid.uuid4()),
        client_ip=request.client.host if request.client else None,
    )


def get_resolver(manager: ServiceManager = Depends(get_service_manager)) -> Resolver:
    return manager.resolver


def get_writer(manager: ServiceManager = Depends(get_service_manager)) -> MappingWriter:
    return manager.writer
