"""FastAPI application entry point for the shortlink service.

Application Lifecycle Diagram
=============================
::
    ┌─────────────┐
    │  uvicorn    │
    │  startup    │
    └──────┬──────┘
           ▼
    ┌──────────────┐
    │ create_app() │
    │ CORS, metrics│
    │ routes       │
    └──────┬───────┘
           ▼
    ┌──────────────────┐
    │ lifespan startup:│
    │ ServiceManager.  │
    │ initialize()     │
    └──────┬───────────┘
           ▼
    ┌─────────────┐
    │ Serve HTTP  │
    │ requests    │
    └──────┬──────┘
           ▼
    ┌──────────────────┐
    │ lifespan shutdown│
    │ drain tasks,     │
    │ close Redis + DB │
    └──────────────────┘

How to Use
===========
**Run with uvicorn**::
    uvicorn shortlink.main:app --host 0.0.0.0 --port 8080

**Create mappings**::
    curl -X POST http://localhost:8080/ \
         -H "Content-Type: application/json" \
         -d '[{"url": "https://example.com"}, {"path": "docs/home", "url": "https://example.com/docs"}]'

**Follow a mapping**::
    curl -i http://localhost:8080/docs/home

Configuration:
    See shortlink/config.py for all available settings.
"""

__all__ = ["app", "create_app"]

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator

from shortlink.config import get_settings
from shortlink.dependencies import ServiceManager
from shortlink.routes import router


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # An already attached manager (e.g. in tests) is left to its owner.
    owned = getattr(app.state, "services", None) is None
    if owned:
        app.state.services = ServiceManager(get_settings())
    await app.state.services.initialize()
    yield
    if owned:
        await app.state.services.cleanup()
        app.state.services = None


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(
        title=settings.APP_NAME,
        version="1.0.0",
        description="Path to URL resolution with a tiered cache",
        lifespan=lifespan,
    )
    app.state.services = None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    Instrumentator(
        should_group_status_codes=True,
        should_ignore_untemplated=False,
        should_respect_env_var=False,
    ).instrument(app).expose(app)

    app.include_router(router)
    return app


app = create_app()
