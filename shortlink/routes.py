"""FastAPI route definitions for the shortlink HTTP surface.

API Endpoint Overview
=====================
::
    GET  /health
        └─ HealthResponse (200)

    POST /
        ├─ list[MappingRequest] (request body)
        └─ list[MappingResult] (200), same order as the request

    GET  /:path
        └─ 302 Redirect or 404

Key Behaviours
===============
- Shared services are injected from ``app.state.services``.
- Per-item write errors are reported in the item's ``error`` field; the
  response status stays 200.
- Null fields are omitted from write results.
- Paths may contain ``/``; everything after the leading slash is the key.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse, RedirectResponse, Response

from shortlink.dependencies import RequestContext, get_request_context, get_resolver, get_writer
from shortlink.enums import HealthStatus
from shortlink.exceptions import StoreError
from shortlink.resolver import Resolver
from shortlink.schemas import HealthResponse, MappingRequest, MappingResult
from shortlink.writer import MappingWriter

__all__ = ["router"]

router = APIRouter()


@router.get("/health", response_model=HealthResponse, tags=["health"])
async def health_check(ctx: RequestContext = Depends(get_request_context)) -> HealthResponse:
    services = ctx.service_manager
    db_status = HealthStatus.HEALTHY
    cache_status = HealthStatus.HEALTHY

    try:
        await services.store.ping()
    except StoreError as e:
        ctx.logger.error(f"Database health check failed: {e}")
        db_status = HealthStatus.UNHEALTHY

    if not await services.distributed_cache.ping():
        ctx.logger.error("Cache health check failed")
        cache_status = HealthStatus.UNHEALTHY

    status = (
        HealthStatus.HEALTHY
        if db_status is HealthStatus.HEALTHY and cache_status is HealthStatus.HEALTHY
        else HealthStatus.UNHEALTHY
    )
    return HealthResponse(status=status, database=db_status, cache=cache_status)


@router.post(
    "/",
    response_model=list[MappingResult],
    response_model_exclude_none=True,
    tags=["mappings"],
)
async def write_mappings(
    payload: list[MappingRequest],
    ctx: RequestContext = Depends(get_request_context),
    writer: MappingWriter = Depends(get_writer),
) -> list[MappingResult]:
    ctx.logger.info(f"Mapping write requested for {len(payload)} item(s)")
    results = await writer.write(payload)
    rejected = sum(1 for result in results if not result.ok)
    ctx.logger.info(
        f"Mapping write completed: {len(results) - rejected} ok, {rejected} rejected "
        f"in {ctx.get_duration():.1f}ms"
    )
    return [result.to_schema() for result in results]


@router.get("/{path:path}", tags=["redirect"])
async def redirect(
    path: str,
    ctx: RequestContext = Depends(get_request_context),
    resolver: Resolver = Depends(get_resolver),
) -> Response:
    url = await resolver.resolve(path)
    if url is None:
        ctx.logger.debug(f"No mapping for /{path}")
        return PlainTextResponse(f"GET /{path}", status_code=404)
    return RedirectResponse(url=url, status_code=302)
