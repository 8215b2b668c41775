"""Pydantic schemas for request/response validation in the shortlink service.

Schema Hierarchy
=================
::
    MappingRequest (Input, one item of the POST body list)
    ├─ path: str | None
    └─ url: str | None

    MappingResult (Output, one item of the POST response list)
    ├─ path: str | None
    ├─ url: str | None
    └─ error: str | None

    HealthResponse (Output)
    ├─ status: HealthStatus
    ├─ database: HealthStatus
    └─ cache: HealthStatus

Key Behaviours
===============
- Request fields are free-form; normalization happens in the writer.
- Unknown request fields are ignored.
- Null result fields are omitted by the route.

Classes:
    MappingRequest:  Input schema for mapping creation/update.
    MappingResult:  Output schema echoing path, url and an optional error.
    HealthResponse:  Output schema for health checks.
"""

from pydantic import BaseModel, ConfigDict

from shortlink.enums import HealthStatus

__all__ = ["MappingRequest", "MappingResult", "HealthResponse"]


class MappingRequest(BaseModel):
    path: str | None = None
    url: str | None = None

    model_config = ConfigDict(extra="ignore")


class MappingResult(BaseModel):
    path: str | None = None
    url: str | None = None
    error: str | None = None


class HealthResponse(BaseModel):
    status: HealthStatus
    database: HealthStatus
    cache: HealthStatus
