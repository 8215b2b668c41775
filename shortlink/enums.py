"""Shared enums for the shortlink service.

This module defines all status and state enums used across the codebase.
Using enums instead of string literals provides type safety and prevents typos.
"""

from enum import StrEnum

__all__ = ["HealthStatus", "CacheTier", "WriteOutcome"]


class HealthStatus(StrEnum):
    """Health check status values."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


class CacheTier(StrEnum):
    """Tier that answered a lookup, used as a metrics label."""

    LOCAL = "local"
    DISTRIBUTED = "distributed"
    STORE = "store"
    MISS = "miss"


class WriteOutcome(StrEnum):
    """What a single mapping write did."""

    CREATED = "created"
    UPDATED = "updated"
    REUSED = "reused"
    REJECTED = "rejected"
