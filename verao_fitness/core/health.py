"""
Health check utilities.

Reports the state of the backend dependencies: Supabase (tables and
realtime) and Redis.
"""

import asyncio
import time
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from verao_fitness.core.cache import DummyRedis
from verao_fitness.core.config import settings
from verao_fitness.core.context import AppContext


class HealthStatus(str, Enum):
    OK = "ok"
    DEGRADED = "degraded"
    CRITICAL = "critical"
    NOT_CONFIGURED = "not_configured"


class HealthCheckResult(BaseModel):
    component: str
    status: HealthStatus
    details: str = ""
    latency_ms: Optional[float] = Field(default=None, ge=0)
    metadata: Dict[str, Any] = Field(default_factory=dict)


class HealthReport(BaseModel):
    status: HealthStatus
    version: str
    environment: str
    timestamp: datetime
    checks: List[HealthCheckResult]


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 2)


async def _check_supabase(context: AppContext) -> HealthCheckResult:
    component = "supabase"
    start = time.perf_counter()

    try:
        rows = await asyncio.to_thread(
            lambda: context.gateway.query("competitors", "id", limit=1)
        )
        return HealthCheckResult(
            component=component,
            status=HealthStatus.OK,
            details="Supabase reachable",
            latency_ms=_elapsed_ms(start),
            metadata={"rows_sampled": len(rows)},
        )
    except Exception as exc:  # pragma: no cover - network failures
        return HealthCheckResult(
            component=component,
            status=HealthStatus.CRITICAL,
            details=f"Supabase request failed: {exc}",
            latency_ms=_elapsed_ms(start),
        )


async def _check_redis(context: AppContext) -> HealthCheckResult:
    component = "redis"
    start = time.perf_counter()

    if isinstance(context.redis, DummyRedis):
        return HealthCheckResult(
            component=component,
            status=HealthStatus.DEGRADED,
            details="Redis unavailable; query cache and sessions are disabled",
        )

    try:
        await asyncio.to_thread(context.redis.ping)
        return HealthCheckResult(
            component=component,
            status=HealthStatus.OK,
            details="Redis reachable",
            latency_ms=_elapsed_ms(start),
        )
    except Exception as exc:  # pragma: no cover - network failures
        return HealthCheckResult(
            component=component,
            status=HealthStatus.CRITICAL,
            details=f"Redis unreachable: {exc}",
            latency_ms=_elapsed_ms(start),
        )


async def _check_realtime(context: AppContext) -> HealthCheckResult:
    component = "realtime"

    if not settings.SUPABASE_REALTIME_ENABLED:
        return HealthCheckResult(
            component=component,
            status=HealthStatus.NOT_CONFIGURED,
            details="Realtime invalidation disabled",
        )

    tables = context.realtime.open_tables()
    if not tables:
        return HealthCheckResult(
            component=component,
            status=HealthStatus.DEGRADED,
            details="No realtime channels open; cached views expire by TTL only",
        )

    return HealthCheckResult(
        component=component,
        status=HealthStatus.OK,
        details="Realtime channels open",
        metadata={
            "tables": tables,
            "mounted_views": len(context.mounted_views),
        },
    )


def _aggregate_status(checks: List[HealthCheckResult]) -> HealthStatus:
    if any(check.status == HealthStatus.CRITICAL for check in checks):
        return HealthStatus.CRITICAL

    if any(check.status == HealthStatus.DEGRADED for check in checks):
        return HealthStatus.DEGRADED

    if all(check.status == HealthStatus.NOT_CONFIGURED for check in checks):
        return HealthStatus.NOT_CONFIGURED

    return HealthStatus.OK


async def build_health_report(context: AppContext, api_version: str) -> HealthReport:
    checks = await asyncio.gather(
        _check_supabase(context),
        _check_redis(context),
        _check_realtime(context),
    )

    return HealthReport(
        status=_aggregate_status(list(checks)),
        version=api_version,
        environment=settings.ENVIRONMENT,
        timestamp=datetime.now(timezone.utc),
        checks=list(checks),
    )
