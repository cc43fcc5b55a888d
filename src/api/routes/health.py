"""
Health check endpoints.
"""

import time

from fastapi import APIRouter, Depends

from src.api.dependencies import get_fiscal, get_sessions
from src.application.dto.responses import HealthResponse, ProviderHealthResponse
from src.application.order_sessions import OrderSessionRegistry
from src.config import get_settings
from src.core.interfaces import IFiscalCalculator

router = APIRouter(prefix="/api/health", tags=["health"])

# Track startup time
_start_time = time.time()


async def _database_status() -> ProviderHealthResponse:
    from src.infrastructure.storage.sqlite import get_pool

    pool = await get_pool()
    health = await pool.check_health()
    return ProviderHealthResponse(
        name="sqlite",
        available=health.available,
        latency_ms=health.latency_ms,
        error=health.error,
    )


async def _fiscal_status(fiscal: IFiscalCalculator) -> ProviderHealthResponse:
    start = time.time()
    available = await fiscal.check_health()
    return ProviderHealthResponse(
        name="fiscal",
        available=available,
        latency_ms=round((time.time() - start) * 1000, 2),
        error=None if available else "fiscal service unreachable",
    )


@router.get("", response_model=HealthResponse)
async def health_check(
    sessions: OrderSessionRegistry = Depends(get_sessions),
) -> HealthResponse:
    """
    Basic health check.

    Returns service status, uptime and the number of orders being edited.
    """
    return HealthResponse(
        status="healthy",
        version=get_settings().app_version,
        uptime_seconds=time.time() - _start_time,
        active_sessions=len(sessions),
    )


@router.get("/db", response_model=HealthResponse)
async def db_health() -> HealthResponse:
    """
    Database health check.

    Tests SQLite connectivity and response time.
    """
    db_status = await _database_status()
    return HealthResponse(
        status="healthy" if db_status.available else "unhealthy",
        version=get_settings().app_version,
        uptime_seconds=time.time() - _start_time,
        database=db_status,
    )


@router.get("/fiscal", response_model=HealthResponse)
async def fiscal_health(
    fiscal: IFiscalCalculator = Depends(get_fiscal),
) -> HealthResponse:
    """
    Fiscal service health check.

    Orders still save while it is down; only tax recalculation fails.
    """
    fiscal_status = await _fiscal_status(fiscal)
    return HealthResponse(
        status="healthy" if fiscal_status.available else "degraded",
        version=get_settings().app_version,
        uptime_seconds=time.time() - _start_time,
        fiscal=fiscal_status,
    )


@router.get("/full", response_model=HealthResponse)
async def full_health_check(
    sessions: OrderSessionRegistry = Depends(get_sessions),
    fiscal: IFiscalCalculator = Depends(get_fiscal),
) -> HealthResponse:
    """Database and fiscal service together."""
    db_status = await _database_status()
    fiscal_status = await _fiscal_status(fiscal)

    if not db_status.available:
        status_str = "unhealthy"
    elif not fiscal_status.available:
        status_str = "degraded"
    else:
        status_str = "healthy"

    return HealthResponse(
        status=status_str,
        version=get_settings().app_version,
        uptime_seconds=time.time() - _start_time,
        database=db_status,
        fiscal=fiscal_status,
        active_sessions=len(sessions),
    )
