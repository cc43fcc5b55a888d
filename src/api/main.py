"""
FastAPI application factory.

Startup migrates the database and opens the connection pool; a background
task sweeps idle editing sessions until shutdown.
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager, suppress

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.api.middleware import ErrorHandlerMiddleware, LoggingMiddleware
from src.api.middleware.error_handler import setup_exception_handlers
from src.api.routes import catalog_router, health_router, orders_router
from src.application.services import get_session_registry
from src.config import Settings, configure_logging, get_logger, get_settings

logger = get_logger(__name__)


async def _prepare_storage() -> None:
    from src.infrastructure.storage.sqlite import get_pool
    from src.infrastructure.storage.sqlite.migrations import run_migrations

    results = await run_migrations()
    failed = [f"v{r.version}" for r in results if not r.success]
    if failed:
        raise RuntimeError(f"migrations failed: {', '.join(failed)}")
    await get_pool()
    logger.info("storage_ready", migrations_applied=len(results))


async def _release_resources() -> None:
    from src.infrastructure.fiscal import reset_fiscal_client
    from src.infrastructure.storage.sqlite import close_pool

    try:
        await close_pool()
    except Exception as e:
        logger.warning("connection_pool_close_failed", error=str(e))
    reset_fiscal_client()


async def _sweep_sessions(interval: float) -> None:
    registry = get_session_registry()
    while True:
        await asyncio.sleep(interval)
        await registry.purge_expired()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings: Settings = app.state.settings
    logger.info("application_starting", host=settings.api.host, port=settings.api.port)

    try:
        await _prepare_storage()
    except Exception as e:
        logger.error("storage_init_failed", error=str(e))
        raise

    if not settings.fiscal.enabled:
        logger.warning("fiscal_recalculation_disabled")

    sweeper = None
    if settings.api.session_purge_interval_seconds > 0:
        sweeper = asyncio.create_task(_sweep_sessions(settings.api.session_purge_interval_seconds))

    logger.info("application_started")
    try:
        yield
    finally:
        logger.info("application_stopping")
        if sweeper is not None:
            sweeper.cancel()
            with suppress(asyncio.CancelledError):
                await sweeper
        await _release_resources()
        logger.info("application_stopped")


def create_app(settings: Settings | None = None) -> FastAPI:
    """
    Build the API application.

    Args:
        settings: Settings to use, defaults to the process-wide instance

    Returns:
        FastAPI app with middleware, exception handlers and routers wired
    """
    settings = settings or get_settings()
    configure_logging()

    app = FastAPI(
        title="Sales Order Desk API",
        description="Sales order line pricing, packaging conversion and save workflow",
        version=settings.app_version,
        docs_url="/docs" if settings.api.debug else None,
        redoc_url=None,
        lifespan=lifespan,
    )
    app.state.settings = settings

    # Registered last runs outermost
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(ErrorHandlerMiddleware)
    if settings.api.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.api.cors_origins,
            allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
            allow_headers=["*"],
            expose_headers=["X-Request-ID", "X-Response-Time"],
        )

    setup_exception_handlers(app)

    for router in (health_router, orders_router, catalog_router):
        app.include_router(router)

    @app.get("/", include_in_schema=False)
    async def root() -> dict[str, str]:
        return {"name": settings.app_name, "version": settings.app_version, "api": "/api"}

    # Liveness probe for containers; /api/health/db covers readiness
    @app.get("/health", include_in_schema=False)
    async def liveness() -> dict[str, str]:
        return {"status": "healthy", "version": settings.app_version}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    api = get_settings().api
    uvicorn.run("src.api.main:app", host=api.host, port=api.port, reload=api.debug)
