"""API route modules."""

from src.api.routes.catalog import router as catalog_router
from src.api.routes.health import router as health_router
from src.api.routes.orders import router as orders_router

__all__ = [
    "health_router",
    "orders_router",
    "catalog_router",
]
