"""
Dependency injection container for FastAPI.

Provides service instances to route handlers.
"""

from functools import lru_cache

from src.application.order_sessions import OrderSessionRegistry
from src.application.services import get_session_registry
from src.application.use_cases import (
    AuditOrderUseCase,
    EditOrderUseCase,
    QuickAddItemUseCase,
    RepeatLastOrderUseCase,
    SaveOrderUseCase,
)
from src.config import Settings, get_settings
from src.core.interfaces import ICatalogGateway, IFiscalCalculator, IOrderStore
from src.infrastructure.fiscal import get_fiscal_client
from src.infrastructure.storage.sqlite import get_catalog_store, get_order_store


@lru_cache
def get_app_settings() -> Settings:
    """Get cached application settings."""
    return get_settings()


# Session dependencies
def get_sessions() -> OrderSessionRegistry:
    """Get the registry of orders being edited."""
    return get_session_registry()


# Store dependencies
async def get_catalog() -> ICatalogGateway:
    """Get catalog gateway."""
    return await get_catalog_store()


async def get_orders() -> IOrderStore:
    """Get order store."""
    return await get_order_store()


def get_fiscal() -> IFiscalCalculator:
    """Get fiscal recalculation client."""
    return get_fiscal_client()


# Use case dependencies
def get_quick_add_use_case() -> QuickAddItemUseCase:
    """Get quick add item use case."""
    return QuickAddItemUseCase()


def get_edit_order_use_case() -> EditOrderUseCase:
    """Get edit order use case."""
    return EditOrderUseCase()


def get_repeat_last_order_use_case() -> RepeatLastOrderUseCase:
    """Get repeat last order use case."""
    return RepeatLastOrderUseCase()


def get_save_order_use_case() -> SaveOrderUseCase:
    """Get save order use case."""
    return SaveOrderUseCase()


def get_audit_order_use_case() -> AuditOrderUseCase:
    """Get audit order use case."""
    return AuditOrderUseCase()
