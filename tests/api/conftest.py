"""Fixtures for API tests."""

from collections.abc import AsyncIterator
from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient

from src.api.dependencies import (
    get_audit_order_use_case,
    get_edit_order_use_case,
    get_fiscal,
    get_orders,
    get_quick_add_use_case,
    get_repeat_last_order_use_case,
    get_save_order_use_case,
    get_sessions,
)
from src.api.main import app
from src.application.order_sessions import OrderSessionRegistry
from src.application.use_cases import (
    AuditOrderUseCase,
    EditOrderUseCase,
    QuickAddItemUseCase,
    RepeatLastOrderUseCase,
    SaveOrderUseCase,
)
from src.config.settings import FiscalSettings
from src.core.entities.order import SalesOrder
from src.core.entities.product import Product
from src.core.interfaces.fiscal import FiscalResult
from src.core.services.order_integrity import OrderIntegrityChecker


@pytest.fixture
def registry() -> OrderSessionRegistry:
    return OrderSessionRegistry()


@pytest.fixture
def mock_catalog(granola: Product, oats: Product):
    products = {p.id: p for p in (granola, oats)}
    catalog = AsyncMock()
    catalog.get_product.side_effect = lambda pid: (
        products[pid].model_copy(update={"packagings": []}) if pid in products else None
    )
    catalog.list_packagings.side_effect = lambda pid: (
        list(products[pid].packagings) if pid in products else []
    )
    catalog.get_price.side_effect = lambda pid, table: 10.0 if pid == "P-GRAN" and table else None
    return catalog


def _stored_order(order: SalesOrder) -> SalesOrder:
    return order.model_copy(update={"id": order.id or "ord-1", "document_number": 101})


@pytest.fixture
def mock_store():
    store = AsyncMock()
    store.upsert_order.side_effect = _stored_order
    store.upsert_line.side_effect = lambda order_id, line: line.model_copy(
        update={"id": f"line-{line.id[-6:]}" if not line.is_persisted else line.id}
    )
    store.get_order.return_value = None
    store.get_last_order_for_client.return_value = None
    return store


@pytest.fixture
def mock_fiscal():
    fiscal = AsyncMock()
    fiscal.recalculate.return_value = FiscalResult(order_id="ord-1")
    fiscal.check_health.return_value = True
    return fiscal


@pytest.fixture
async def client(
    registry, mock_catalog, mock_store, mock_fiscal
) -> AsyncIterator[AsyncClient]:
    """API client with every store and remote service replaced by mocks."""
    fiscal_settings = FiscalSettings(enabled=True, timeout_seconds=1.0)
    app.dependency_overrides[get_sessions] = lambda: registry
    app.dependency_overrides[get_orders] = lambda: mock_store
    app.dependency_overrides[get_fiscal] = lambda: mock_fiscal
    app.dependency_overrides[get_quick_add_use_case] = lambda: QuickAddItemUseCase(
        catalog=mock_catalog
    )
    app.dependency_overrides[get_edit_order_use_case] = lambda: EditOrderUseCase(
        catalog=mock_catalog
    )
    app.dependency_overrides[get_repeat_last_order_use_case] = lambda: RepeatLastOrderUseCase(
        order_store=mock_store
    )
    app.dependency_overrides[get_save_order_use_case] = lambda: SaveOrderUseCase(
        order_store=mock_store, fiscal=mock_fiscal, fiscal_settings=fiscal_settings
    )
    app.dependency_overrides[get_audit_order_use_case] = lambda: AuditOrderUseCase(
        order_store=mock_store, fiscal=mock_fiscal, checker=OrderIntegrityChecker()
    )
    try:
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            yield ac
    finally:
        app.dependency_overrides.clear()
