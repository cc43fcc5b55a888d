"""Tests for AuditOrderUseCase."""

from unittest.mock import AsyncMock

import pytest

from src.application.dto.requests import AuditOrderRequest
from src.application.use_cases.audit_order import AuditOrderUseCase
from src.core.entities.order import SalesOrder
from src.core.entities.product import Product
from src.core.exceptions import FiscalRecalculationError, OrderNotFoundError
from src.core.interfaces.fiscal import FiscalResult
from src.core.services.order_integrity import OrderIntegrityChecker
from src.core.services.order_pricing import add_line


@pytest.fixture
def drifted_order(granola: Product) -> SalesOrder:
    order = SalesOrder(id="ord-5", client_id="CLI-0042")
    add_line(order, granola, 2, None, 10.0)
    order.items[0].total_amount = 25.0
    order.subtotal_amount = 25.0
    order.total_amount = 25.0
    return order


@pytest.fixture
def mock_store(drifted_order: SalesOrder):
    store = AsyncMock()
    store.get_order.return_value = drifted_order
    return store


@pytest.fixture
def mock_fiscal():
    fiscal = AsyncMock()
    fiscal.recalculate.return_value = FiscalResult(order_id="ord-5")
    return fiscal


@pytest.fixture
def use_case(mock_store, mock_fiscal) -> AuditOrderUseCase:
    return AuditOrderUseCase(
        order_store=mock_store, fiscal=mock_fiscal, checker=OrderIntegrityChecker()
    )


class TestAuditOrderUseCase:
    """Tests for AuditOrderUseCase."""

    async def test_check_only(self, use_case, mock_store, mock_fiscal, drifted_order):
        result = await use_case.execute(AuditOrderRequest(order_id="ord-5"))

        assert not result.report.is_consistent
        assert not result.corrected
        assert result.report.expected_subtotal == pytest.approx(20.0)
        assert drifted_order.subtotal_amount == 25.0
        mock_store.update_totals.assert_not_called()
        mock_fiscal.recalculate.assert_not_called()

    async def test_apply_corrections(self, use_case, mock_store, mock_fiscal, drifted_order):
        result = await use_case.execute(
            AuditOrderRequest(order_id="ord-5", apply_corrections=True)
        )

        assert result.corrected
        assert result.fiscal_recalculated
        assert drifted_order.items[0].total_amount == pytest.approx(20.0)
        assert drifted_order.total_amount == pytest.approx(20.0)
        mock_store.update_totals.assert_awaited_once_with(drifted_order)
        assert mock_fiscal.recalculate.await_args.args[0] == "ord-5"

    async def test_consistent_order_not_rewritten(
        self, use_case, mock_store, granola: Product
    ):
        order = SalesOrder(id="ord-6")
        add_line(order, granola, 1, None, 3.0)
        mock_store.get_order.return_value = order

        result = await use_case.execute(
            AuditOrderRequest(order_id="ord-6", apply_corrections=True)
        )

        assert result.report.is_consistent
        assert not result.corrected
        mock_store.update_totals.assert_not_called()

    async def test_fiscal_failure_keeps_correction(
        self, use_case, mock_store, mock_fiscal
    ):
        mock_fiscal.recalculate.side_effect = FiscalRecalculationError("ord-5", "offline")

        result = await use_case.execute(
            AuditOrderRequest(order_id="ord-5", apply_corrections=True)
        )

        assert result.corrected
        assert not result.fiscal_recalculated
        mock_store.update_totals.assert_awaited_once()

    async def test_order_not_found(self, use_case, mock_store):
        mock_store.get_order.return_value = None

        with pytest.raises(OrderNotFoundError):
            await use_case.execute(AuditOrderRequest(order_id="missing"))

    async def test_to_response(self, use_case):
        result = await use_case.execute(AuditOrderRequest(order_id="ord-5"))

        response = use_case.to_response(result)

        assert response.order_id == "ord-5"
        assert not response.consistent
        assert {issue.kind for issue in response.issues} == {"line_total", "subtotal", "total"}
