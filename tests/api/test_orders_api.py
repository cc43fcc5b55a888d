"""Tests for the order editing endpoints."""

import asyncio

import pytest
from httpx import AsyncClient

from src.application.order_sessions import OrderSessionRegistry
from src.core.entities.order import SalesOrder, SaveState
from src.core.entities.product import Product
from src.core.exceptions import FiscalRecalculationError
from src.core.interfaces.fiscal import FiscalResult
from src.core.services.order_pricing import add_line


async def _open(client: AsyncClient, **body) -> dict:
    body.setdefault("client_id", "CLI-0042")
    body.setdefault("price_table_id", "TAB-VAREJO")
    response = await client.post("/api/orders/sessions", json=body)
    assert response.status_code == 201
    return response.json()


async def _add(client: AsyncClient, session_id: str, **body) -> dict:
    response = await client.post(f"/api/orders/sessions/{session_id}/lines", json=body)
    assert response.status_code == 201, response.text
    return response.json()


class TestSessions:
    """Tests for opening and closing sessions."""

    async def test_open_new_draft(self, client: AsyncClient):
        data = await _open(client)

        assert data["session_id"]
        assert data["order_id"] is None
        assert data["client_id"] == "CLI-0042"
        assert data["save_state"] == "draft"
        assert data["items"] == []
        assert data["totals"]["total_amount"] == 0.0

    async def test_open_stored_order(self, client: AsyncClient, mock_store, granola: Product):
        stored = SalesOrder(id="ord-3", client_id="CLI-0042", document_number=7)
        line = add_line(stored, granola, 1, None, 10.0)
        line.id = "line-1"
        mock_store.get_order.return_value = stored

        response = await client.post("/api/orders/sessions", json={"order_id": "ord-3"})

        assert response.status_code == 201
        data = response.json()
        assert data["order_id"] == "ord-3"
        assert data["document_number"] == 7
        assert data["items"][0]["persisted"] is True

    async def test_open_missing_order(self, client: AsyncClient):
        response = await client.post("/api/orders/sessions", json={"order_id": "nope"})

        assert response.status_code == 404
        assert response.json()["error_code"] == "ORDER_NOT_FOUND"

    async def test_get_and_close(self, client: AsyncClient):
        session_id = (await _open(client))["session_id"]

        assert (await client.get(f"/api/orders/sessions/{session_id}")).status_code == 200
        assert (await client.delete(f"/api/orders/sessions/{session_id}")).status_code == 204

        response = await client.get(f"/api/orders/sessions/{session_id}")
        assert response.status_code == 404
        assert response.json()["error_code"] == "SESSION_NOT_FOUND"

    async def test_close_unknown(self, client: AsyncClient):
        response = await client.delete("/api/orders/sessions/nope")

        assert response.status_code == 404
        assert response.json()["error_code"] == "SESSION_NOT_FOUND"


class TestLineEdits:
    """Tests for quick-add and line edits."""

    async def test_quick_add_default_packaging(self, client: AsyncClient):
        session_id = (await _open(client))["session_id"]

        data = await _add(client, session_id, product_id="P-GRAN", quantity=2)

        item = data["session"]["items"][0]
        assert data["line_id"] == item["id"]
        assert item["packaging_id"] == "PK-CX12"
        assert item["unit_price"] == pytest.approx(120.0)
        assert item["qty_base"] == pytest.approx(24)
        assert data["session"]["totals"]["subtotal_amount"] == pytest.approx(240.0)
        assert data["session"]["has_unsaved_changes"] is True

    async def test_quick_add_unknown_product(self, client: AsyncClient):
        session_id = (await _open(client))["session_id"]

        response = await client.post(
            f"/api/orders/sessions/{session_id}/lines",
            json={"product_id": "P-NOPE", "quantity": 1},
        )

        assert response.status_code == 404
        assert response.json()["error_code"] == "PRODUCT_NOT_FOUND"

    async def test_quick_add_rejected_quantity(self, client: AsyncClient):
        session_id = (await _open(client))["session_id"]

        response = await client.post(
            f"/api/orders/sessions/{session_id}/lines",
            json={"product_id": "P-GRAN", "quantity": 0},
        )

        assert response.status_code == 422
        body = response.json()
        assert body["error_code"] == "NON_POSITIVE_QUANTITY"
        assert body["hint"]

    async def test_change_packaging_keeps_base_price(self, client: AsyncClient):
        session_id = (await _open(client))["session_id"]
        line_id = (await _add(client, session_id, product_id="P-GRAN", quantity=5))["line_id"]

        response = await client.put(
            f"/api/orders/sessions/{session_id}/lines/{line_id}/packaging",
            json={"packaging_id": None},
        )

        assert response.status_code == 200
        item = response.json()["session"]["items"][0]
        assert item["packaging_id"] is None
        assert item["unit_price"] == pytest.approx(10.0)
        assert item["qty_base"] == pytest.approx(5)

    async def test_change_to_foreign_packaging(self, client: AsyncClient):
        session_id = (await _open(client))["session_id"]
        line_id = (await _add(client, session_id, product_id="P-GRAN", quantity=1))["line_id"]

        response = await client.put(
            f"/api/orders/sessions/{session_id}/lines/{line_id}/packaging",
            json={"packaging_id": "PK-AV-CX6"},
        )

        assert response.status_code == 422
        assert response.json()["error_code"] == "FOREIGN_PACKAGING"

    async def test_update_line(self, client: AsyncClient):
        session_id = (await _open(client))["session_id"]
        line_id = (
            await _add(client, session_id, product_id="P-GRAN", quantity=1, use_base_unit=True)
        )["line_id"]

        await client.patch(
            f"/api/orders/sessions/{session_id}/lines/{line_id}",
            json={"field": "discount_amount", "value": 2},
        )
        response = await client.patch(
            f"/api/orders/sessions/{session_id}/lines/{line_id}",
            json={"field": "quantity", "value": 3},
        )

        assert response.status_code == 200
        assert response.json()["session"]["items"][0]["total_amount"] == pytest.approx(28.0)

    async def test_update_negative_value(self, client: AsyncClient):
        session_id = (await _open(client))["session_id"]
        line_id = (await _add(client, session_id, product_id="P-GRAN", quantity=1))["line_id"]

        response = await client.patch(
            f"/api/orders/sessions/{session_id}/lines/{line_id}",
            json={"field": "unit_price", "value": -1},
        )

        assert response.status_code == 422
        assert response.json()["error_code"] == "NEGATIVE_AMOUNT"

    async def test_update_unknown_field(self, client: AsyncClient):
        session_id = (await _open(client))["session_id"]
        line_id = (await _add(client, session_id, product_id="P-GRAN", quantity=1))["line_id"]

        response = await client.patch(
            f"/api/orders/sessions/{session_id}/lines/{line_id}",
            json={"field": "packaging_factor", "value": 3},
        )

        assert response.status_code == 422
        assert response.json()["error_code"] == "VALIDATION_ERROR"

    async def test_remove_line(self, client: AsyncClient):
        session_id = (await _open(client))["session_id"]
        line_id = (await _add(client, session_id, product_id="P-GRAN", quantity=1))["line_id"]

        response = await client.delete(f"/api/orders/sessions/{session_id}/lines/{line_id}")

        assert response.status_code == 200
        assert response.json()["session"]["items"] == []

    async def test_remove_unknown_line(self, client: AsyncClient):
        session_id = (await _open(client))["session_id"]

        response = await client.delete(f"/api/orders/sessions/{session_id}/lines/temp-x")

        assert response.status_code == 422
        assert response.json()["error_code"] == "UNKNOWN_LINE"

    async def test_charges(self, client: AsyncClient):
        session_id = (await _open(client))["session_id"]
        await _add(client, session_id, product_id="P-GRAN", quantity=10, use_base_unit=True)

        response = await client.patch(
            f"/api/orders/sessions/{session_id}/charges",
            json={"freight_amount": 20, "discount_amount": 30},
        )

        totals = response.json()["session"]["totals"]
        assert totals["subtotal_amount"] == pytest.approx(100.0)
        assert totals["total_amount"] == pytest.approx(90.0)


class TestRepeatLastOrder:
    """Tests for repeat-last."""

    async def test_copies_previous(self, client: AsyncClient, mock_store, granola: Product):
        previous = SalesOrder(id="ord-2", client_id="CLI-0042", document_number=55)
        add_line(previous, granola, 2, granola.find_packaging("PK-CX12"), 10.0)
        mock_store.get_last_order_for_client.return_value = previous
        session_id = (await _open(client))["session_id"]

        response = await client.post(f"/api/orders/sessions/{session_id}/repeat-last")

        data = response.json()
        assert data["copied"] == 1
        assert data["source_document_number"] == 55
        assert data["session"]["items"][0]["packaging_factor"] == 1.0
        assert data["session"]["totals"]["subtotal_amount"] == pytest.approx(240.0)

    async def test_nothing_to_copy(self, client: AsyncClient):
        session_id = (await _open(client))["session_id"]

        response = await client.post(f"/api/orders/sessions/{session_id}/repeat-last")

        assert response.status_code == 200
        assert response.json()["copied"] == 0
        assert response.json()["reason"] == "No previous order found for this client"


class TestSave:
    """Tests for the save endpoint."""

    async def test_save_and_confirm(self, client: AsyncClient, mock_store):
        session_id = (await _open(client))["session_id"]
        await _add(client, session_id, product_id="P-GRAN", quantity=1)

        response = await client.post(
            f"/api/orders/sessions/{session_id}/save", json={"confirm": True}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["state"] == "confirmed"
        assert data["order_id"] == "ord-1"
        assert data["document_number"] == 101
        assert data["session"]["has_unsaved_changes"] is False
        mock_store.confirm_order.assert_awaited_once_with("ord-1")

    async def test_failed_save_is_reported(self, client: AsyncClient, mock_fiscal):
        mock_fiscal.recalculate.side_effect = FiscalRecalculationError("ord-1", "offline")
        session_id = (await _open(client))["session_id"]
        await _add(client, session_id, product_id="P-GRAN", quantity=1)

        response = await client.post(
            f"/api/orders/sessions/{session_id}/save", json={"confirm": True}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is False
        assert data["state"] == "draft"
        assert data["confirmed"] is False
        assert data["session"]["has_unsaved_changes"] is True
        assert "offline" in data["session"]["last_error"]

    async def test_save_while_saving(self, client: AsyncClient, registry: OrderSessionRegistry):
        session_id = (await _open(client))["session_id"]
        session = await registry.get(session_id)
        session.order.save_state = SaveState.FISCAL_PENDING

        response = await client.post(f"/api/orders/sessions/{session_id}/save", json={})

        assert response.status_code == 409
        assert response.json()["error_code"] == "INVALID_STATE_TRANSITION"

    async def test_edits_refused_while_saving(
        self, client: AsyncClient, registry: OrderSessionRegistry
    ):
        session_id = (await _open(client))["session_id"]
        line_id = (await _add(client, session_id, product_id="P-GRAN", quantity=1))["line_id"]
        session = await registry.get(session_id)
        session.order.save_state = SaveState.FISCAL_PENDING

        added = await client.post(
            f"/api/orders/sessions/{session_id}/lines",
            json={"product_id": "P-GRAN", "quantity": 1},
        )
        updated = await client.patch(
            f"/api/orders/sessions/{session_id}/lines/{line_id}",
            json={"field": "quantity", "value": 3},
        )

        assert added.status_code == 409
        assert added.json()["error_code"] == "SAVE_IN_PROGRESS"
        assert added.json()["hint"]
        assert updated.status_code == 409
        assert len(session.order.items) == 1
        assert session.order.items[0].quantity == 1

    async def test_quick_add_during_save_stays_unsaved(
        self, client: AsyncClient, mock_fiscal, mock_store
    ):
        """A line added while the save runs lands after it and is left unsaved."""
        session_id = (await _open(client))["session_id"]
        await _add(client, session_id, product_id="P-GRAN", quantity=1)
        pending = []

        async def add_during_fiscal(*args, **kwargs):
            pending.append(
                asyncio.create_task(
                    client.post(
                        f"/api/orders/sessions/{session_id}/lines",
                        json={"product_id": "P-GRAN", "quantity": 2},
                    )
                )
            )
            await asyncio.sleep(0.05)
            return FiscalResult(order_id="ord-1")

        mock_fiscal.recalculate.side_effect = add_during_fiscal

        saved = await client.post(f"/api/orders/sessions/{session_id}/save", json={})
        added = await pending[0]

        assert saved.json()["success"] is True
        assert added.status_code == 201
        session = (await client.get(f"/api/orders/sessions/{session_id}")).json()
        assert session["has_unsaved_changes"] is True
        assert len(session["items"]) == 2
        assert mock_store.upsert_line.await_count == 1

    async def test_not_ready(self, client: AsyncClient):
        session_id = (await _open(client, client_id=None))["session_id"]

        response = await client.post(f"/api/orders/sessions/{session_id}/save", json={})

        assert response.json()["success"] is False
        assert "Select a client" in response.json()["message"]


class TestAudit:
    """Tests for the audit endpoints."""

    @pytest.fixture
    def drifted(self, mock_store, granola: Product) -> SalesOrder:
        order = SalesOrder(id="ord-9", client_id="CLI-0042")
        add_line(order, granola, 2, None, 10.0)
        order.subtotal_amount = 30.0
        mock_store.get_order.return_value = order
        return order

    async def test_audit(self, client: AsyncClient, drifted, mock_store):
        response = await client.get("/api/orders/ord-9/audit")

        data = response.json()
        assert response.status_code == 200
        assert data["consistent"] is False
        assert data["issues"][0]["kind"] == "subtotal"
        assert data["issues"][0]["expected"] == pytest.approx(20.0)
        mock_store.update_totals.assert_not_called()

    async def test_correct(self, client: AsyncClient, drifted, mock_store):
        response = await client.post("/api/orders/ord-9/audit")

        assert response.json()["corrected"] is True
        assert drifted.subtotal_amount == pytest.approx(20.0)
        mock_store.update_totals.assert_awaited_once()

    async def test_audit_missing(self, client: AsyncClient):
        response = await client.get("/api/orders/nope/audit")

        assert response.status_code == 404
        assert response.json()["error_code"] == "ORDER_NOT_FOUND"
