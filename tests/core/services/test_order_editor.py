"""Tests for OrderEditor."""

import pytest

from src.core.entities.order import SalesOrder, SaveState
from src.core.entities.product import Product
from src.core.services.order_editor import MutationResult, OrderEditor


class TestOrderEditorAddLine:
    """Tests for quick-adding through the editor."""

    def test_add_line_accepted(self, editor: OrderEditor, granola: Product):
        result = editor.add_line(granola, 2, "PK-CX12", 10.0)

        assert result.accepted
        assert result.line is not None
        assert result.line.unit_price == pytest.approx(120.0)
        assert editor.order.has_unsaved_changes
        assert editor.totals.subtotal_amount == pytest.approx(240.0)

    def test_add_line_rejected_quantity(self, editor: OrderEditor, granola: Product):
        result = editor.add_line(granola, 0, None, 10.0)

        assert not result.accepted
        assert result.code == "NON_POSITIVE_QUANTITY"
        assert result.reason
        assert editor.order.items == []
        assert not editor.order.has_unsaved_changes

    def test_add_line_unknown_packaging(self, editor: OrderEditor, granola: Product):
        result = editor.add_line(granola, 1, "PK-NOPE", 10.0)

        assert not result.accepted
        assert result.code == "FOREIGN_PACKAGING"
        assert editor.order.items == []

    def test_add_line_remembers_product(self, granola: Product):
        editor = OrderEditor()

        editor.add_line(granola, 1)

        assert editor.known_product("P-GRAN") is granola
        assert editor.order.items[0].unit_price == 0.0


    def test_add_line_inactive_packaging(self, editor: OrderEditor, granola: Product):
        granola.find_packaging("PK-FD24").is_active = False

        result = editor.add_line(granola, 1, "PK-FD24", 10.0)

        assert not result.accepted
        assert result.code == "INACTIVE_PACKAGING"
        assert editor.order.items == []


class TestOrderEditorChangePackaging:
    """Tests for packaging changes through the editor."""

    def test_change_and_back(self, editor: OrderEditor, granola: Product):
        line = editor.add_line(granola, 5, None, 10.0).line

        assert editor.change_packaging(line.id, "PK-CX12").accepted
        assert line.unit_price == pytest.approx(120.0)
        assert editor.change_packaging(line.id, None).accepted
        assert line.unit_price == pytest.approx(10.0)

    def test_packaging_of_other_product(self, editor: OrderEditor, granola: Product):
        line = editor.add_line(granola, 1, None, 10.0).line

        result = editor.change_packaging(line.id, "PK-AV-CX6")

        assert not result.accepted
        assert result.code == "FOREIGN_PACKAGING"
        assert line.packaging_id is None

    def test_unknown_product_is_rejected(self, granola: Product):
        previous = SalesOrder(id="ord-1")
        editor = OrderEditor(products=[granola])
        editor.add_line(granola, 1, None, 1.0)
        previous.items = list(editor.order.items)
        fresh = OrderEditor()
        fresh.replace_lines_from(previous)
        line_id = fresh.order.items[0].id

        result = fresh.change_packaging(line_id, "PK-CX12")

        assert not result.accepted
        assert result.code == "FOREIGN_PACKAGING"

    def test_unknown_line(self, editor: OrderEditor):
        result = editor.change_packaging("temp-missing", None)

        assert not result.accepted
        assert result.code == "UNKNOWN_LINE"

    def test_inactive_packaging(self, editor: OrderEditor, granola: Product):
        line = editor.add_line(granola, 1, "PK-CX12", 10.0).line
        granola.find_packaging("PK-FD24").is_active = False

        result = editor.change_packaging(line.id, "PK-FD24")

        assert not result.accepted
        assert result.code == "INACTIVE_PACKAGING"
        assert line.packaging_id == "PK-CX12"
        assert line.unit_price == pytest.approx(120.0)


class TestOrderEditorEdits:
    """Tests for field edits, removal and charges."""

    def test_update_line(self, editor: OrderEditor, granola: Product):
        line = editor.add_line(granola, 1, None, 5.0).line

        editor.update_line(line.id, "discount_amount", 2)
        result = editor.update_line(line.id, "quantity", 3)

        assert result.accepted
        assert line.total_amount == pytest.approx(13.0)

    def test_update_line_rejects_unknown_field(self, editor: OrderEditor, granola: Product):
        line = editor.add_line(granola, 1, None, 5.0).line

        result = editor.update_line(line.id, "product_id", 1)

        assert result == MutationResult(
            accepted=False, reason=result.reason, code="UNKNOWN_FIELD"
        )

    def test_update_line_rejects_negative(self, editor: OrderEditor, granola: Product):
        line = editor.add_line(granola, 1, None, 5.0).line

        result = editor.update_line(line.id, "discount_amount", -1)

        assert not result.accepted
        assert result.code == "NEGATIVE_AMOUNT"
        assert line.discount_amount == 0.0

    def test_remove_line(self, editor: OrderEditor, granola: Product, oats: Product):
        keep = editor.add_line(granola, 1, None, 5.0).line
        drop = editor.add_line(oats, 2, None, 4.0).line

        result = editor.remove_line(drop.id)

        assert result.accepted
        assert result.line is drop
        assert editor.order.items == [keep]
        assert editor.totals.subtotal_amount == pytest.approx(5.0)

    def test_set_charges(self, editor: OrderEditor, granola: Product):
        editor.add_line(granola, 10, None, 10.0)

        assert editor.set_charges(freight_amount=20, discount_amount=30).accepted
        assert editor.totals.total_amount == pytest.approx(90.0)

    def test_set_charges_rejects_negative(self, editor: OrderEditor):
        result = editor.set_charges(freight_amount=-5)

        assert not result.accepted
        assert editor.order.freight_amount == 0.0

    def test_replace_lines_from(self, editor: OrderEditor, granola: Product):
        previous = SalesOrder(id="ord-9")
        source = OrderEditor(order=previous)
        source.add_line(granola, 4, "PK-CX12", 2.0)

        result = editor.replace_lines_from(previous)

        assert result.accepted
        assert len(editor.order.items) == 1
        assert editor.order.items[0].packaging_factor == 1.0
        assert editor.order.items[0].unit_price == pytest.approx(24.0)
        assert editor.order.has_unsaved_changes

    def test_clamped_editor(self, granola: Product):
        editor = OrderEditor(products=[granola], clamp_line_totals=True)
        line = editor.add_line(granola, 1, None, 5.0).line

        editor.update_line(line.id, "discount_amount", 9)

        assert line.total_amount == 0.0

    def test_recompute_reports_drift(self, editor: OrderEditor, granola: Product):
        editor.add_line(granola, 1, None, 5.0)

        assert editor.recompute() is False
        editor.order.total_amount = 0.0
        assert editor.recompute() is True


class TestOrderEditorWhileSaving:
    """Edits are refused while a save is running."""

    @pytest.mark.parametrize(
        "state", [SaveState.SAVING, SaveState.FISCAL_PENDING, SaveState.CONFIRMING]
    )
    def test_add_line_refused(self, editor: OrderEditor, granola: Product, state: SaveState):
        editor.order.save_state = state

        result = editor.add_line(granola, 1, None, 10.0)

        assert not result.accepted
        assert result.code == "SAVE_IN_PROGRESS"
        assert editor.order.items == []
        assert not editor.order.has_unsaved_changes
        assert editor.revision == 0

    def test_other_edits_refused(self, editor: OrderEditor, granola: Product):
        line = editor.add_line(granola, 2, None, 10.0).line
        editor.order.save_state = SaveState.SAVING

        assert editor.update_line(line.id, "quantity", 5).code == "SAVE_IN_PROGRESS"
        assert editor.change_packaging(line.id, "PK-CX12").code == "SAVE_IN_PROGRESS"
        assert editor.remove_line(line.id).code == "SAVE_IN_PROGRESS"
        assert editor.set_charges(freight_amount=5.0).code == "SAVE_IN_PROGRESS"
        assert line.quantity == 2
        assert editor.order.items == [line]
        assert editor.order.freight_amount == 0.0
        assert editor.revision == 1

    @pytest.mark.parametrize("state", [SaveState.DRAFT, SaveState.FAILED, SaveState.CONFIRMED])
    def test_settled_states_accept_edits(
        self, editor: OrderEditor, granola: Product, state: SaveState
    ):
        editor.order.save_state = state

        assert editor.add_line(granola, 1, None, 10.0).accepted
        assert editor.revision == 1
