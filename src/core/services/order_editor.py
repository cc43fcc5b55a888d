"""
Order editor.

Facade the order form talks to while a user edits one sales order. Wraps the
pure pricing functions, keeps the products it has seen (packaging changes
need them) and turns every validation failure into a rejected
MutationResult instead of an exception.
"""

from collections.abc import Callable
from dataclasses import dataclass

from src.config import get_logger
from src.core.entities.order import OrderLine, SalesOrder
from src.core.entities.product import Product
from src.core.exceptions import (
    ForeignPackagingError,
    LineValidationError,
    SaveInProgressError,
    UnknownLineError,
)
from src.core.services import order_pricing
from src.core.services.order_pricing import DEFAULT_EPSILON, OrderAggregates

logger = get_logger(__name__)


@dataclass(frozen=True)
class MutationResult:
    """Outcome of one edit. Rejected edits leave the order untouched."""

    accepted: bool
    reason: str | None = None
    code: str | None = None
    line: OrderLine | None = None

    @classmethod
    def ok(cls, line: OrderLine | None = None) -> "MutationResult":
        return cls(accepted=True, line=line)

    @classmethod
    def rejected(cls, error: LineValidationError) -> "MutationResult":
        return cls(accepted=False, reason=error.reason, code=error.code)


class OrderEditor:
    """Mutation entry point for one order being edited."""

    def __init__(
        self,
        order: SalesOrder | None = None,
        products: list[Product] | None = None,
        epsilon: float = DEFAULT_EPSILON,
        clamp_line_totals: bool = False,
    ):
        self.order = order or SalesOrder()
        self._products: dict[str, Product] = {p.id: p for p in products or []}
        self._epsilon = epsilon
        self._clamp = clamp_line_totals
        # Accepted edits so far
        self.revision = 0

    @property
    def totals(self) -> OrderAggregates:
        return OrderAggregates(
            subtotal_amount=self.order.subtotal_amount,
            total_amount=self.order.total_amount,
            total_weight_kg=self.order.total_weight_kg,
            total_gross_weight_kg=self.order.total_gross_weight_kg,
        )

    def remember_product(self, product: Product) -> None:
        self._products[product.id] = product

    def known_product(self, product_id: str) -> Product | None:
        return self._products.get(product_id)

    def add_line(
        self,
        product: Product,
        quantity: float,
        packaging_id: str | None = None,
        unit_price_at_base_unit: float = 0.0,
    ) -> MutationResult:
        """Quick-add a product priced per base unit."""
        self.remember_product(product)

        def apply() -> OrderLine:
            packaging = product.find_packaging(packaging_id)
            if packaging_id is not None and packaging is None:
                raise ForeignPackagingError(packaging_id, product.id)
            return order_pricing.add_line(
                self.order,
                product,
                quantity,
                packaging,
                unit_price_at_base_unit,
                clamp=self._clamp,
                epsilon=self._epsilon,
            )

        return self._mutate("add_line", apply)

    def change_packaging(self, line_id: str, packaging_id: str | None) -> MutationResult:
        """Select another packaging for a line; None selects the base unit."""

        def apply() -> OrderLine:
            line = self._line(line_id)
            product = self._products.get(line.product_id)
            if product is None:
                # Without the catalog entry the packaging cannot be verified
                raise ForeignPackagingError(packaging_id or "base", line.product_id)
            packaging = product.find_packaging(packaging_id)
            if packaging_id is not None and packaging is None:
                raise ForeignPackagingError(packaging_id, product.id)
            return order_pricing.change_packaging(
                self.order, line, product, packaging, clamp=self._clamp, epsilon=self._epsilon
            )

        return self._mutate("change_packaging", apply)

    def update_line(self, line_id: str, field: str, value: float) -> MutationResult:
        def apply() -> OrderLine:
            return order_pricing.update_line_field(
                self.order,
                self._line(line_id),
                field,
                value,
                clamp=self._clamp,
                epsilon=self._epsilon,
            )

        return self._mutate("update_line", apply)

    def remove_line(self, line_id: str) -> MutationResult:
        def apply() -> OrderLine:
            return order_pricing.remove_line(self.order, self._line(line_id), epsilon=self._epsilon)

        return self._mutate("remove_line", apply)

    def set_charges(
        self, freight_amount: float | None = None, discount_amount: float | None = None
    ) -> MutationResult:
        def apply() -> None:
            order_pricing.set_order_charges(
                self.order, freight_amount, discount_amount, epsilon=self._epsilon
            )

        return self._mutate("set_charges", apply)

    def replace_lines_from(self, previous: SalesOrder) -> MutationResult:
        """Repeat a previous order's lines (prices copied verbatim)."""

        def apply() -> None:
            order_pricing.copy_lines_from_order(
                self.order, previous, clamp=self._clamp, epsilon=self._epsilon
            )

        return self._mutate("replace_lines", apply)

    def recompute(self) -> bool:
        return order_pricing.recompute_order_aggregates(self.order, self._epsilon)

    def _line(self, line_id: str) -> OrderLine:
        line = self.order.find_line(line_id)
        if line is None:
            raise UnknownLineError(line_id)
        return line

    def _mutate(self, operation: str, apply: Callable[[], OrderLine | None]) -> MutationResult:
        try:
            if self.order.save_state.in_progress:
                raise SaveInProgressError(self.order.save_state.value)
            line = apply()
        except LineValidationError as e:
            logger.info(
                "order_mutation_rejected",
                operation=operation,
                order_id=self.order.id,
                code=e.code,
                reason=e.reason,
            )
            return MutationResult.rejected(e)

        self.order.has_unsaved_changes = True
        self.revision += 1
        logger.debug(
            "order_mutation_applied",
            operation=operation,
            order_id=self.order.id,
            lines=len(self.order.items),
            total=self.order.total_amount,
        )
        return MutationResult.ok(line)
