"""
Order line pricing and aggregation.

Layer-pure: depends only on core entities and exceptions, performs no I/O.

Every mutation validates its inputs first and raises a LineValidationError
subclass before touching the order, so a rejected call leaves the aggregate
exactly as it was. Every accepted mutation finishes by recomputing the order
aggregates from scratch; nothing is accumulated incrementally.
"""

from dataclasses import dataclass
from typing import Literal

from src.core.entities.order import OrderLine, SalesOrder, new_line_id
from src.core.entities.product import Packaging, Product
from src.core.exceptions import (
    ForeignPackagingError,
    InactivePackagingError,
    NegativeAmountError,
    NonPositiveQuantityError,
    UnknownFieldError,
    UnknownLineError,
)

DEFAULT_EPSILON = 1e-3

LineField = Literal["quantity", "unit_price", "discount_amount"]
EDITABLE_FIELDS: tuple[str, ...] = ("quantity", "unit_price", "discount_amount")


@dataclass(frozen=True)
class OrderAggregates:
    """Derived order-level figures."""

    subtotal_amount: float
    total_amount: float
    total_weight_kg: float
    total_gross_weight_kg: float


def resolve_factor(packaging: Packaging | None) -> float:
    """Base units per selected unit; 1 for the base unit itself."""
    if packaging is None:
        return 1.0
    return packaging.qty_in_base if packaging.qty_in_base > 0 else 1.0


def line_total(
    quantity: float, unit_price: float, discount_amount: float, clamp: bool = False
) -> float:
    total = quantity * unit_price - discount_amount
    return max(0.0, total) if clamp else total


def implied_base_price(unit_price: float, factor: float) -> float:
    """Base-unit price implied by a packaging price; 0 when the factor is unusable."""
    return unit_price / factor if factor > 0 else 0.0


def weight_snapshot(
    product: Product, packaging: Packaging | None, factor: float
) -> tuple[float, float]:
    """Net and gross kg per selected unit.

    A packaging gross weight overrides the product's base gross weight scaled
    by the factor. Gross is raised to net when the catalog data would
    otherwise make it lighter.
    """
    net = product.net_weight_kg_base * factor
    if packaging is not None and packaging.gross_weight_kg is not None:
        gross = packaging.gross_weight_kg
    else:
        gross = product.gross_weight_kg_base * factor
    return net, max(gross, net)


def _check_packaging(product: Product, packaging: Packaging | None) -> None:
    if packaging is not None and not product.owns(packaging):
        raise ForeignPackagingError(packaging.id, product.id)
    if packaging is not None and not packaging.is_active:
        raise InactivePackagingError(packaging.id)


def _require_line(order: SalesOrder, line: OrderLine) -> None:
    if not order.contains(line):
        raise UnknownLineError(line.id)


def compute_aggregates(order: SalesOrder) -> OrderAggregates:
    """Pure computation of the order totals; does not write anything."""
    subtotal = sum(line.total_amount for line in order.items)
    total = max(0.0, subtotal + order.freight_amount - order.discount_amount)
    net = sum(line.unit_weight_kg * line.quantity for line in order.items)
    gross = sum(
        max(line.gross_weight_kg_snapshot, line.unit_weight_kg) * line.quantity
        for line in order.items
    )
    return OrderAggregates(
        subtotal_amount=subtotal,
        total_amount=total,
        total_weight_kg=net,
        total_gross_weight_kg=gross,
    )


def recompute_order_aggregates(order: SalesOrder, epsilon: float = DEFAULT_EPSILON) -> bool:
    """Write derived totals onto the order.

    Values within ``epsilon`` of what is already stored are left alone so
    callers are not notified about changes that are only float noise.

    Returns:
        True if at least one field was written
    """
    aggregates = compute_aggregates(order)
    changed = False
    for field in (
        "subtotal_amount",
        "total_amount",
        "total_weight_kg",
        "total_gross_weight_kg",
    ):
        new_value = getattr(aggregates, field)
        if abs(getattr(order, field) - new_value) > epsilon:
            setattr(order, field, new_value)
            changed = True
    return changed


def add_line(
    order: SalesOrder,
    product: Product,
    quantity: float,
    packaging: Packaging | None = None,
    unit_price_at_base_unit: float = 0.0,
    *,
    clamp: bool = False,
    epsilon: float = DEFAULT_EPSILON,
) -> OrderLine:
    """Append a product to the order, pricing it in the chosen packaging.

    Raises:
        NonPositiveQuantityError: quantity <= 0
        NegativeAmountError: base price < 0
        ForeignPackagingError: packaging not registered on product
        InactivePackagingError: packaging no longer sold
    """
    if quantity <= 0:
        raise NonPositiveQuantityError(quantity)
    if unit_price_at_base_unit < 0:
        raise NegativeAmountError("unit_price", unit_price_at_base_unit)
    _check_packaging(product, packaging)

    factor = resolve_factor(packaging)
    net, gross = weight_snapshot(product, packaging, factor)

    line = OrderLine(
        order_id=order.id,
        product_id=product.id,
        product_name=product.name,
        quantity=quantity,
        packaging_id=packaging.id if packaging else None,
        packaging_factor=factor,
        unit_price=unit_price_at_base_unit * factor,
        discount_amount=0.0,
        unit_weight_kg=net,
        gross_weight_kg_snapshot=gross,
    )
    line.recompute(clamp=clamp)

    order.items.append(line)
    recompute_order_aggregates(order, epsilon)
    return line


def change_packaging(
    order: SalesOrder,
    line: OrderLine,
    product: Product,
    new_packaging: Packaging | None,
    *,
    clamp: bool = False,
    epsilon: float = DEFAULT_EPSILON,
) -> OrderLine:
    """Switch a line to another unit of sale, keeping its base-unit price.

    ``unit_price`` is rescaled by new_factor / old_factor, ``qty_base`` and the
    weight snapshot follow the new factor. ``None`` selects the base unit.
    """
    _require_line(order, line)
    if product.id != line.product_id:
        raise ForeignPackagingError(
            new_packaging.id if new_packaging else "base", line.product_id
        )
    _check_packaging(product, new_packaging)

    old_factor = line.packaging_factor
    new_factor = resolve_factor(new_packaging)
    base_price = implied_base_price(line.unit_price, old_factor)
    net, gross = weight_snapshot(product, new_packaging, new_factor)

    line.unit_price = base_price * new_factor
    line.packaging_id = new_packaging.id if new_packaging else None
    line.packaging_factor = new_factor
    line.unit_weight_kg = net
    line.gross_weight_kg_snapshot = gross
    line.sales_unit = None
    line.recompute(clamp=clamp)

    recompute_order_aggregates(order, epsilon)
    return line


def update_line_field(
    order: SalesOrder,
    line: OrderLine,
    field: str,
    value: float,
    *,
    clamp: bool = False,
    epsilon: float = DEFAULT_EPSILON,
) -> OrderLine:
    """Set quantity, unit_price or discount_amount and refresh derived values."""
    _require_line(order, line)
    if field not in EDITABLE_FIELDS:
        raise UnknownFieldError(field, list(EDITABLE_FIELDS))
    if value < 0:
        raise NegativeAmountError(field, value)

    setattr(line, field, float(value))
    line.recompute(clamp=clamp)

    recompute_order_aggregates(order, epsilon)
    return line


def remove_line(
    order: SalesOrder, line: OrderLine, *, epsilon: float = DEFAULT_EPSILON
) -> OrderLine:
    """Remove a line by identity.

    Persisted lines are remembered in ``deleted_line_ids`` so the next save
    deletes them remotely.
    """
    _require_line(order, line)
    order.items = [item for item in order.items if item is not line]
    if line.is_persisted and line.id not in order.deleted_line_ids:
        order.deleted_line_ids.append(line.id)

    recompute_order_aggregates(order, epsilon)
    return line


def set_order_charges(
    order: SalesOrder,
    freight_amount: float | None = None,
    discount_amount: float | None = None,
    *,
    epsilon: float = DEFAULT_EPSILON,
) -> SalesOrder:
    """Update global freight and/or discount."""
    if freight_amount is not None and freight_amount < 0:
        raise NegativeAmountError("freight_amount", freight_amount)
    if discount_amount is not None and discount_amount < 0:
        raise NegativeAmountError("discount_amount", discount_amount)

    if freight_amount is not None:
        order.freight_amount = float(freight_amount)
    if discount_amount is not None:
        order.discount_amount = float(discount_amount)

    recompute_order_aggregates(order, epsilon)
    return order


def copy_lines_from_order(
    order: SalesOrder,
    previous: SalesOrder,
    *,
    clamp: bool = False,
    epsilon: float = DEFAULT_EPSILON,
) -> list[OrderLine]:
    """Replace the order's lines with copies of a previous order's lines.

    Copies are sold in the base unit: packaging dropped, factor 1, prices kept
    verbatim. Nothing is re-resolved against current pricing.
    """
    copies: list[OrderLine] = []
    for source in previous.items:
        copy = OrderLine(
            id=new_line_id("copy"),
            order_id=order.id,
            product_id=source.product_id,
            product_name=source.product_name,
            quantity=source.quantity,
            packaging_id=None,
            packaging_factor=1.0,
            unit_price=source.unit_price,
            discount_amount=source.discount_amount,
            unit_weight_kg=source.unit_weight_kg,
            gross_weight_kg_snapshot=source.gross_weight_kg_snapshot,
            notes=source.notes,
        )
        copy.recompute(clamp=clamp)
        copies.append(copy)

    for line in order.items:
        if line.is_persisted and line.id not in order.deleted_line_ids:
            order.deleted_line_ids.append(line.id)
    order.items = copies

    recompute_order_aggregates(order, epsilon)
    return copies
