"""
Sales unit snapshots and commercial descriptions.

Builds the unit-of-sale label frozen on each line at save time
(e.g. "CX 12xPC") and the product description printed on fiscal
documents, with explicit unit conversion:

    "Granola Tradicional 1kg"                                  no packaging
    "Granola Tradicional 1kg - CX 12xPC"                       packaging
    "Granola Tradicional 1kg - CX 12xPC (5 CX = 60 PC)"        with quantities
"""

from dataclasses import dataclass

from src.core.entities.order import OrderLine, SalesUnitSnapshot
from src.core.entities.product import Packaging, Product

DESCRIPTION_MAX_LENGTH = 120


@dataclass(frozen=True)
class LineDescription:
    """Description split at the fiscal field length limit."""

    text: str
    overflow: str | None = None


def _format_qty(value: float) -> str:
    """Drop the decimal part of whole numbers: 12.0 -> "12", 2.5 -> "2.5"."""
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.3f}".rstrip("0").rstrip(".")


def _unit_code(packaging: Packaging) -> str:
    if packaging.unit_code:
        return packaging.unit_code.upper()
    # First word of the label, e.g. "Caixa 12" -> "CAIXA"
    return (packaging.label.split() or ["UN"])[0].upper()


def build_sales_unit_snapshot(
    product: Product, packaging: Packaging | None
) -> SalesUnitSnapshot:
    """Freeze the unit of sale of a line."""
    base_code = product.base_uom.upper()

    if packaging is None:
        return SalesUnitSnapshot(
            packaging_id=None,
            sell_unit_code=base_code,
            base_unit_code=base_code,
            factor_in_base=1.0,
            auto_label=product.base_uom_name or "Unidade",
        )

    sell_code = _unit_code(packaging)
    return SalesUnitSnapshot(
        packaging_id=packaging.id,
        sell_unit_code=sell_code,
        base_unit_code=base_code,
        factor_in_base=packaging.qty_in_base,
        auto_label=f"{sell_code} {_format_qty(packaging.qty_in_base)}x{base_code}",
    )


def describe_line(
    item_name: str,
    snapshot: SalesUnitSnapshot | None = None,
    qty_sales: float | None = None,
    qty_base: float | None = None,
    max_length: int = DESCRIPTION_MAX_LENGTH,
) -> LineDescription:
    """Product description with the unit conversion spelled out.

    Text beyond ``max_length`` is moved to ``overflow`` so it can be printed as
    additional product information instead of being lost.
    """
    name = item_name.strip()

    if snapshot is None or snapshot.factor_in_base == 1:
        return _split(name, max_length)

    label = snapshot.auto_label
    full = f"{name} - {label}"
    if qty_sales is not None and qty_base is not None and qty_sales > 0:
        equivalence = (
            f"({_format_qty(qty_sales)} {snapshot.sell_unit_code} = "
            f"{_format_qty(qty_base)} {snapshot.base_unit_code})"
        )
        with_equivalence = f"{full} {equivalence}"
        if len(with_equivalence) <= max_length:
            return LineDescription(text=with_equivalence)
        if len(full) <= max_length:
            return LineDescription(text=full, overflow=equivalence)

    return _split(full, max_length)


def describe_order_line(line: OrderLine) -> LineDescription:
    """describe_line for a line carrying its own snapshot."""
    return describe_line(
        line.product_name,
        line.sales_unit,
        qty_sales=line.quantity,
        qty_base=line.qty_base,
    )


def _split(text: str, max_length: int) -> LineDescription:
    if len(text) <= max_length:
        return LineDescription(text=text)
    return LineDescription(text=text[:max_length].rstrip(), overflow=text[max_length:].strip())
