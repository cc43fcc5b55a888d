"""Catalog product and packaging entities."""

from typing import Any

from pydantic import BaseModel, Field, model_validator


def resolve_weight_kg(weight_kg: float | None, weight_g: float | None) -> float:
    """Prefer a positive kilogram weight, else fall back to grams / 1000."""
    if weight_kg is not None and weight_kg > 0:
        return float(weight_kg)
    if weight_g:
        return float(weight_g) / 1000
    return 0.0


class Packaging(BaseModel):
    """A sales unit of a product (e.g. box of 12, bale of 24)."""

    id: str
    product_id: str
    label: str
    qty_in_base: float = Field(..., gt=0)  # base units per packaging unit
    unit_code: str | None = None  # e.g. "CX", "FD"
    net_weight_kg: float | None = None
    gross_weight_kg: float | None = None  # overrides product gross * factor
    gtin: str | None = None
    is_default_sales_unit: bool = False
    is_active: bool = True


class Product(BaseModel):
    """Catalog item as seen by the order form (read-only)."""

    id: str
    name: str
    sku: str | None = None
    base_uom: str = "UN"  # abbreviation, e.g. "PC", "KG"
    base_uom_name: str | None = None  # e.g. "Unidade"
    net_weight_kg_base: float = 0.0
    gross_weight_kg_base: float = 0.0
    sale_price: float = 0.0
    packagings: list[Packaging] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def convert_gram_weights(cls, data: Any) -> Any:
        """Accept legacy gram weights when no kilogram weight is set."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        for kind in ("net", "gross"):
            grams = data.pop(f"{kind}_weight_g_base", None)
            key = f"{kind}_weight_kg_base"
            data[key] = resolve_weight_kg(data.get(key), grams)
        return data

    def find_packaging(self, packaging_id: str | None) -> Packaging | None:
        """Look up one of this product's packagings by ID."""
        if packaging_id is None:
            return None
        for packaging in self.packagings:
            if packaging.id == packaging_id:
                return packaging
        return None

    def owns(self, packaging: Packaging) -> bool:
        """True when the packaging is registered on this product."""
        return packaging.product_id == self.id and self.find_packaging(packaging.id) is not None

    def sales_packagings(self) -> list[Packaging]:
        """Active packagings, default sales unit first, then smallest factor."""
        active = [p for p in self.packagings if p.is_active]
        return sorted(active, key=lambda p: (not p.is_default_sales_unit, p.qty_in_base))

    def default_packaging(self) -> Packaging | None:
        for packaging in self.sales_packagings():
            if packaging.is_default_sales_unit:
                return packaging
        return None
