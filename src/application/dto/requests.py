"""Request DTOs for API endpoints.

Pydantic v2 models for API request validation.
These are the ONLY contracts between API and use cases.

Sign checks on amounts are left to the order editor so that a negative
value is answered with a rejected mutation carrying its reason.
"""

from datetime import date
from typing import Literal

from pydantic import BaseModel, Field


class OpenOrderSessionRequest(BaseModel):
    """Start editing an order: a new draft, or a stored order when ``order_id`` is set."""

    order_id: str | None = Field(
        default=None,
        description="Stored order to load; omit to start a new draft",
    )
    client_id: str | None = Field(
        default=None,
        description="Customer of the new draft",
        examples=["CLI-0042"],
    )
    price_table_id: str | None = Field(
        default=None,
        description="Price table used by quick-add",
        examples=["TAB-VAREJO"],
    )
    doc_type: Literal["order", "proposal"] = Field(default="order")
    date_issued: date | None = None
    notes: str | None = None


class AddLineRequest(BaseModel):
    """Quick-add a product to the order being edited."""

    product_id: str = Field(..., min_length=1, description="Catalog product ID")
    quantity: float = Field(..., description="Quantity in the selected unit")
    packaging_id: str | None = Field(
        default=None,
        description="Packaging to sell in; omit for the product's default sales unit",
    )
    use_base_unit: bool = Field(
        default=False,
        description="Sell in the base unit even when a default packaging exists",
    )
    unit_price_at_base_unit: float | None = Field(
        default=None,
        description="Override the price-table price (per base unit)",
    )


class UpdateLineRequest(BaseModel):
    """Edit one input field of a line."""

    field: Literal["quantity", "unit_price", "discount_amount"]
    value: float


class ChangePackagingRequest(BaseModel):
    """Switch the unit of sale of a line; null selects the base unit."""

    packaging_id: str | None = None


class SetChargesRequest(BaseModel):
    """Order-level freight and discount. Omitted fields are left unchanged."""

    freight_amount: float | None = None
    discount_amount: float | None = None


class SaveOrderRequest(BaseModel):
    """Persist the order, recalculate taxes and optionally confirm it."""

    confirm: bool = Field(
        default=False,
        description="Confirm the order after the fiscal recalculation",
    )
    customer_uf: str | None = Field(default=None, min_length=2, max_length=2)
    customer_type: Literal["contribuinte", "isento", "nao_contribuinte"] = "nao_contribuinte"
    customer_is_final_consumer: bool = True


class AuditOrderRequest(BaseModel):
    """Audit a stored order's totals."""

    order_id: str = Field(..., description="Order ID to audit")
    apply_corrections: bool = Field(
        default=False,
        description="Persist recomputed totals and trigger a fiscal recalculation",
    )
