"""Response DTOs for API endpoints.

Pydantic v2 models for API response serialization.
These are the ONLY contracts between use cases and API layer.
"""

from datetime import date, datetime

from pydantic import BaseModel, Field


class SalesUnitResponse(BaseModel):
    """Unit of sale frozen on a saved line."""

    sell_unit_code: str
    base_unit_code: str
    factor_in_base: float
    auto_label: str = Field(..., examples=["CX 12xPC"])


class OrderLineResponse(BaseModel):
    """Line of an order being edited."""

    id: str
    product_id: str
    product_name: str
    quantity: float = Field(..., description="Quantity in the selected unit")
    packaging_id: str | None = None
    packaging_factor: float = Field(..., description="Base units per selected unit")
    unit_price: float = Field(..., description="Price per selected unit")
    discount_amount: float
    total_amount: float = Field(..., description="quantity * unit_price - discount_amount")
    qty_base: float
    unit_weight_kg: float
    gross_weight_kg: float
    description: str = Field(..., description="Commercial description with unit conversion")
    sales_unit: SalesUnitResponse | None = None
    persisted: bool


class OrderTotalsResponse(BaseModel):
    """Derived order figures."""

    subtotal_amount: float
    freight_amount: float
    discount_amount: float
    total_amount: float
    total_weight_kg: float
    total_gross_weight_kg: float


class OrderSessionResponse(BaseModel):
    """Snapshot of an order being edited."""

    session_id: str
    order_id: str | None = None
    document_number: int | None = None
    doc_type: str
    client_id: str | None = None
    price_table_id: str | None = None
    date_issued: date
    status: str
    save_state: str
    items: list[OrderLineResponse] = Field(default_factory=list)
    totals: OrderTotalsResponse
    deleted_line_ids: list[str] = Field(default_factory=list)
    has_unsaved_changes: bool = False
    last_error: str | None = None


class MutationResponse(BaseModel):
    """Accepted edit, with the order state after it."""

    accepted: bool = True
    line_id: str | None = None
    session: OrderSessionResponse


class PackagingResponse(BaseModel):
    """Sales unit option shown in the packaging selector."""

    id: str
    label: str
    qty_in_base: float
    unit_code: str | None = None
    is_default_sales_unit: bool = False
    auto_label: str


class ProductQuoteResponse(BaseModel):
    """Product, packagings and price resolved for quick-add."""

    product_id: str
    name: str
    sku: str | None = None
    base_uom: str
    unit_price_at_base_unit: float
    price_source: str = Field(..., description="price_table or sale_price")
    packagings: list[PackagingResponse] = Field(default_factory=list)
    default_packaging_id: str | None = None


class RepeatLastOrderResponse(BaseModel):
    """Outcome of copying the client's previous order."""

    copied: int
    source_order_id: str | None = None
    source_document_number: int | None = None
    reason: str | None = None
    session: OrderSessionResponse


class SaveOrderResponse(BaseModel):
    """Outcome of the save -> fiscal -> confirm sequence."""

    success: bool
    state: str
    order_id: str | None = None
    document_number: int | None = None
    confirmed: bool = False
    fiscal_recalculated: bool = False
    message: str
    session: OrderSessionResponse


class IntegrityIssueResponse(BaseModel):
    """Stored figure that drifted from its recomputed value."""

    kind: str
    line_id: str | None = None
    stored: float
    expected: float
    difference: float


class AuditOrderResponse(BaseModel):
    """Integrity audit of a stored order."""

    order_id: str
    consistent: bool
    tolerance: float
    issues: list[IntegrityIssueResponse] = Field(default_factory=list)
    expected_subtotal: float
    expected_total: float
    corrected: bool = False
    fiscal_recalculated: bool = False
    checked_at: datetime


class ProviderHealthResponse(BaseModel):
    """Dependency health status."""

    name: str
    available: bool
    latency_ms: float | None = None
    error: str | None = None


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str = "1.0.0"
    uptime_seconds: float
    database: ProviderHealthResponse | None = None
    fiscal: ProviderHealthResponse | None = None
    active_sessions: int = 0


class ErrorResponse(BaseModel):
    """Standardized error response DTO.

    Every error response includes:
    - error_code: machine-readable code (e.g. ORDER_NOT_FOUND)
    - message: human-readable description
    - hint: suggested recovery action
    - path: request path that triggered the error
    """

    error_code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error description")
    hint: str | None = Field(default=None, description="Suggested recovery action")
    detail: str | None = Field(default=None, description="Additional details")
    path: str | None = Field(default=None, description="Request path")
    timestamp: datetime = Field(default_factory=datetime.now)
