"""Sales order aggregate and line entities."""

import uuid
from datetime import UTC, date, datetime
from enum import Enum

from pydantic import BaseModel, Field

TEMP_ID_PREFIXES = ("temp-", "copy-")


def new_line_id(prefix: str = "temp") -> str:
    """ID for a line that has not been persisted yet."""
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def _utcnow() -> datetime:
    return datetime.now(UTC)


class OrderStatus(str, Enum):
    """Commercial status of a sales document."""

    DRAFT = "draft"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class DocType(str, Enum):
    PROPOSAL = "proposal"
    ORDER = "order"


class SaveState(str, Enum):
    """Progress of the save -> fiscal -> confirm sequence."""

    DRAFT = "draft"
    SAVING = "saving"
    FISCAL_PENDING = "fiscal_pending"
    CONFIRMING = "confirming"
    CONFIRMED = "confirmed"
    FAILED = "failed"

    @property
    def in_progress(self) -> bool:
        return self in (SaveState.SAVING, SaveState.FISCAL_PENDING, SaveState.CONFIRMING)


class SalesUnitSnapshot(BaseModel):
    """Unit of sale frozen on the line for historical documents."""

    packaging_id: str | None = None
    sell_unit_code: str  # e.g. "CX"
    base_unit_code: str  # e.g. "PC"
    factor_in_base: float = 1.0
    auto_label: str  # e.g. "CX 12xPC"


class OrderLine(BaseModel):
    """One product on a sales order.

    ``unit_price`` is the price of one unit of the *selected packaging*, not of
    the base unit. ``total_amount`` and ``qty_base`` are derived and must be
    refreshed with :meth:`recompute` after any input change.
    """

    id: str = Field(default_factory=new_line_id)
    order_id: str | None = None
    product_id: str
    product_name: str = ""
    quantity: float
    packaging_id: str | None = None
    packaging_factor: float = Field(default=1.0, gt=0)
    unit_price: float = 0.0
    discount_amount: float = 0.0
    total_amount: float = 0.0
    qty_base: float = 0.0
    unit_weight_kg: float = 0.0  # net kg per selected packaging unit
    gross_weight_kg_snapshot: float = 0.0  # gross kg per selected packaging unit
    sales_unit: SalesUnitSnapshot | None = None
    notes: str | None = None

    @property
    def is_persisted(self) -> bool:
        return not self.id.startswith(TEMP_ID_PREFIXES)

    @property
    def implied_base_price(self) -> float:
        """Price of one base unit implied by the current packaging price."""
        return self.unit_price / self.packaging_factor if self.packaging_factor > 0 else 0.0

    def recompute(self, clamp: bool = False) -> None:
        """Refresh total_amount and qty_base from quantity, price, discount, factor."""
        total = self.quantity * self.unit_price - self.discount_amount
        self.total_amount = max(0.0, total) if clamp else total
        self.qty_base = self.quantity * self.packaging_factor


class SalesOrder(BaseModel):
    """Sales order aggregate root.

    Subtotal, total and weight totals are derived from ``items`` and the
    global charges; they are written by the pricing service only.
    """

    id: str | None = None
    document_number: int | None = None
    doc_type: DocType = DocType.ORDER
    client_id: str | None = None
    price_table_id: str | None = None
    date_issued: date = Field(default_factory=date.today)
    status: OrderStatus = OrderStatus.DRAFT
    save_state: SaveState = SaveState.DRAFT

    items: list[OrderLine] = Field(default_factory=list)
    freight_amount: float = Field(default=0.0, ge=0)
    discount_amount: float = Field(default=0.0, ge=0)

    subtotal_amount: float = 0.0
    total_amount: float = 0.0
    total_weight_kg: float = 0.0
    total_gross_weight_kg: float = 0.0

    # Persisted lines removed since the last successful save
    deleted_line_ids: list[str] = Field(default_factory=list)
    has_unsaved_changes: bool = False
    last_error: str | None = None

    notes: str | None = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    def find_line(self, line_id: str) -> OrderLine | None:
        for line in self.items:
            if line.id == line_id:
                return line
        return None

    def contains(self, line: OrderLine) -> bool:
        """Identity membership, not equality."""
        return any(item is line for item in self.items)
