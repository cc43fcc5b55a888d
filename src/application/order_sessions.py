"""
In-memory registry of orders being edited.

Each session owns one OrderEditor. A session is driven by a single caller;
the per-session lock serializes requests that race on it (a double click on
"save" must not run the save sequence twice).
"""

import asyncio
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field

from src.application.dto.responses import (
    OrderLineResponse,
    OrderSessionResponse,
    OrderTotalsResponse,
    SalesUnitResponse,
)
from src.config import get_logger
from src.core.entities.order import OrderLine, SalesOrder
from src.core.entities.product import Product
from src.core.exceptions import SessionNotFoundError
from src.core.services.lookup_tracker import LookupTracker
from src.core.services.order_editor import OrderEditor
from src.core.services.order_pricing import DEFAULT_EPSILON
from src.core.services.sales_unit import describe_order_line

logger = get_logger(__name__)


@dataclass
class OrderSession:
    """One order form."""

    id: str
    editor: OrderEditor
    lookups: LookupTracker = field(default_factory=LookupTracker)
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    created_at: float = field(default_factory=time.monotonic)
    last_access: float = field(default_factory=time.monotonic)

    @property
    def order(self) -> SalesOrder:
        return self.editor.order

    def to_response(self) -> OrderSessionResponse:
        """Convert session state to API response."""
        order = self.order
        return OrderSessionResponse(
            session_id=self.id,
            order_id=order.id,
            document_number=order.document_number,
            doc_type=order.doc_type.value,
            client_id=order.client_id,
            price_table_id=order.price_table_id,
            date_issued=order.date_issued,
            status=order.status.value,
            save_state=order.save_state.value,
            items=[line_to_response(line) for line in order.items],
            totals=OrderTotalsResponse(
                subtotal_amount=order.subtotal_amount,
                freight_amount=order.freight_amount,
                discount_amount=order.discount_amount,
                total_amount=order.total_amount,
                total_weight_kg=order.total_weight_kg,
                total_gross_weight_kg=order.total_gross_weight_kg,
            ),
            deleted_line_ids=list(order.deleted_line_ids),
            has_unsaved_changes=order.has_unsaved_changes,
            last_error=order.last_error,
        )


def line_to_response(line: OrderLine) -> OrderLineResponse:
    unit = line.sales_unit
    return OrderLineResponse(
        id=line.id,
        product_id=line.product_id,
        product_name=line.product_name,
        quantity=line.quantity,
        packaging_id=line.packaging_id,
        packaging_factor=line.packaging_factor,
        unit_price=line.unit_price,
        discount_amount=line.discount_amount,
        total_amount=line.total_amount,
        qty_base=line.qty_base,
        unit_weight_kg=line.unit_weight_kg,
        gross_weight_kg=line.gross_weight_kg_snapshot,
        description=describe_order_line(line).text,
        sales_unit=(
            SalesUnitResponse(
                sell_unit_code=unit.sell_unit_code,
                base_unit_code=unit.base_unit_code,
                factor_in_base=unit.factor_in_base,
                auto_label=unit.auto_label,
            )
            if unit
            else None
        ),
        persisted=line.is_persisted,
    )


class OrderSessionRegistry:
    """Sessions keyed by ID, expired after ``ttl_seconds`` of inactivity.

    When ``max_sessions`` is reached the least recently used session is
    evicted to make room.
    """

    def __init__(
        self,
        ttl_seconds: float = 4 * 3600,
        max_sessions: int = 500,
        epsilon: float = DEFAULT_EPSILON,
        clamp_line_totals: bool = False,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._sessions: dict[str, OrderSession] = {}
        self._lock = asyncio.Lock()
        self._ttl = ttl_seconds
        self._max = max_sessions
        self._epsilon = epsilon
        self._clamp = clamp_line_totals
        self._clock = clock

    def __len__(self) -> int:
        return len(self._sessions)

    async def open(
        self, order: SalesOrder | None = None, products: list[Product] | None = None
    ) -> OrderSession:
        """Register a new editing session."""
        editor = OrderEditor(
            order=order,
            products=products,
            epsilon=self._epsilon,
            clamp_line_totals=self._clamp,
        )
        now = self._clock()
        session = OrderSession(
            id=uuid.uuid4().hex,
            editor=editor,
            created_at=now,
            last_access=now,
        )

        async with self._lock:
            self._purge_expired(now)
            while len(self._sessions) >= self._max:
                oldest = min(self._sessions.values(), key=lambda s: s.last_access)
                del self._sessions[oldest.id]
                logger.warning("order_session_evicted", session_id=oldest.id, order_id=oldest.order.id)
            self._sessions[session.id] = session

        logger.info("order_session_opened", session_id=session.id, order_id=session.order.id)
        return session

    async def get(self, session_id: str) -> OrderSession:
        """Get a live session and refresh its expiry.

        Raises:
            SessionNotFoundError: unknown or expired session
        """
        now = self._clock()
        async with self._lock:
            session = self._sessions.get(session_id)
            if session is not None and now - session.last_access > self._ttl:
                del self._sessions[session_id]
                logger.info("order_session_expired", session_id=session_id)
                session = None
            if session is None:
                raise SessionNotFoundError(session_id)
            session.last_access = now
            return session

    async def close(self, session_id: str) -> bool:
        async with self._lock:
            removed = self._sessions.pop(session_id, None)
        if removed is not None:
            logger.info("order_session_closed", session_id=session_id)
        return removed is not None

    async def purge_expired(self) -> int:
        async with self._lock:
            return self._purge_expired(self._clock())

    def _purge_expired(self, now: float) -> int:
        expired = [sid for sid, s in self._sessions.items() if now - s.last_access > self._ttl]
        for sid in expired:
            del self._sessions[sid]
        if expired:
            logger.info("order_sessions_purged", count=len(expired))
        return len(expired)
