"""
Save Order Use Case: persist, recalculate taxes, then optionally confirm.

The sequence is a state machine over SaveState:

    DRAFT -> SAVING -> FISCAL_PENDING -> CONFIRMING -> CONFIRMED

Any in-progress state may fall to FAILED, which always lands back on DRAFT
with the unsaved-changes flag still set. Every step is keyed by ID, so a
retry after a failure replays the whole sequence without duplicating rows,
and an order already confirmed is never confirmed twice.
"""

import asyncio
from dataclasses import dataclass

from src.application.dto.requests import SaveOrderRequest
from src.application.dto.responses import OrderSessionResponse, SaveOrderResponse
from src.config import bind_order_context, get_logger, get_settings
from src.config.settings import FiscalSettings
from src.core.entities.order import OrderStatus, SalesOrder, SaveState
from src.core.exceptions import (
    DatabaseError,
    FiscalRecalculationError,
    FiscalTimeoutError,
    InvalidStateTransitionError,
    OrderDeskError,
    OrderNotReadyError,
)
from src.core.interfaces.fiscal import FiscalContext, IFiscalCalculator
from src.core.interfaces.order_store import IOrderStore
from src.core.services.order_editor import OrderEditor
from src.core.services.sales_unit import build_sales_unit_snapshot

logger = get_logger(__name__)

ALLOWED_TRANSITIONS: dict[SaveState, frozenset[SaveState]] = {
    SaveState.DRAFT: frozenset({SaveState.SAVING}),
    SaveState.SAVING: frozenset({SaveState.FISCAL_PENDING, SaveState.FAILED}),
    SaveState.FISCAL_PENDING: frozenset(
        {SaveState.DRAFT, SaveState.CONFIRMING, SaveState.CONFIRMED, SaveState.FAILED}
    ),
    SaveState.CONFIRMING: frozenset({SaveState.CONFIRMED, SaveState.FAILED}),
    SaveState.CONFIRMED: frozenset({SaveState.SAVING}),
    SaveState.FAILED: frozenset({SaveState.DRAFT}),
}


def advance(order: SalesOrder, target: SaveState) -> None:
    """Move the order to ``target``.

    Raises:
        InvalidStateTransitionError: transition not allowed from current state
    """
    current = order.save_state
    if target not in ALLOWED_TRANSITIONS[current]:
        raise InvalidStateTransitionError(current.value, target.value)
    order.save_state = target
    logger.debug("save_state_changed", previous=current.value, state=target.value)


def readiness_problems(order: SalesOrder, confirm: bool) -> list[str]:
    """Reasons the order cannot be saved (or confirmed) yet."""
    problems = []
    if not order.client_id:
        problems.append("Select a client")
    if confirm:
        if not order.items:
            problems.append("Add at least one item")
        for index, line in enumerate(order.items, start=1):
            if line.quantity <= 0:
                problems.append(f"Item {index}: quantity must be positive")
            if line.unit_price < 0:
                problems.append(f"Item {index}: price cannot be negative")
    return problems


def failure_message(error: OrderDeskError, order_id: str | None) -> str:
    """Human-readable explanation of a failed save."""
    if isinstance(error, OrderNotReadyError):
        return error.message
    if isinstance(error, FiscalTimeoutError):
        return (
            f"Order {order_id} was saved but the tax recalculation timed out. "
            "Save again to retry."
        )
    if isinstance(error, FiscalRecalculationError):
        reason = error.details.get("reason")
        return f"Order {order_id} was saved but taxes could not be recalculated: {reason}"
    if isinstance(error, DatabaseError):
        return "The order could not be written to the database. Nothing was confirmed; try again."
    return f"Saving failed: {error.message}"


@dataclass
class SaveOutcome:
    """Result of one save attempt. Failures are values, not exceptions."""

    success: bool
    state: SaveState
    message: str
    order: SalesOrder
    confirmed: bool = False
    fiscal_recalculated: bool = False
    error_code: str | None = None


class SaveOrderUseCase:
    """Persist an order and run the fiscal and confirmation steps in order."""

    def __init__(
        self,
        order_store: IOrderStore | None = None,
        fiscal: IFiscalCalculator | None = None,
        fiscal_settings: FiscalSettings | None = None,
    ):
        self._order_store = order_store
        self._fiscal = fiscal
        self._fiscal_settings = fiscal_settings or get_settings().fiscal

    async def _get_order_store(self) -> IOrderStore:
        if self._order_store is None:
            from src.infrastructure.storage.sqlite import get_order_store

            self._order_store = await get_order_store()
        return self._order_store

    async def _get_fiscal(self) -> IFiscalCalculator:
        if self._fiscal is None:
            from src.infrastructure.fiscal import get_fiscal_client

            self._fiscal = get_fiscal_client()
        return self._fiscal

    def fiscal_context(self, request: SaveOrderRequest) -> FiscalContext:
        return FiscalContext(
            company_uf=self._fiscal_settings.company_uf,
            company_tax_regime=self._fiscal_settings.company_tax_regime,
            customer_uf=request.customer_uf,
            customer_type=request.customer_type,
            customer_is_final_consumer=request.customer_is_final_consumer,
        )

    async def execute(self, editor: OrderEditor, request: SaveOrderRequest) -> SaveOutcome:
        """Execute save order use case."""
        order = editor.order
        bind_order_context(order_id=order.id, client_id=order.client_id)
        logger.info(
            "save_order_started",
            confirm=request.confirm,
            lines=len(order.items),
            deleted=len(order.deleted_line_ids),
        )

        if order.save_state.in_progress:
            raise InvalidStateTransitionError(order.save_state.value, SaveState.SAVING.value)

        problems = readiness_problems(order, request.confirm)
        if problems:
            error = OrderNotReadyError(problems)
            logger.info("save_order_rejected", reasons=problems)
            return SaveOutcome(
                success=False,
                state=order.save_state,
                message=failure_message(error, order.id),
                order=order,
                error_code=error.code,
            )

        fiscal_done = False
        revision = editor.revision
        advance(order, SaveState.SAVING)
        try:
            await self._persist(editor)
            advance(order, SaveState.FISCAL_PENDING)

            fiscal_done = await self._recalculate_taxes(order, request)

            if order.status == OrderStatus.CONFIRMED:
                advance(order, SaveState.CONFIRMED)
            elif request.confirm:
                advance(order, SaveState.CONFIRMING)
                store = await self._get_order_store()
                await store.confirm_order(order.id)
                order.status = OrderStatus.CONFIRMED
                advance(order, SaveState.CONFIRMED)
            else:
                advance(order, SaveState.DRAFT)

        except OrderDeskError as e:
            self._fail(order, e)
            logger.warning(
                "save_order_failed",
                error_code=e.code,
                error=e.message,
                fiscal_recalculated=fiscal_done,
            )
            return SaveOutcome(
                success=False,
                state=order.save_state,
                message=order.last_error or e.message,
                order=order,
                fiscal_recalculated=fiscal_done,
                error_code=e.code,
            )
        except Exception as e:
            self._fail(order, e)
            raise

        # Edits accepted while the save ran were not written
        order.has_unsaved_changes = editor.revision != revision
        order.last_error = None
        confirmed = order.status == OrderStatus.CONFIRMED

        logger.info(
            "save_order_complete",
            order_id=order.id,
            document_number=order.document_number,
            confirmed=confirmed,
            total=order.total_amount,
        )
        return SaveOutcome(
            success=True,
            state=order.save_state,
            message="Order confirmed" if confirmed else "Order saved",
            order=order,
            confirmed=confirmed,
            fiscal_recalculated=fiscal_done,
        )

    async def _persist(self, editor: OrderEditor) -> None:
        """Header, then every line, then pending deletions."""
        order = editor.order
        store = await self._get_order_store()

        for line in order.items:
            if line.sales_unit is None:
                product = editor.known_product(line.product_id)
                if product is not None:
                    line.sales_unit = build_sales_unit_snapshot(
                        product, product.find_packaging(line.packaging_id)
                    )

        saved = await store.upsert_order(order)
        order.id = saved.id
        order.document_number = saved.document_number
        bind_order_context(order_id=order.id)

        for line in order.items:
            stored = await store.upsert_line(order.id, line)
            line.id = stored.id
            line.order_id = order.id

        if order.deleted_line_ids:
            await store.delete_lines(order.id, list(order.deleted_line_ids))
            order.deleted_line_ids.clear()

        logger.info("order_persisted", lines=len(order.items))

    async def _recalculate_taxes(self, order: SalesOrder, request: SaveOrderRequest) -> bool:
        if not self._fiscal_settings.enabled:
            logger.info("fiscal_recalculation_disabled")
            return False

        fiscal = await self._get_fiscal()
        timeout = self._fiscal_settings.timeout_seconds
        try:
            await asyncio.wait_for(
                fiscal.recalculate(order.id, self.fiscal_context(request)),
                timeout=timeout,
            )
        except TimeoutError as e:
            raise FiscalTimeoutError(order.id, timeout) from e
        return True

    @staticmethod
    def _fail(order: SalesOrder, error: Exception) -> None:
        """Route any in-progress state through FAILED back to DRAFT."""
        if order.save_state.in_progress:
            advance(order, SaveState.FAILED)
        if order.save_state == SaveState.FAILED:
            advance(order, SaveState.DRAFT)
        order.has_unsaved_changes = True
        if isinstance(error, OrderDeskError):
            order.last_error = failure_message(error, order.id)
        else:
            order.last_error = str(error)

    def to_response(
        self, outcome: SaveOutcome, session_response: OrderSessionResponse
    ) -> SaveOrderResponse:
        """Convert outcome to API response."""
        return SaveOrderResponse(
            success=outcome.success,
            state=outcome.state.value,
            order_id=outcome.order.id,
            document_number=outcome.order.document_number,
            confirmed=outcome.confirmed,
            fiscal_recalculated=outcome.fiscal_recalculated,
            message=outcome.message,
            session=session_response,
        )
