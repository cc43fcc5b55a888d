"""
Sales order editing endpoints.

An order is edited through a session: open it (new draft or stored order),
apply line and charge edits, then save. Every edit answers with the full
order state so the form never recomputes totals itself.
"""

from fastapi import APIRouter, Depends, HTTPException, status

from src.api.dependencies import (
    get_audit_order_use_case,
    get_edit_order_use_case,
    get_orders,
    get_quick_add_use_case,
    get_repeat_last_order_use_case,
    get_save_order_use_case,
    get_sessions,
)
from src.application.dto.requests import (
    AddLineRequest,
    AuditOrderRequest,
    ChangePackagingRequest,
    OpenOrderSessionRequest,
    SaveOrderRequest,
    SetChargesRequest,
    UpdateLineRequest,
)
from src.application.dto.responses import (
    AuditOrderResponse,
    ErrorResponse,
    MutationResponse,
    OrderSessionResponse,
    RepeatLastOrderResponse,
    SaveOrderResponse,
)
from src.application.order_sessions import OrderSession, OrderSessionRegistry
from src.application.use_cases import (
    AuditOrderUseCase,
    EditOrderUseCase,
    QuickAddItemUseCase,
    RepeatLastOrderUseCase,
    SaveOrderUseCase,
)
from src.config import get_logger
from src.core.entities.order import DocType, SalesOrder, SaveState
from src.core.exceptions import InvalidStateTransitionError, OrderNotFoundError
from src.core.interfaces import IOrderStore
from src.core.services.order_editor import MutationResult

logger = get_logger(__name__)

router = APIRouter(prefix="/api/orders", tags=["orders"])

MUTATION_ERRORS = {
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    422: {"model": ErrorResponse},
}


def _mutation_response(session: OrderSession, result: MutationResult) -> MutationResponse:
    """Accepted edits return the new state; rejected ones answer 422, or 409 while saving."""
    if not result.accepted:
        raise HTTPException(
            status_code=(
                status.HTTP_409_CONFLICT
                if result.code == "SAVE_IN_PROGRESS"
                else status.HTTP_422_UNPROCESSABLE_ENTITY
            ),
            detail={"error_code": result.code, "message": result.reason},
        )
    return MutationResponse(
        accepted=True,
        line_id=result.line.id if result.line else None,
        session=session.to_response(),
    )


@router.post(
    "/sessions",
    response_model=OrderSessionResponse,
    status_code=status.HTTP_201_CREATED,
    responses={404: {"model": ErrorResponse}},
)
async def open_session(
    request: OpenOrderSessionRequest,
    sessions: OrderSessionRegistry = Depends(get_sessions),
    store: IOrderStore = Depends(get_orders),
) -> OrderSessionResponse:
    """Start editing a new draft, or a stored order when ``order_id`` is given."""
    if request.order_id:
        order = await store.get_order(request.order_id)
        if order is None:
            raise OrderNotFoundError(request.order_id)
    else:
        order = SalesOrder(
            client_id=request.client_id,
            price_table_id=request.price_table_id,
            doc_type=DocType(request.doc_type),
            notes=request.notes,
        )
        if request.date_issued:
            order.date_issued = request.date_issued

    session = await sessions.open(order)
    return session.to_response()


@router.get(
    "/sessions/{session_id}",
    response_model=OrderSessionResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_session(
    session_id: str,
    sessions: OrderSessionRegistry = Depends(get_sessions),
) -> OrderSessionResponse:
    """Current state of an order being edited."""
    session = await sessions.get(session_id)
    return session.to_response()


@router.delete(
    "/sessions/{session_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse}},
)
async def close_session(
    session_id: str,
    sessions: OrderSessionRegistry = Depends(get_sessions),
) -> None:
    """Discard an editing session. Unsaved edits are lost."""
    if not await sessions.close(session_id):
        raise HTTPException(status_code=404, detail=f"Session not found: {session_id}")


@router.post(
    "/sessions/{session_id}/lines",
    response_model=MutationResponse,
    status_code=status.HTTP_201_CREATED,
    responses={**MUTATION_ERRORS, 409: {"model": ErrorResponse}},
)
async def add_line(
    session_id: str,
    request: AddLineRequest,
    sessions: OrderSessionRegistry = Depends(get_sessions),
    use_case: QuickAddItemUseCase = Depends(get_quick_add_use_case),
) -> MutationResponse:
    """Quick-add a product at its price-table price."""
    session = await sessions.get(session_id)
    result = await use_case.execute(session.editor, session.lookups, request, lock=session.lock)
    if result.superseded:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "error_code": "LOOKUP_SUPERSEDED",
                "message": f"Selection of {request.product_id} was superseded by a newer one",
            },
        )
    return _mutation_response(session, result.mutation)


@router.patch(
    "/sessions/{session_id}/lines/{line_id}",
    response_model=MutationResponse,
    responses=MUTATION_ERRORS,
)
async def update_line(
    session_id: str,
    line_id: str,
    request: UpdateLineRequest,
    sessions: OrderSessionRegistry = Depends(get_sessions),
    use_case: EditOrderUseCase = Depends(get_edit_order_use_case),
) -> MutationResponse:
    """Edit quantity, unit price or discount of a line."""
    session = await sessions.get(session_id)
    async with session.lock:
        result = use_case.update_line(session.editor, line_id, request)
        return _mutation_response(session, result)


@router.put(
    "/sessions/{session_id}/lines/{line_id}/packaging",
    response_model=MutationResponse,
    responses=MUTATION_ERRORS,
)
async def change_packaging(
    session_id: str,
    line_id: str,
    request: ChangePackagingRequest,
    sessions: OrderSessionRegistry = Depends(get_sessions),
    use_case: EditOrderUseCase = Depends(get_edit_order_use_case),
) -> MutationResponse:
    """Switch a line's unit of sale, keeping the base-unit price."""
    session = await sessions.get(session_id)
    async with session.lock:
        result = await use_case.change_packaging(session.editor, line_id, request)
        return _mutation_response(session, result)


@router.delete(
    "/sessions/{session_id}/lines/{line_id}",
    response_model=MutationResponse,
    responses=MUTATION_ERRORS,
)
async def remove_line(
    session_id: str,
    line_id: str,
    sessions: OrderSessionRegistry = Depends(get_sessions),
    use_case: EditOrderUseCase = Depends(get_edit_order_use_case),
) -> MutationResponse:
    """Remove a line; stored lines are deleted on the next save."""
    session = await sessions.get(session_id)
    async with session.lock:
        result = use_case.remove_line(session.editor, line_id)
        return _mutation_response(session, result)


@router.patch(
    "/sessions/{session_id}/charges",
    response_model=MutationResponse,
    responses=MUTATION_ERRORS,
)
async def set_charges(
    session_id: str,
    request: SetChargesRequest,
    sessions: OrderSessionRegistry = Depends(get_sessions),
    use_case: EditOrderUseCase = Depends(get_edit_order_use_case),
) -> MutationResponse:
    """Set order-level freight and discount."""
    session = await sessions.get(session_id)
    async with session.lock:
        result = use_case.set_charges(session.editor, request)
        return _mutation_response(session, result)


@router.post(
    "/sessions/{session_id}/repeat-last",
    response_model=RepeatLastOrderResponse,
    responses={404: {"model": ErrorResponse}},
)
async def repeat_last_order(
    session_id: str,
    sessions: OrderSessionRegistry = Depends(get_sessions),
    use_case: RepeatLastOrderUseCase = Depends(get_repeat_last_order_use_case),
) -> RepeatLastOrderResponse:
    """Replace the draft's lines with the client's previous order."""
    session = await sessions.get(session_id)
    async with session.lock:
        result = await use_case.execute(session.editor)
        source = result.source
        reason = result.reason
        if result.mutation is not None and not result.mutation.accepted:
            reason = result.mutation.reason
        return RepeatLastOrderResponse(
            copied=result.copied,
            source_order_id=source.id if source else None,
            source_document_number=source.document_number if source else None,
            reason=reason,
            session=session.to_response(),
        )


@router.post(
    "/sessions/{session_id}/save",
    response_model=SaveOrderResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def save_order(
    session_id: str,
    request: SaveOrderRequest,
    sessions: OrderSessionRegistry = Depends(get_sessions),
    use_case: SaveOrderUseCase = Depends(get_save_order_use_case),
) -> SaveOrderResponse:
    """
    Persist the order, recalculate taxes and confirm it when asked.

    A failed save still answers 200 with ``success`` false and a message;
    the order stays editable and can be saved again.
    """
    session = await sessions.get(session_id)
    state = session.order.save_state
    if state.in_progress:
        # Double submit; the running save owns the order
        raise InvalidStateTransitionError(state.value, SaveState.SAVING.value)
    async with session.lock:
        outcome = await use_case.execute(session.editor, request)
        return use_case.to_response(outcome, session.to_response())


@router.get(
    "/{order_id}/audit",
    response_model=AuditOrderResponse,
    responses={404: {"model": ErrorResponse}},
)
async def audit_order(
    order_id: str,
    use_case: AuditOrderUseCase = Depends(get_audit_order_use_case),
) -> AuditOrderResponse:
    """Compare a stored order's totals with its lines."""
    result = await use_case.execute(AuditOrderRequest(order_id=order_id))
    return use_case.to_response(result)


@router.post(
    "/{order_id}/audit",
    response_model=AuditOrderResponse,
    responses={404: {"model": ErrorResponse}},
)
async def correct_order(
    order_id: str,
    use_case: AuditOrderUseCase = Depends(get_audit_order_use_case),
) -> AuditOrderResponse:
    """Audit a stored order and write back recomputed totals."""
    result = await use_case.execute(AuditOrderRequest(order_id=order_id, apply_corrections=True))
    if result.corrected:
        logger.info("order_totals_corrected", order_id=order_id, issues=len(result.report.issues))
    return use_case.to_response(result)
