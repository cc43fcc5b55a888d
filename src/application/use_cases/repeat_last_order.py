"""Repeat Last Order Use Case: copies the client's previous order into the draft."""

from dataclasses import dataclass

from src.config import bind_order_context, get_logger
from src.core.entities.order import SalesOrder
from src.core.interfaces.order_store import IOrderStore
from src.core.services.order_editor import MutationResult, OrderEditor

logger = get_logger(__name__)


@dataclass
class RepeatLastOrderResult:
    """Result of repeating the last order."""

    copied: int
    source: SalesOrder | None = None
    reason: str | None = None
    mutation: MutationResult | None = None


class RepeatLastOrderUseCase:
    """Replace the draft's lines with the lines of the client's last order.

    Prices are copied verbatim and the packaging factor resets to 1; nothing is
    re-resolved against the current price table.
    """

    def __init__(self, order_store: IOrderStore | None = None):
        self._order_store = order_store

    async def _get_order_store(self) -> IOrderStore:
        if self._order_store is None:
            from src.infrastructure.storage.sqlite import get_order_store

            self._order_store = await get_order_store()
        return self._order_store

    async def execute(self, editor: OrderEditor) -> RepeatLastOrderResult:
        """Execute repeat last order use case."""
        order = editor.order
        bind_order_context(order_id=order.id, client_id=order.client_id)

        if not order.client_id:
            return RepeatLastOrderResult(copied=0, reason="Select a client first")

        store = await self._get_order_store()
        previous = await store.get_last_order_for_client(
            order.client_id, exclude_order_id=order.id
        )

        if previous is None:
            logger.info("repeat_last_order_none_found")
            return RepeatLastOrderResult(
                copied=0, reason="No previous order found for this client"
            )
        if not previous.items:
            return RepeatLastOrderResult(
                copied=0, source=previous, reason="Previous order has no items"
            )

        mutation = editor.replace_lines_from(previous)
        copied = len(order.items) if mutation.accepted else 0

        logger.info(
            "repeat_last_order_complete",
            source_order_id=previous.id,
            copied=copied,
            total=order.total_amount,
        )
        return RepeatLastOrderResult(copied=copied, source=previous, mutation=mutation)
